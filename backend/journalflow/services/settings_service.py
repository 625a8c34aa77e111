from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from journalflow.core.errors import workflow_action
from journalflow.core.roles import Role, require_role
from journalflow.lib.api_client import first_row, supabase_admin
from journalflow.models.journal_settings import JournalSettings, JournalSettingsUpdate
from journalflow.models.user import Actor

logger = logging.getLogger("journalflow.settings")


class SettingsService:
    """
    期刊全局配置（journal_settings 单行记录）的显式访问器。

    中文注释:
    - 读：任何组件都通过 get() 获取，不缓存为进程级全局变量。
    - 写：只允许 editor 通过 update() 修改。
    """

    def __init__(self, *, client: Any = None) -> None:
        self.client = client or supabase_admin

    def _load_row(self) -> dict[str, Any] | None:
        res = self.client.table("journal_settings").select("*").limit(1).execute()
        return first_row(res)

    def get(self) -> JournalSettings:
        try:
            row = self._load_row()
        except Exception as e:
            logger.warning("[Settings] load journal_settings failed, using defaults: %s", e)
            return JournalSettings()
        if not row:
            return JournalSettings()
        known = {k: v for k, v in row.items() if k in JournalSettings.model_fields and v is not None}
        if "id" in known:
            known["id"] = str(known["id"])
        return JournalSettings(**known)

    @workflow_action
    def update(self, actor: Actor, update: JournalSettingsUpdate) -> JournalSettings:
        require_role(actor, Role.EDITOR)
        data = update.model_dump(exclude_unset=True, mode="json")
        # 空字符串凭据视为清除
        for key in ("crossref_username", "crossref_password"):
            if key in data and not (data[key] or "").strip():
                data[key] = None
        data["updated_at"] = datetime.now(timezone.utc).isoformat()

        existing = self._load_row()
        if existing:
            self.client.table("journal_settings").update(data).eq("id", existing["id"]).execute()
        else:
            self.client.table("journal_settings").insert(data).execute()
        return self.get()
