from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from journalflow.core.errors import NotFoundError, ValidationError, workflow_action
from journalflow.core.roles import DEFAULT_ROLES, Role, require_role, validate_role_set
from journalflow.lib.api_client import extract_rows, first_row, supabase_admin
from journalflow.models.user import Actor

logger = logging.getLogger("journalflow.profiles")

ORCID_PATTERN = re.compile(r"^\d{4}-\d{4}-\d{4}-\d{3}[0-9X]$")

# 用户可自行修改的字段（roles 只能由编辑修改）
SELF_EDITABLE_FIELDS = ("full_name", "affiliation", "orcid_id", "bio")


class ProfileService:
    def __init__(self, *, client: Any = None) -> None:
        self.client = client or supabase_admin

    def _now(self) -> str:
        return datetime.now(timezone.utc).isoformat()

    def get_profile(self, user_id: str) -> Optional[Dict[str, Any]]:
        res = self.client.table("profiles").select("*").eq("id", str(user_id)).limit(1).execute()
        return first_row(res)

    def get_profiles(self, user_ids: Iterable[str]) -> Dict[str, Dict[str, Any]]:
        ids = sorted({str(uid).strip() for uid in user_ids if str(uid).strip()})
        if not ids:
            return {}
        res = self.client.table("profiles").select("*").in_("id", ids).execute()
        return {str(row.get("id")): row for row in extract_rows(res) if row.get("id")}

    def ensure_profile(self, *, user_id: str, email: Optional[str]) -> Dict[str, Any]:
        """
        获取（或首次创建）用户 profile。

        中文注释:
        - 自助注册的默认角色为 ['author']；reviewer/editor 只能由编辑授予。
        """
        fallback = {"id": str(user_id), "email": email, "roles": list(DEFAULT_ROLES)}
        try:
            existing = self.get_profile(user_id)
            if existing:
                return existing
            now = self._now()
            inserted = (
                self.client.table("profiles")
                .insert(
                    {
                        "id": str(user_id),
                        "email": email,
                        "full_name": "",
                        "affiliation": "",
                        "orcid_id": None,
                        "bio": "",
                        "roles": list(DEFAULT_ROLES),
                        "created_at": now,
                        "updated_at": now,
                    }
                )
                .execute()
            )
            return first_row(inserted) or fallback
        except Exception as e:
            # 最小化降级：至少把用户身份返回给上层（仅 author 权限）
            logger.warning("[Profiles] fetch/create profile failed: %s", e)
            return fallback

    def list_user_ids_with_role(self, role: Role | str) -> List[str]:
        name = role.value if isinstance(role, Role) else str(role)
        res = self.client.table("profiles").select("id").contains("roles", [name]).execute()
        return [str(row["id"]) for row in extract_rows(res) if row.get("id")]

    @workflow_action
    def update_own_profile(self, actor: Actor, fields: Dict[str, Any]) -> Dict[str, Any]:
        data = {k: v for k, v in (fields or {}).items() if k in SELF_EDITABLE_FIELDS and v is not None}
        orcid = data.get("orcid_id")
        if orcid and not ORCID_PATTERN.match(str(orcid)):
            raise ValidationError("Invalid ORCID identifier")
        if "full_name" in data and not str(data["full_name"]).strip():
            raise ValidationError("full_name cannot be empty")
        data["updated_at"] = self._now()

        res = self.client.table("profiles").update(data).eq("id", actor.id).execute()
        row = first_row(res)
        if row is None:
            raise NotFoundError("Profile not found")
        return row

    @workflow_action
    def set_roles(self, actor: Actor, user_id: str, roles: Iterable[str]) -> Dict[str, Any]:
        require_role(actor, Role.EDITOR)
        normalized = validate_role_set(roles)
        res = (
            self.client.table("profiles")
            .update({"roles": normalized, "updated_at": self._now()})
            .eq("id", str(user_id))
            .execute()
        )
        row = first_row(res)
        if row is None:
            raise NotFoundError("Profile not found")
        return row
