from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from journalflow.core.config import app_config
from journalflow.lib.api_client import first_row, supabase_admin
from journalflow.models.publication import DepositStatus
from journalflow.services.crossref_client import CrossrefClient
from journalflow.services.profile_service import ProfileService
from journalflow.services.settings_service import SettingsService

logger = logging.getLogger("journalflow.registrar")


class RegistrarService:
    """
    把已发表论文的元数据登记到 Crossref。

    中文注释:
    - 在 publish 成功后作为后台任务执行；任何失败只更新 crossref_deposit_status / error，
      不影响出版本身。
    - 未配置 Crossref 凭据时保持 pending，等待编辑补全后再次触发。
    """

    def __init__(
        self,
        *,
        client: Any = None,
        settings: SettingsService | None = None,
        profiles: ProfileService | None = None,
        crossref_factory: Optional[Callable[..., CrossrefClient]] = None,
    ) -> None:
        self.client = client or supabase_admin
        self.settings = settings or SettingsService(client=self.client)
        self.profiles = profiles or ProfileService(client=self.client)
        self.crossref_factory = crossref_factory or CrossrefClient

    def _mark(self, publication_id: str, status: DepositStatus, error: Optional[str] = None) -> None:
        self.client.table("publications").update(
            {"crossref_deposit_status": status.value, "crossref_deposit_error": error}
        ).eq("id", str(publication_id)).execute()

    def _article_data(self, publication: dict[str, Any]) -> dict[str, Any]:
        res = (
            self.client.table("submissions")
            .select("*")
            .eq("id", str(publication.get("submission_id")))
            .limit(1)
            .execute()
        )
        submission = first_row(res) or {}
        author = self.profiles.get_profile(str(submission.get("submitting_author_id") or "")) or {}
        authors = [{"name": author.get("full_name") or "", "affiliation": author.get("affiliation") or ""}]
        authors.extend(submission.get("co_authors") or [])
        return {
            "doi": publication.get("doi"),
            "title": submission.get("title") or "",
            "published_at": publication.get("published_at"),
            "authors": authors,
        }

    async def deposit(self, publication_id: str) -> str:
        """
        返回最终的 deposit 状态（pending / deposited / failed）。
        """
        res = self.client.table("publications").select("*").eq("id", str(publication_id)).limit(1).execute()
        publication = first_row(res)
        if not publication:
            logger.warning("[Registrar] publication %s not found, skip deposit", publication_id)
            return DepositStatus.PENDING.value

        settings = self.settings.get()
        if not settings.has_crossref_credentials():
            logger.info("[Registrar] Crossref credentials not configured; %s stays pending", publication_id)
            return DepositStatus.PENDING.value

        try:
            crossref = self.crossref_factory(
                username=settings.crossref_username,
                password=settings.crossref_password,
            )
            xml = crossref.generate_xml(
                self._article_data(publication),
                journal_name=settings.journal_name,
                site_url=app_config.site_url,
            )
            await crossref.submit_deposit(xml)
        except Exception as e:
            logger.warning("[Registrar] deposit failed for %s: %s", publication_id, e)
            self._mark(publication_id, DepositStatus.FAILED, str(e)[:1000])
            return DepositStatus.FAILED.value

        self._mark(publication_id, DepositStatus.DEPOSITED)
        logger.info("[Registrar] publication %s deposited", publication_id)
        return DepositStatus.DEPOSITED.value
