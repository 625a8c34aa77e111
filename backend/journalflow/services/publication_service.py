from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from postgrest.exceptions import APIError

from journalflow.core.doi_generator import format_identifier, year_window
from journalflow.core.errors import (
    ActionResult,
    InvalidStateError,
    NotFoundError,
    ValidationError,
    workflow_action,
)
from journalflow.core.roles import Role, require_role
from journalflow.lib.api_client import extract_rows, first_row, is_unique_violation, supabase_admin
from journalflow.models.notification import NotificationEvent
from journalflow.models.publication import DepositStatus
from journalflow.models.submission import SubmissionStatus
from journalflow.models.user import Actor
from journalflow.services.editorial_service import EditorialService
from journalflow.services.notification_service import NotificationDispatcher, emit_events
from journalflow.services.settings_service import SettingsService

logger = logging.getLogger("journalflow.publications")

# doi 唯一约束冲突时的重试上限
MAX_MINT_ATTEMPTS = 5


class PublicationService:
    """
    出版与 DOI 铸造。

    中文注释:
    - 序号 = 当年已发表数量 + 1（count-then-insert）。
    - 并发下两个请求可能算出同一序号：publications.doi 有唯一约束，冲突(23505)时重新计数再试。
    - publications.submission_id 同样唯一：同一稿件重复发表会以 InvalidStateError 失败。
    - 铸造后 accepted -> published 的 compare-and-set 失败（例如并发撤稿）时删除刚写入的 publication。
    """

    def __init__(
        self,
        *,
        client: Any = None,
        dispatcher: Any = None,
        editorial: EditorialService | None = None,
        settings: SettingsService | None = None,
    ) -> None:
        self.client = client or supabase_admin
        self.dispatcher = dispatcher or NotificationDispatcher(client=self.client)
        self.editorial = editorial or EditorialService(client=self.client)
        self.settings = settings or SettingsService(client=self.client)

    def _now(self) -> datetime:
        return datetime.now(timezone.utc)

    def _count_in_year(self, year: int) -> int:
        start, end = year_window(year)
        res = (
            self.client.table("publications")
            .select("id", count="exact")
            .gte("published_at", start)
            .lt("published_at", end)
            .execute()
        )
        count = getattr(res, "count", None)
        return int(count) if count is not None else len(extract_rows(res))

    def _existing_for_submission(self, submission_id: str) -> Optional[Dict[str, Any]]:
        res = self.client.table("publications").select("id").eq("submission_id", str(submission_id)).limit(1).execute()
        return first_row(res)

    def _mint(self, submission_id: str) -> Dict[str, Any]:
        settings = self.settings.get()
        for attempt in range(1, MAX_MINT_ATTEMPTS + 1):
            now = self._now()
            sequence = self._count_in_year(now.year) + 1
            doi = format_identifier(
                prefix=settings.doi_prefix,
                namespace=settings.doi_namespace,
                year=now.year,
                sequence=sequence,
            )
            payload = {
                "submission_id": str(submission_id),
                "doi": doi,
                "published_at": now.isoformat(),
                "retracted": False,
                "retraction_notice": None,
                "crossref_deposit_status": DepositStatus.PENDING.value,
                "crossref_deposit_error": None,
            }
            try:
                res = self.client.table("publications").insert(payload).execute()
                return first_row(res) or payload
            except APIError as e:
                if not is_unique_violation(e):
                    raise
                if self._existing_for_submission(submission_id):
                    raise InvalidStateError("Submission is already published")
                logger.warning("[Publications] DOI %s taken (attempt %s), recounting", doi, attempt)
        raise InvalidStateError("Could not allocate a unique DOI; please retry")

    def _discard(self, publication: Dict[str, Any], submission_id: str) -> None:
        query = self.client.table("publications").delete()
        if publication.get("id"):
            query = query.eq("id", str(publication["id"]))
        else:
            query = query.eq("submission_id", str(submission_id))
        query.execute()
        logger.warning("[Publications] discarded %s: submission %s left accepted state", publication.get("doi"), submission_id)

    @workflow_action
    def publish(self, submission_id: str, actor: Actor) -> ActionResult[Dict[str, Any]]:
        require_role(actor, Role.EDITOR)
        submission = self.editorial.get_submission(submission_id)
        if str(submission.get("status")) != SubmissionStatus.ACCEPTED.value:
            raise InvalidStateError("Only accepted submissions can be published")

        publication = self._mint(submission_id)
        try:
            self.editorial.update_status(submission=submission, to_status=SubmissionStatus.PUBLISHED.value)
        except InvalidStateError:
            self._discard(publication, submission_id)
            raise

        title = submission.get("title") or "Your paper"
        doi = publication.get("doi")
        events = [
            NotificationEvent(
                user_id=str(submission.get("submitting_author_id")),
                type="paper_published",
                title="Paper Published",
                message=f'Your paper "{title}" has been published with DOI: {doi}',
                link=f"/archive/{publication.get('id')}" if publication.get("id") else "/archive",
                data={"title": title, "doi": doi},
            )
        ]
        emit_events(self.dispatcher, events)
        logger.info("[Publications] submission %s published as %s", submission_id, doi)
        return ActionResult.success(publication, events)

    @workflow_action
    def retract(self, publication_id: str, actor: Actor, notice: str) -> Dict[str, Any]:
        require_role(actor, Role.EDITOR)
        notice = str(notice or "").strip()
        if not notice:
            raise ValidationError("Retraction notice is required")
        res = (
            self.client.table("publications")
            .update({"retracted": True, "retraction_notice": notice})
            .eq("id", str(publication_id))
            .execute()
        )
        row = first_row(res)
        if row is None:
            raise NotFoundError("Publication not found")
        return row

    @workflow_action
    def get_publication(self, publication_id: str) -> Dict[str, Any]:
        res = self.client.table("publications").select("*").eq("id", str(publication_id)).limit(1).execute()
        row = first_row(res)
        if not row:
            raise NotFoundError("Publication not found")
        return row

    def list_public(self, *, limit: int = 50, offset: int = 0) -> List[Dict[str, Any]]:
        """
        公开档案：按发表时间倒序；撤稿记录保留并带 retracted 标记。
        """
        res = (
            self.client.table("publications")
            .select("*")
            .order("published_at", desc=True)
            .range(offset, offset + limit - 1)
            .execute()
        )
        return extract_rows(res)
