from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from journalflow.core.errors import InvalidStateError, NotFoundError
from journalflow.lib.api_client import first_row, supabase_admin
from journalflow.models.submission import SubmissionStatus

logger = logging.getLogger("journalflow.workflow")


class EditorialService:
    """
    统一的投稿状态机写入服务。

    中文注释:
    - 核心状态流转逻辑必须显性可见，避免散落在 API 层/前端。
    - 写入时带上 `status = from_status` 条件（compare-and-set）：并发下另一请求已改变状态时，
      本次更新影响 0 行，按 InvalidStateError 处理，而不是静默覆盖。
    """

    def __init__(self, *, client: Any = None) -> None:
        self.client = client or supabase_admin

    def _now(self) -> str:
        return datetime.now(timezone.utc).isoformat()

    def get_submission(self, submission_id: str) -> dict[str, Any]:
        res = self.client.table("submissions").select("*").eq("id", str(submission_id)).limit(1).execute()
        row = first_row(res)
        if not row:
            raise NotFoundError("Submission not found")
        return row

    def update_status(
        self,
        *,
        submission: dict[str, Any],
        to_status: str,
        extra_updates: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        """
        按状态机规则把稿件从当前状态迁移到 to_status。
        """
        submission_id = str(submission["id"])
        from_status = str(submission.get("status") or "")
        to_status = SubmissionStatus(to_status).value

        if not SubmissionStatus.can_transition(from_status, to_status):
            allowed = sorted(SubmissionStatus.allowed_next(from_status))
            raise InvalidStateError(
                f"Invalid transition: {from_status} -> {to_status}. Allowed: {allowed}"
            )

        payload: dict[str, Any] = {"status": to_status, "updated_at": self._now()}
        if extra_updates:
            payload.update(extra_updates)

        res = (
            self.client.table("submissions")
            .update(payload)
            .eq("id", submission_id)
            .eq("status", from_status)
            .execute()
        )
        updated = first_row(res)
        if updated is None:
            raise InvalidStateError("Submission status changed concurrently; reload and retry")
        logger.info("[Workflow] submission %s: %s -> %s", submission_id, from_status, to_status)
        return updated

    def advance_if(self, submission_id: str, *, from_statuses: Iterable[str], to_status: str) -> Optional[dict[str, Any]]:
        """
        条件推进：仅当稿件当前状态在 from_statuses 中时才写入 to_status。

        中文注释:
        - 不依赖调用方之前读到的状态快照；并发下已被别的请求推进时影响 0 行，返回 None（无操作）。
        - 适用于“幂等推进”类场景，例如分配审稿人时 submitted / revision_requested -> under_review。
        """
        to_status = SubmissionStatus(to_status).value
        sources = [s for s in (str(x) for x in from_statuses) if SubmissionStatus.can_transition(s, to_status)]
        if not sources:
            return None
        res = (
            self.client.table("submissions")
            .update({"status": to_status, "updated_at": self._now()})
            .eq("id", str(submission_id))
            .in_("status", sources)
            .execute()
        )
        updated = first_row(res)
        if updated is not None:
            logger.info("[Workflow] submission %s: %s -> %s", submission_id, "/".join(sorted(sources)), to_status)
        return updated

    def restore_status(self, submission_id: str, *, from_status: str, to_status: str) -> bool:
        """
        补偿写回：后续写入失败时把状态从 from_status 撤回 to_status（仍是 compare-and-set，不走状态机规则）。
        """
        try:
            res = (
                self.client.table("submissions")
                .update({"status": to_status, "updated_at": self._now()})
                .eq("id", str(submission_id))
                .eq("status", from_status)
                .execute()
            )
        except Exception as e:
            logger.error("[Workflow] restore %s -> %s failed for %s: %s", from_status, to_status, submission_id, e)
            return False
        restored = first_row(res) is not None
        if restored:
            logger.warning("[Workflow] submission %s restored: %s -> %s", submission_id, from_status, to_status)
        return restored
