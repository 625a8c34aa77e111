from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from postgrest.exceptions import APIError

from journalflow.core.errors import (
    ActionResult,
    AuthorizationError,
    ConflictOfInterestError,
    DuplicateAssignmentError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
    workflow_action,
)
from journalflow.core.roles import Role, has_role, require_role
from journalflow.lib.api_client import extract_rows, first_row, is_unique_violation, supabase_admin
from journalflow.models.notification import NotificationEvent
from journalflow.models.submission import REVIEWABLE_STATUSES, SubmissionStatus
from journalflow.models.user import Actor
from journalflow.services.editorial_service import EditorialService
from journalflow.services.notification_service import NotificationDispatcher, emit_events
from journalflow.services.profile_service import ProfileService
from journalflow.services.settings_service import SettingsService
from journalflow.services.visibility import author_review_view

logger = logging.getLogger("journalflow.reviews")

# 分配审稿人后需要回到 under_review 的状态（首次分配 / 新一轮修回）
_REENTRY_STATUSES = frozenset({SubmissionStatus.SUBMITTED.value, SubmissionStatus.REVISION_REQUESTED.value})


def parse_timestamp(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        raw = str(value).strip()
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(raw)
        except ValueError:
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def is_overdue(review: Dict[str, Any], now: Optional[datetime] = None) -> bool:
    """
    逾期：未提交且截止时间早于 now（无截止时间永不逾期）。
    """
    if review.get("submitted_at"):
        return False
    deadline = parse_timestamp(review.get("deadline"))
    if deadline is None:
        return False
    return deadline < (now or datetime.now(timezone.utc))


class ReviewService:
    """
    审稿分配与提交。

    中文注释:
    - (submission_id, reviewer_id) 的唯一性由数据库约束保证；这里不做“先查再插”，
      直接插入并把 23505 映射为 DuplicateAssignmentError。
    - 利益冲突：审稿人不能是投稿作者本人。
    """

    def __init__(
        self,
        *,
        client: Any = None,
        dispatcher: Any = None,
        editorial: EditorialService | None = None,
        profiles: ProfileService | None = None,
        settings: SettingsService | None = None,
    ) -> None:
        self.client = client or supabase_admin
        self.dispatcher = dispatcher or NotificationDispatcher(client=self.client)
        self.editorial = editorial or EditorialService(client=self.client)
        self.profiles = profiles or ProfileService(client=self.client)
        self.settings = settings or SettingsService(client=self.client)

    def _now(self) -> datetime:
        return datetime.now(timezone.utc)

    def _get_review(self, review_id: str) -> Dict[str, Any]:
        res = self.client.table("reviews").select("*").eq("id", str(review_id)).limit(1).execute()
        row = first_row(res)
        if not row:
            raise NotFoundError("Review not found")
        return row

    @workflow_action
    def assign_reviewer(
        self,
        submission_id: str,
        reviewer_id: str,
        actor: Actor,
        *,
        deadline: Optional[datetime] = None,
    ) -> ActionResult[Dict[str, Any]]:
        require_role(actor, Role.EDITOR)
        submission = self.editorial.get_submission(submission_id)
        status = str(submission.get("status") or "")
        if status not in REVIEWABLE_STATUSES:
            raise InvalidStateError(f"Cannot assign reviewers while submission is {status}")
        if str(submission.get("submitting_author_id")) == str(reviewer_id):
            raise ConflictOfInterestError("The submitting author cannot review their own submission")

        now = self._now()
        if deadline is None:
            days = self.settings.get().default_review_deadline_days
            deadline = now + timedelta(days=days)
        elif deadline.tzinfo is None:
            deadline = deadline.replace(tzinfo=timezone.utc)

        payload = {
            "submission_id": str(submission_id),
            "reviewer_id": str(reviewer_id),
            "content": None,
            "deadline": deadline.isoformat(),
            "submitted_at": None,
            "created_at": now.isoformat(),
            "updated_at": now.isoformat(),
        }
        try:
            res = self.client.table("reviews").insert(payload).execute()
        except APIError as e:
            if is_unique_violation(e):
                raise DuplicateAssignmentError("Reviewer is already assigned to this submission")
            raise
        review = first_row(res) or payload

        # 条件推进而不是基于上面读到的快照做 compare-and-set：并发的其他分配已推进时这里是无操作
        self.editorial.advance_if(
            submission_id,
            from_statuses=_REENTRY_STATUSES,
            to_status=SubmissionStatus.UNDER_REVIEW.value,
        )

        title = submission.get("title") or "a manuscript"
        deadline_text = deadline.strftime("%Y-%m-%d")
        events = [
            NotificationEvent(
                user_id=str(reviewer_id),
                type="reviewer_assigned",
                title="Review Invitation",
                message=f'You have been assigned to review "{title}". Deadline: {deadline_text}.',
                link="/dashboard/reviews",
                data={"deadline": deadline_text},
            )
        ]
        emit_events(self.dispatcher, events)
        logger.info("[Reviews] reviewer %s assigned to submission %s", reviewer_id, submission_id)
        return ActionResult.success(review, events)

    @workflow_action
    def submit_review(self, review_id: str, actor: Actor, content: str) -> ActionResult[Dict[str, Any]]:
        review = self._get_review(review_id)
        if str(review.get("reviewer_id")) != actor.id:
            raise AuthorizationError("Only the assigned reviewer can submit this review")
        content = str(content or "").strip()
        if not content:
            raise ValidationError("Review content is required")
        if review.get("submitted_at"):
            raise ValidationError("Review already submitted")

        now = self._now().isoformat()
        res = (
            self.client.table("reviews")
            .update({"content": content, "submitted_at": now, "updated_at": now})
            .eq("id", str(review_id))
            .is_("submitted_at", "null")
            .execute()
        )
        updated = first_row(res)
        if updated is None:
            # 并发下另一请求已提交
            raise ValidationError("Review already submitted")

        submission_id = str(review.get("submission_id"))
        try:
            title = self.editorial.get_submission(submission_id).get("title") or "a manuscript"
        except NotFoundError:
            title = "a manuscript"
        events = [
            NotificationEvent(
                user_id=editor_id,
                type="review_submitted",
                title="Review Submitted",
                message=f'A review has been submitted for "{title}".',
                link=f"/dashboard/editor/submissions/{submission_id}",
                data={"title": title},
            )
            for editor_id in self.profiles.list_user_ids_with_role(Role.EDITOR)
        ]
        emit_events(self.dispatcher, events)
        return ActionResult.success(updated, events)

    def is_overdue(self, review: Dict[str, Any], now: Optional[datetime] = None) -> bool:
        return is_overdue(review, now)

    def _with_overdue(self, rows: List[Dict[str, Any]], now: datetime) -> List[Dict[str, Any]]:
        return [{**row, "is_overdue": is_overdue(row, now)} for row in rows]

    @workflow_action
    def list_overdue(self, actor: Actor) -> List[Dict[str, Any]]:
        require_role(actor, Role.EDITOR)
        now = self._now()
        res = (
            self.client.table("reviews")
            .select("*")
            .is_("submitted_at", "null")
            .lt("deadline", now.isoformat())
            .order("deadline")
            .execute()
        )
        # 以内存判断为准（deadline 可能为空）
        return [row for row in self._with_overdue(extract_rows(res), now) if row["is_overdue"]]

    def list_for_reviewer(self, actor: Actor) -> List[Dict[str, Any]]:
        res = (
            self.client.table("reviews")
            .select("*")
            .eq("reviewer_id", actor.id)
            .order("created_at", desc=True)
            .execute()
        )
        return self._with_overdue(extract_rows(res), self._now())

    @workflow_action
    def list_for_submission(self, submission_id: str, actor: Actor) -> List[Dict[str, Any]]:
        """
        编辑看到全部审稿记录（含审稿人 id）；投稿作者只看到已提交的意见，且不含审稿人身份。
        """
        submission = self.editorial.get_submission(submission_id)
        res = (
            self.client.table("reviews")
            .select("*")
            .eq("submission_id", str(submission_id))
            .order("created_at")
            .execute()
        )
        rows = extract_rows(res)
        if has_role(actor.roles, Role.EDITOR):
            return self._with_overdue(rows, self._now())
        if str(submission.get("submitting_author_id")) == actor.id:
            return [author_review_view(row) for row in rows if row.get("submitted_at")]
        raise AuthorizationError("Not allowed to view reviews for this submission")
