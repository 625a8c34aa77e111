from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from journalflow.core.errors import (
    ActionResult,
    AuthorizationError,
    InvalidStateError,
    ValidationError,
    workflow_action,
)
from journalflow.core.roles import Role, has_role, require_role
from journalflow.lib.api_client import extract_rows, first_row, supabase_admin
from journalflow.models.notification import NotificationEvent
from journalflow.models.submission import CoAuthor, SubmissionStatus
from journalflow.models.user import Actor
from journalflow.services.editorial_service import EditorialService
from journalflow.services.notification_service import NotificationDispatcher, emit_events
from journalflow.services.profile_service import ProfileService
from journalflow.services.settings_service import SettingsService
from journalflow.services.visibility import reviewer_view

logger = logging.getLogger("journalflow.submissions")

# withdraw 不允许的状态
NON_WITHDRAWABLE = frozenset({SubmissionStatus.PUBLISHED.value, SubmissionStatus.WITHDRAWN.value})


def _clean_keywords(keywords: Iterable[str] | None) -> list[str]:
    out: list[str] = []
    for raw in keywords or []:
        kw = str(raw or "").strip()
        if kw and kw not in out:
            out.append(kw)
    return out


def _clean_co_authors(co_authors: Iterable[CoAuthor | dict] | None) -> list[dict[str, str]]:
    out: list[dict[str, str]] = []
    for raw in co_authors or []:
        item = raw.model_dump() if isinstance(raw, CoAuthor) else dict(raw or {})
        name = str(item.get("name") or "").strip()
        if not name:
            raise ValidationError("Co-author name is required")
        out.append({"name": name, "affiliation": str(item.get("affiliation") or "").strip()})
    return out


class SubmissionService:
    """
    投稿生命周期：创建、上传稿件、撤稿、按角色读取。

    中文注释:
    - 每个操作显式接收 Actor（身份 + 角色集合），不读取全局身份。
    - 通知通过 NotificationDispatcher 以“发后即忘”的方式发出，同时随 ActionResult.events 返回。
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

    def _now(self) -> str:
        return datetime.now(timezone.utc).isoformat()

    @workflow_action
    def create_submission(
        self,
        actor: Actor,
        *,
        title: str,
        abstract: str,
        keywords: Iterable[str] | None = None,
        co_authors: Iterable[CoAuthor | dict] | None = None,
    ) -> ActionResult[dict[str, Any]]:
        title = str(title or "").strip()
        abstract = str(abstract or "").strip()
        if not title:
            raise ValidationError("Title is required")
        if not abstract:
            raise ValidationError("Abstract is required")

        now = self._now()
        payload = {
            "title": title,
            "abstract": abstract,
            "keywords": _clean_keywords(keywords),
            "co_authors": _clean_co_authors(co_authors),
            "submitting_author_id": actor.id,
            "file_path": None,
            "extracted_text": None,
            "status": SubmissionStatus.SUBMITTED.value,
            "created_at": now,
            "updated_at": now,
        }
        res = self.client.table("submissions").insert(payload).execute()
        row = first_row(res) or payload

        events = [
            NotificationEvent(
                user_id=actor.id,
                type="submission_received",
                title="Submission Received",
                message=f'Your manuscript "{title}" has been submitted.',
                link=f"/dashboard/submissions/{row.get('id')}",
                data={"title": title},
            )
        ]
        logger.info("[Submissions] %s created by %s", row.get("id"), actor.id)
        emit_events(self.dispatcher, events)
        return ActionResult.success(row, events)

    @workflow_action
    def attach_manuscript_file(self, submission_id: str, actor: Actor, file_path: str) -> dict[str, Any]:
        """
        记录上传完成的稿件文件路径（幂等，最后一次写入生效）。
        """
        file_path = str(file_path or "").strip()
        if not file_path:
            raise ValidationError("file_path is required")
        submission = self.editorial.get_submission(submission_id)
        if str(submission.get("submitting_author_id")) != actor.id:
            raise AuthorizationError("Only the submitting author can upload the manuscript")

        res = (
            self.client.table("submissions")
            .update({"file_path": file_path, "updated_at": self._now()})
            .eq("id", str(submission_id))
            .eq("submitting_author_id", actor.id)
            .execute()
        )
        return first_row(res) or {**submission, "file_path": file_path}

    @workflow_action
    def withdraw(self, submission_id: str, actor: Actor) -> ActionResult[dict[str, Any]]:
        submission = self.editorial.get_submission(submission_id)
        if str(submission.get("submitting_author_id")) != actor.id:
            raise AuthorizationError("Only the submitting author can withdraw")
        if str(submission.get("status")) in NON_WITHDRAWABLE:
            raise InvalidStateError("Cannot withdraw this submission")

        updated = self.editorial.update_status(
            submission=submission,
            to_status=SubmissionStatus.WITHDRAWN.value,
        )

        title = submission.get("title") or "A submission"
        events = [
            NotificationEvent(
                user_id=editor_id,
                type="submission_withdrawn",
                title="Submission Withdrawn",
                message=f'"{title}" has been withdrawn.',
                link=f"/dashboard/editor/submissions/{submission_id}",
                data={"title": title},
            )
            for editor_id in self.profiles.list_user_ids_with_role(Role.EDITOR)
        ]
        emit_events(self.dispatcher, events)
        return ActionResult.success(updated, events)

    def _load_for_viewer(self, submission_id: str, actor: Actor) -> tuple[dict[str, Any], bool]:
        """返回 (稿件, 是否可见完整记录)；既非编辑/作者也未被分配时拒绝。"""
        submission = self.editorial.get_submission(submission_id)
        if has_role(actor.roles, Role.EDITOR) or str(submission.get("submitting_author_id")) == actor.id:
            return submission, True

        assigned = (
            self.client.table("reviews")
            .select("id")
            .eq("submission_id", str(submission_id))
            .eq("reviewer_id", actor.id)
            .limit(1)
            .execute()
        )
        if not extract_rows(assigned):
            raise AuthorizationError("Not allowed to view this submission")
        return submission, False

    @workflow_action
    def get_submission(self, submission_id: str, actor: Actor) -> dict[str, Any]:
        """
        按调用者角色返回稿件视图：
        - 编辑 / 投稿作者：完整记录
        - 被分配的审稿人：经盲审策略过滤后的视图
        """
        submission, full = self._load_for_viewer(submission_id, actor)
        if full:
            return submission

        settings = self.settings.get()
        author_profile = self.profiles.get_profile(str(submission.get("submitting_author_id")))
        return reviewer_view(submission, author_profile, settings.review_type)

    @workflow_action
    def manuscript_path(self, submission_id: str, actor: Actor) -> Optional[str]:
        # 审稿人视图不含 file_path，取签名 URL 时按同样的可见性规则读取原始路径
        submission, _ = self._load_for_viewer(submission_id, actor)
        return submission.get("file_path") or None

    def list_for_author(self, actor: Actor) -> list[dict[str, Any]]:
        res = (
            self.client.table("submissions")
            .select("*")
            .eq("submitting_author_id", actor.id)
            .order("created_at", desc=True)
            .execute()
        )
        return extract_rows(res)

    @workflow_action
    def list_all(self, actor: Actor, *, status: Optional[str] = None) -> list[dict[str, Any]]:
        require_role(actor, Role.EDITOR)
        query = self.client.table("submissions").select("*")
        if status:
            try:
                query = query.eq("status", SubmissionStatus(status).value)
            except ValueError:
                raise ValidationError(f"Unknown status: {status}")
        res = query.order("created_at", desc=True).execute()
        return extract_rows(res)
