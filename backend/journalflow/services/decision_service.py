from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List

from journalflow.core.errors import (
    ActionResult,
    AuthorizationError,
    InvalidStateError,
    ValidationError,
    workflow_action,
)
from journalflow.core.roles import Role, has_role, require_role
from journalflow.lib.api_client import extract_rows, first_row, supabase_admin
from journalflow.models.decision import DECISION_PAST_TENSE, DECISION_STATUS_MAP, DecisionValue
from journalflow.models.notification import NotificationEvent
from journalflow.models.submission import SubmissionStatus
from journalflow.models.user import Actor
from journalflow.services.editorial_service import EditorialService
from journalflow.services.notification_service import NotificationDispatcher, emit_events

logger = logging.getLogger("journalflow.decisions")

# 未终结的稿件可以做出决定；submitted 下直接决定即 desk reject / desk accept
DECIDABLE_STATUSES = frozenset(
    {
        SubmissionStatus.SUBMITTED.value,
        SubmissionStatus.UNDER_REVIEW.value,
        SubmissionStatus.REVISION_REQUESTED.value,
    }
)


class DecisionService:
    """
    编辑决策（只追加）。

    中文注释:
    - 每次决策追加一条 decisions 记录，最新一条驱动稿件状态；历史全部保留。
    - 先校验状态机再写入，非法状态不会留下决策记录。
    - 决策记录写入失败时把状态撤回原值，保证“最新决策驱动状态”。
    """

    def __init__(self, *, client: Any = None, dispatcher: Any = None, editorial: EditorialService | None = None) -> None:
        self.client = client or supabase_admin
        self.dispatcher = dispatcher or NotificationDispatcher(client=self.client)
        self.editorial = editorial or EditorialService(client=self.client)

    @workflow_action
    def issue_decision(
        self,
        submission_id: str,
        actor: Actor,
        decision: str,
        notes: str = "",
    ) -> ActionResult[Dict[str, Any]]:
        require_role(actor, Role.EDITOR)
        value = str(decision or "").strip().lower()
        if value not in DECISION_STATUS_MAP:
            raise ValidationError(f"Unknown decision: {decision}")

        submission = self.editorial.get_submission(submission_id)
        current = str(submission.get("status") or "")
        target = DECISION_STATUS_MAP[value]
        if current not in DECIDABLE_STATUSES or not SubmissionStatus.can_transition(current, target):
            raise InvalidStateError(f"Cannot issue a decision while submission is {current}")

        # 状态先走 compare-and-set，成功后再追加决策记录，避免并发下留下孤立决策
        updated = self.editorial.update_status(submission=submission, to_status=target)

        notes = str(notes or "").strip()
        row = {
            "submission_id": str(submission_id),
            "editor_id": actor.id,
            "decision": value,
            "notes": notes,
            "created_at": datetime.now(timezone.utc).isoformat(),
        }
        try:
            res = self.client.table("decisions").insert(row).execute()
        except Exception:
            self.editorial.restore_status(submission_id, from_status=target, to_status=current)
            raise
        decision_row = first_row(res) or row

        title = submission.get("title") or "Your manuscript"
        past = DECISION_PAST_TENSE[value]
        message = f'"{title}" has been {past}.'
        if notes:
            message = f"{message} Editor notes: {notes}"
        notification_type = "revision_requested" if value == DecisionValue.REVISE.value else "decision_made"
        events = [
            NotificationEvent(
                user_id=str(submission.get("submitting_author_id")),
                type=notification_type,
                title="Revision Requested" if value == DecisionValue.REVISE.value else "Editorial Decision",
                message=message,
                link=f"/dashboard/submissions/{submission_id}",
                data={"decision": past, "notes": notes, "title": title},
            )
        ]
        emit_events(self.dispatcher, events)
        logger.info("[Decisions] submission %s: %s by %s", submission_id, value, actor.id)
        return ActionResult.success({"decision": decision_row, "submission": updated}, events)

    @workflow_action
    def list_decisions(self, submission_id: str, actor: Actor) -> List[Dict[str, Any]]:
        submission = self.editorial.get_submission(submission_id)
        is_owner = str(submission.get("submitting_author_id")) == actor.id
        if not (is_owner or has_role(actor.roles, Role.EDITOR)):
            raise AuthorizationError("Not allowed to view decisions for this submission")
        res = (
            self.client.table("decisions")
            .select("*")
            .eq("submission_id", str(submission_id))
            .order("created_at")
            .execute()
        )
        return extract_rows(res)
