from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field

from journalflow.models.submission import SubmissionStatus


class DecisionValue(str, Enum):
    ACCEPT = "accept"
    REJECT = "reject"
    REVISE = "revise"


# 决策 -> 稿件状态（固定映射）
DECISION_STATUS_MAP: dict[str, str] = {
    DecisionValue.ACCEPT.value: SubmissionStatus.ACCEPTED.value,
    DecisionValue.REJECT.value: SubmissionStatus.REJECTED.value,
    DecisionValue.REVISE.value: SubmissionStatus.REVISION_REQUESTED.value,
}

DECISION_PAST_TENSE: dict[str, str] = {
    DecisionValue.ACCEPT.value: "accepted",
    DecisionValue.REJECT.value: "rejected",
    DecisionValue.REVISE.value: "returned for revision",
}


class DecisionRequest(BaseModel):
    decision: str = Field(..., description="accept / reject / revise")
    notes: str = ""
