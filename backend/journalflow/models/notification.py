from dataclasses import dataclass, field
from typing import Any, Literal, Optional


NotificationType = Literal[
    "submission_received",
    "reviewer_assigned",
    "review_submitted",
    "decision_made",
    "paper_published",
    "submission_withdrawn",
    "review_reminder",
    "revision_requested",
]


@dataclass(frozen=True)
class NotificationEvent:
    """
    领域操作产生的通知事件（交给 NotificationDispatcher 消费）。

    `data` 只用于邮件模板渲染，不落库。
    """

    user_id: str
    type: NotificationType
    title: str
    message: str
    link: Optional[str] = None
    data: dict[str, Any] = field(default_factory=dict)
