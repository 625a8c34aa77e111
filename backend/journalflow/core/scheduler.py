from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from journalflow.lib.api_client import extract_rows, supabase_admin
from journalflow.models.notification import NotificationEvent
from journalflow.services.notification_service import NotificationDispatcher
from journalflow.services.review_service import parse_timestamp

logger = logging.getLogger("journalflow.scheduler")

REMINDER_WINDOW = timedelta(days=3)


class ReviewReminderSweep:
    """
    催审提醒（由 /api/v1/internal/cron/review-reminders 定时触发）

    中文注释:
    1) 选取 submitted_at 为空且 deadline <= now + 3 天的审稿任务（含已逾期）。
    2) 每条任务发一条 review_reminder；不做去重，重复触发会重复提醒。
    3) 单条通知失败只记录日志，不中断整体扫描。
    """

    def __init__(self, *, client: Any = None, dispatcher: Optional[NotificationDispatcher] = None) -> None:
        self.client = client or supabase_admin
        self.dispatcher = dispatcher or NotificationDispatcher(client=self.client)

    def run(self, now: Optional[datetime] = None) -> int:
        now = now or datetime.now(timezone.utc)
        threshold = now + REMINDER_WINDOW

        res = (
            self.client.table("reviews")
            .select("id, reviewer_id, deadline, submission_id, submissions(title)")
            .is_("submitted_at", "null")
            .lte("deadline", threshold.isoformat())
            .execute()
        )

        sent = 0
        for row in extract_rows(res):
            submission = row.get("submissions") or {}
            title = submission.get("title") or "a manuscript"
            deadline = parse_timestamp(row.get("deadline"))
            state = "overdue" if deadline is not None and deadline < now else "approaching its deadline"
            event = NotificationEvent(
                user_id=str(row.get("reviewer_id")),
                type="review_reminder",
                title="Review Reminder",
                message=f'Your review for "{title}" is {state}.',
                link=f"/dashboard/reviews/{row.get('id')}",
                data={"title": title, "deadline": row.get("deadline")},
            )
            try:
                self.dispatcher.dispatch(event)
            except Exception as e:
                logger.warning("[Reminders] dispatch failed for review %s (ignored): %s", row.get("id"), e)
                continue
            sent += 1

        logger.info("[Reminders] %s reminders sent", sent)
        return sent
