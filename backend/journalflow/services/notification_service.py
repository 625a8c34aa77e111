from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

from postgrest.exceptions import APIError

from journalflow.core.config import app_config
from journalflow.core.errors import NotFoundError, workflow_action
from journalflow.core.mail import EmailService
from journalflow.lib.api_client import extract_rows, first_row, supabase_admin
from journalflow.models.notification import NotificationEvent

logger = logging.getLogger("journalflow.notifications")


class NotificationService:
    """
    通知服务：封装 notifications 表的读写

    中文注释:
    1) 通知只追加，唯一允许的更新是把 read 置为 true。
    2) 读取/标记已读都按 user_id 过滤，用户只能看到/修改自己的通知。
    """

    def __init__(self, *, client: Any = None) -> None:
        self.client = client or supabase_admin

    @staticmethod
    def _normalize_link(link: Optional[str]) -> Optional[str]:
        raw = str(link or "").strip()
        if not raw:
            return None
        if raw.startswith("/"):
            return raw
        if raw.startswith("./"):
            return f"/{raw[2:]}"
        return None

    def create_notification(
        self,
        *,
        user_id: str,
        type: str,
        title: str,
        message: str,
        link: Optional[str] = None,
    ) -> Optional[Dict[str, Any]]:
        payload = {
            "user_id": user_id,
            "type": type,
            "title": title,
            "message": message,
            "link": self._normalize_link(link),
            "read": False,
        }
        try:
            res = self.client.table("notifications").insert(payload).execute()
            return first_row(res)
        except APIError as e:
            # 中文注释:
            # - notifications.user_id 有外键指向 profiles(id)；对已删除用户写通知会触发 23503。
            # - 该情况对主流程无影响，这里静默忽略并返回 None。
            text = str(e).lower()
            code = str(getattr(e, "code", "") or "").lower()
            if "23503" in code or "23503" in text:
                return None
            logger.warning("[Notifications] 创建失败: %s", e)
            return None
        except Exception as e:
            logger.warning("[Notifications] 创建失败: %s", e)
            return None

    def list_for_user(self, *, user_id: str, limit: int = 20, unread_only: bool = False) -> List[Dict[str, Any]]:
        query = self.client.table("notifications").select("*").eq("user_id", user_id)
        if unread_only:
            query = query.eq("read", False)
        res = query.order("created_at", desc=True).limit(limit).execute()
        return extract_rows(res)

    def unread_count(self, *, user_id: str) -> int:
        res = (
            self.client.table("notifications")
            .select("id", count="exact")
            .eq("user_id", user_id)
            .eq("read", False)
            .execute()
        )
        count = getattr(res, "count", None)
        return int(count) if count is not None else len(extract_rows(res))

    @workflow_action
    def mark_read(self, *, user_id: str, notification_id: str) -> Dict[str, Any]:
        res = (
            self.client.table("notifications")
            .update({"read": True})
            .eq("id", notification_id)
            .eq("user_id", user_id)
            .execute()
        )
        row = first_row(res)
        if row is None:
            # 不存在或不属于当前用户
            raise NotFoundError("Notification not found")
        return row

    def mark_all_read(self, *, user_id: str) -> int:
        res = (
            self.client.table("notifications")
            .update({"read": True})
            .eq("user_id", user_id)
            .eq("read", False)
            .execute()
        )
        return len(extract_rows(res))


class NotificationDispatcher:
    """
    通知分发器：消费领域事件（站内信 + 邮件）。

    中文注释:
    - 先写站内通知，再尽力发送邮件；任何一步失败都只记录日志，绝不影响领域操作结果。
    - 允许重复通知（at-least-once），但不能因为通知失败丢失领域状态。
    """

    def __init__(
        self,
        *,
        client: Any = None,
        email_service: EmailService | None = None,
        notifications: NotificationService | None = None,
    ) -> None:
        self.client = client or supabase_admin
        self._email = email_service
        self.notifications = notifications or NotificationService(client=self.client)

    @property
    def email(self) -> EmailService:
        if self._email is None:
            self._email = EmailService()
        return self._email

    def dispatch(self, event: NotificationEvent) -> None:
        self.notifications.create_notification(
            user_id=event.user_id,
            type=event.type,
            title=event.title,
            message=event.message,
            link=event.link,
        )
        try:
            self._send_email(event)
        except Exception as e:
            logger.warning("[Notifications] email delivery failed (ignored): %s", e)

    def dispatch_all(self, events: Iterable[NotificationEvent]) -> None:
        for event in events:
            try:
                self.dispatch(event)
            except Exception as e:
                logger.warning("[Notifications] dispatch failed (ignored): %s", e)

    def _send_email(self, event: NotificationEvent) -> None:
        if not self.email.is_configured():
            return
        res = self.client.table("profiles").select("email").eq("id", event.user_id).limit(1).execute()
        profile = first_row(res) or {}
        to_email = str(profile.get("email") or "").strip()
        if not to_email:
            return

        context: Dict[str, Any] = {
            "subject": event.title,
            "title": event.title,
            "message": event.message,
            "link": f"{app_config.site_url}{event.link}" if event.link else None,
        }
        context.update(event.data or {})
        self.email.send_notification_email(
            to_email=to_email,
            notification_type=event.type,
            subject=event.title,
            context=context,
        )


def emit_events(dispatcher: Any, events: List[NotificationEvent]) -> None:
    """
    Fire-and-forget: hand events to the dispatcher; never raise into the caller.
    """
    if not events or dispatcher is None:
        return
    try:
        dispatcher.dispatch_all(events)
    except Exception as e:
        logger.warning("[Notifications] dispatcher error (ignored): %s", e)
