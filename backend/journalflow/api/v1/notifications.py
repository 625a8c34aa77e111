from fastapi import APIRouter, Depends, Query

from journalflow.api.v1.common import get_notification_service, respond
from journalflow.core.auth_utils import get_current_actor
from journalflow.models.user import Actor
from journalflow.services.notification_service import NotificationService

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("")
async def list_notifications(
    limit: int = Query(20, ge=1, le=100),
    unread_only: bool = False,
    actor: Actor = Depends(get_current_actor),
    service: NotificationService = Depends(get_notification_service),
):
    """
    获取当前用户的通知列表（按 user_id 过滤）
    """
    rows = service.list_for_user(user_id=actor.id, limit=limit, unread_only=unread_only)
    return {"success": True, "data": rows}


@router.get("/unread-count")
async def unread_count(
    actor: Actor = Depends(get_current_actor),
    service: NotificationService = Depends(get_notification_service),
):
    return {"success": True, "data": {"count": service.unread_count(user_id=actor.id)}}


@router.patch("/{notification_id}/read")
async def mark_notification_read(
    notification_id: str,
    actor: Actor = Depends(get_current_actor),
    service: NotificationService = Depends(get_notification_service),
):
    """
    将通知标记为已读（仅允许更新自己的记录）
    """
    return respond(service.mark_read(user_id=actor.id, notification_id=notification_id))


@router.post("/read-all")
async def mark_all_read(
    actor: Actor = Depends(get_current_actor),
    service: NotificationService = Depends(get_notification_service),
):
    return {"success": True, "data": {"updated": service.mark_all_read(user_id=actor.id)}}
