from fastapi import APIRouter, Depends

from journalflow.api.v1.common import get_settings_service, respond
from journalflow.core.auth_utils import get_current_actor
from journalflow.core.errors import ActionResult
from journalflow.models.journal_settings import JournalSettingsUpdate
from journalflow.models.user import Actor
from journalflow.services.settings_service import SettingsService

router = APIRouter(prefix="/settings", tags=["Settings"])


@router.get("")
async def get_settings(service: SettingsService = Depends(get_settings_service)):
    """
    期刊公开配置（不含 Crossref 密码）
    """
    return {"success": True, "data": service.get().public_dict()}


@router.put("")
async def update_settings(
    payload: JournalSettingsUpdate,
    actor: Actor = Depends(get_current_actor),
    service: SettingsService = Depends(get_settings_service),
):
    result = service.update(actor, payload)
    if result.ok:
        result = ActionResult.success(result.data.public_dict())
    return respond(result)
