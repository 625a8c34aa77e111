from fastapi import APIRouter, Depends

from journalflow.api.v1.common import get_profile_service, respond
from journalflow.core.auth_utils import get_current_actor, get_current_profile
from journalflow.models.user import Actor, RoleUpdate, UserProfileUpdate
from journalflow.services.profile_service import ProfileService

router = APIRouter(prefix="/profiles", tags=["Profiles"])


@router.get("/me")
async def get_my_profile(profile: dict = Depends(get_current_profile)):
    return {"success": True, "data": profile}


@router.patch("/me")
async def update_my_profile(
    payload: UserProfileUpdate,
    actor: Actor = Depends(get_current_actor),
    service: ProfileService = Depends(get_profile_service),
):
    """
    更新个人资料（姓名 / 单位 / ORCID / 简介）；角色不可自助修改。
    """
    return respond(service.update_own_profile(actor, payload.model_dump(exclude_unset=True)))


@router.put("/{user_id}/roles")
async def set_user_roles(
    user_id: str,
    payload: RoleUpdate,
    actor: Actor = Depends(get_current_actor),
    service: ProfileService = Depends(get_profile_service),
):
    return respond(service.set_roles(actor, user_id, payload.roles))
