from fastapi import APIRouter, BackgroundTasks, Depends, Query

from journalflow.api.v1.common import get_publication_service, get_registrar_service, respond
from journalflow.core.auth_utils import get_current_actor
from journalflow.core.roles import Role, require_role
from journalflow.models.publication import RetractRequest
from journalflow.models.user import Actor
from journalflow.services.publication_service import PublicationService
from journalflow.services.registrar_service import RegistrarService

router = APIRouter(tags=["Publications"])


@router.post("/submissions/{submission_id}/publish")
async def publish_submission(
    submission_id: str,
    background_tasks: BackgroundTasks,
    actor: Actor = Depends(get_current_actor),
    service: PublicationService = Depends(get_publication_service),
    registrar: RegistrarService = Depends(get_registrar_service),
):
    """
    发表已录用稿件并铸造 DOI；Crossref 登记在响应后异步执行。
    """
    result = service.publish(submission_id, actor)
    if result.ok and result.data.get("id"):
        background_tasks.add_task(registrar.deposit, str(result.data["id"]))
    return respond(result, status_code=201)


@router.get("/publications")
async def list_publications(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    service: PublicationService = Depends(get_publication_service),
):
    """
    公开档案（无需登录）
    """
    return {"success": True, "data": service.list_public(limit=limit, offset=offset)}


@router.get("/publications/{publication_id}")
async def get_publication(
    publication_id: str,
    service: PublicationService = Depends(get_publication_service),
):
    return respond(service.get_publication(publication_id))


@router.post("/publications/{publication_id}/retract")
async def retract_publication(
    publication_id: str,
    payload: RetractRequest,
    actor: Actor = Depends(get_current_actor),
    service: PublicationService = Depends(get_publication_service),
):
    return respond(service.retract(publication_id, actor, payload.notice))


@router.post("/publications/{publication_id}/deposit")
async def redeposit_publication(
    publication_id: str,
    actor: Actor = Depends(get_current_actor),
    registrar: RegistrarService = Depends(get_registrar_service),
):
    """
    编辑手动重试 Crossref 登记（例如补全凭据之后）
    """
    require_role(actor, Role.EDITOR)
    status = await registrar.deposit(publication_id)
    return {"success": True, "data": {"crossref_deposit_status": status}}
