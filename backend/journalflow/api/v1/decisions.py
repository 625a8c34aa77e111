from fastapi import APIRouter, Depends

from journalflow.api.v1.common import get_decision_service, respond
from journalflow.core.auth_utils import get_current_actor
from journalflow.models.decision import DecisionRequest
from journalflow.models.user import Actor
from journalflow.services.decision_service import DecisionService

router = APIRouter(prefix="/submissions", tags=["Decisions"])


@router.post("/{submission_id}/decisions")
async def issue_decision(
    submission_id: str,
    payload: DecisionRequest,
    actor: Actor = Depends(get_current_actor),
    service: DecisionService = Depends(get_decision_service),
):
    result = service.issue_decision(submission_id, actor, payload.decision, payload.notes)
    return respond(result, status_code=201)


@router.get("/{submission_id}/decisions")
async def list_decisions(
    submission_id: str,
    actor: Actor = Depends(get_current_actor),
    service: DecisionService = Depends(get_decision_service),
):
    return respond(service.list_decisions(submission_id, actor))
