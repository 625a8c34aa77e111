from fastapi import APIRouter, Depends

from journalflow.api.v1.common import get_review_service, respond
from journalflow.core.auth_utils import get_current_actor
from journalflow.models.review import ReviewAssignRequest, ReviewSubmitRequest
from journalflow.models.user import Actor
from journalflow.services.review_service import ReviewService

router = APIRouter(prefix="/reviews", tags=["Reviews"])


@router.post("")
async def assign_reviewer(
    payload: ReviewAssignRequest,
    actor: Actor = Depends(get_current_actor),
    service: ReviewService = Depends(get_review_service),
):
    """
    编辑分配审稿人（deadline 缺省时使用期刊默认天数）
    """
    result = service.assign_reviewer(
        str(payload.submission_id),
        str(payload.reviewer_id),
        actor,
        deadline=payload.deadline,
    )
    return respond(result, status_code=201)


@router.get("/mine")
async def list_my_reviews(
    actor: Actor = Depends(get_current_actor),
    service: ReviewService = Depends(get_review_service),
):
    return {"success": True, "data": service.list_for_reviewer(actor)}


@router.get("/overdue")
async def list_overdue_reviews(
    actor: Actor = Depends(get_current_actor),
    service: ReviewService = Depends(get_review_service),
):
    return respond(service.list_overdue(actor))


@router.post("/{review_id}/submit")
async def submit_review(
    review_id: str,
    payload: ReviewSubmitRequest,
    actor: Actor = Depends(get_current_actor),
    service: ReviewService = Depends(get_review_service),
):
    return respond(service.submit_review(review_id, actor, payload.content))
