from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, Query, UploadFile

from journalflow.api.v1.common import (
    get_extraction_service,
    get_review_service,
    get_storage_service,
    get_submission_service,
    respond,
)
from journalflow.core.auth_utils import get_current_actor
from journalflow.core.errors import AuthorizationError, ValidationError
from journalflow.models.submission import ManuscriptFileAttach, SubmissionCreate
from journalflow.models.user import Actor
from journalflow.services.extraction_service import ExtractionService
from journalflow.services.review_service import ReviewService
from journalflow.services.storage_service import StorageService
from journalflow.services.submission_service import SubmissionService

router = APIRouter(prefix="/submissions", tags=["Submissions"])


@router.post("")
async def create_submission(
    payload: SubmissionCreate,
    actor: Actor = Depends(get_current_actor),
    service: SubmissionService = Depends(get_submission_service),
):
    result = service.create_submission(
        actor,
        title=payload.title,
        abstract=payload.abstract,
        keywords=payload.keywords,
        co_authors=payload.co_authors,
    )
    return respond(result, status_code=201)


@router.get("/mine")
async def list_my_submissions(
    actor: Actor = Depends(get_current_actor),
    service: SubmissionService = Depends(get_submission_service),
):
    return {"success": True, "data": service.list_for_author(actor)}


@router.get("")
async def list_submissions(
    status: Optional[str] = Query(None),
    actor: Actor = Depends(get_current_actor),
    service: SubmissionService = Depends(get_submission_service),
):
    """
    编辑工作台：全部稿件（可按状态过滤）
    """
    return respond(service.list_all(actor, status=status))


@router.get("/{submission_id}")
async def get_submission(
    submission_id: str,
    actor: Actor = Depends(get_current_actor),
    service: SubmissionService = Depends(get_submission_service),
):
    return respond(service.get_submission(submission_id, actor))


@router.post("/{submission_id}/file")
async def upload_manuscript(
    submission_id: str,
    background_tasks: BackgroundTasks,
    file: UploadFile = File(...),
    actor: Actor = Depends(get_current_actor),
    service: SubmissionService = Depends(get_submission_service),
    storage: StorageService = Depends(get_storage_service),
    extraction: ExtractionService = Depends(get_extraction_service),
):
    """
    上传稿件 PDF，记录 file_path，并在响应后异步抽取全文。
    """
    content = await file.read()
    if not content:
        raise ValidationError("Uploaded file is empty")
    # 先校验归属，避免非作者写入存储
    current = service.get_submission(submission_id, actor)
    if not current.ok:
        return respond(current)
    if str(current.data.get("submitting_author_id")) != actor.id:
        raise AuthorizationError("Only the submitting author can upload the manuscript")

    path = storage.build_path(submission_id=submission_id, file_name=file.filename or "")
    storage.upload(path, content, content_type=file.content_type or "application/pdf")
    result = service.attach_manuscript_file(submission_id, actor, path)
    if result.ok:
        background_tasks.add_task(extraction.run, submission_id, path)
    return respond(result)


@router.put("/{submission_id}/file")
async def attach_manuscript(
    submission_id: str,
    payload: ManuscriptFileAttach,
    background_tasks: BackgroundTasks,
    actor: Actor = Depends(get_current_actor),
    service: SubmissionService = Depends(get_submission_service),
    extraction: ExtractionService = Depends(get_extraction_service),
):
    """
    前端直传 Storage 后登记文件路径。
    """
    result = service.attach_manuscript_file(submission_id, actor, payload.file_path)
    if result.ok:
        background_tasks.add_task(extraction.run, submission_id, payload.file_path.strip())
    return respond(result)


@router.get("/{submission_id}/file-url")
async def get_manuscript_url(
    submission_id: str,
    actor: Actor = Depends(get_current_actor),
    service: SubmissionService = Depends(get_submission_service),
    storage: StorageService = Depends(get_storage_service),
):
    current = service.manuscript_path(submission_id, actor)
    if not current.ok:
        return respond(current)
    path = current.data
    if not path:
        return {"success": True, "data": None}
    signed = storage.signed_url_for(actor, path)
    return {"success": True, "data": {"url": signed.url, "expires_in": signed.expires_in}}


@router.post("/{submission_id}/withdraw")
async def withdraw_submission(
    submission_id: str,
    actor: Actor = Depends(get_current_actor),
    service: SubmissionService = Depends(get_submission_service),
):
    return respond(service.withdraw(submission_id, actor))


@router.get("/{submission_id}/reviews")
async def list_submission_reviews(
    submission_id: str,
    actor: Actor = Depends(get_current_actor),
    reviews: ReviewService = Depends(get_review_service),
):
    return respond(reviews.list_for_submission(submission_id, actor))
