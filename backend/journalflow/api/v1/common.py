from __future__ import annotations

from typing import Any

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from journalflow.core.errors import ActionResult, WorkflowError
from journalflow.services.decision_service import DecisionService
from journalflow.services.extraction_service import ExtractionService
from journalflow.services.notification_service import NotificationService
from journalflow.services.profile_service import ProfileService
from journalflow.services.publication_service import PublicationService
from journalflow.services.registrar_service import RegistrarService
from journalflow.services.review_service import ReviewService
from journalflow.services.search_service import SearchService
from journalflow.services.settings_service import SettingsService
from journalflow.services.storage_service import StorageService
from journalflow.services.submission_service import SubmissionService


def error_response(error: WorkflowError) -> JSONResponse:
    return JSONResponse(status_code=error.status_code, content={"success": False, "error": error.to_dict()})


def respond(result: ActionResult[Any], *, status_code: int = 200) -> Any:
    """
    ActionResult -> HTTP 响应

    中文注释:
    - 成功：{"success": true, "data": ...}
    - 失败：按 error.status_code 返回 {"success": false, "error": {"code", "message"}}
    """
    if not result.ok:
        return error_response(result.error or WorkflowError())
    body = {"success": True, "data": jsonable_encoder(result.data)}
    if status_code == 200:
        return body
    return JSONResponse(status_code=status_code, content=body)


# === 服务依赖（测试中通过 app.dependency_overrides 注入 fake client） ===


def get_submission_service() -> SubmissionService:
    return SubmissionService()


def get_review_service() -> ReviewService:
    return ReviewService()


def get_decision_service() -> DecisionService:
    return DecisionService()


def get_publication_service() -> PublicationService:
    return PublicationService()


def get_registrar_service() -> RegistrarService:
    return RegistrarService()


def get_notification_service() -> NotificationService:
    return NotificationService()


def get_settings_service() -> SettingsService:
    return SettingsService()


def get_profile_service() -> ProfileService:
    return ProfileService()


def get_search_service() -> SearchService:
    return SearchService()


def get_storage_service() -> StorageService:
    return StorageService()


def get_extraction_service() -> ExtractionService:
    return ExtractionService()
