from fastapi import APIRouter, Depends
from fastapi.responses import Response

from journalflow.api.v1.common import get_storage_service
from journalflow.core.auth_utils import get_current_actor
from journalflow.core.errors import AuthorizationError
from journalflow.models.user import Actor
from journalflow.services.storage_service import StorageService

router = APIRouter(tags=["Download"])


@router.get("/download/{path:path}")
async def download_manuscript(
    path: str,
    actor: Actor = Depends(get_current_actor),
    storage: StorageService = Depends(get_storage_service),
):
    """
    以附件形式下载稿件文件（作者 / 被分配审稿人 / 编辑）。
    """
    if not storage.can_access(actor, path):
        raise AuthorizationError("Not allowed to access this file")
    content = storage.download(path)
    file_name = path.split("/")[-1] or "manuscript.pdf"
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{file_name}"'},
    )
