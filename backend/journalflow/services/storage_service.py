from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass
from typing import Any

from journalflow.core.errors import AuthorizationError, NotFoundError, ValidationError
from journalflow.core.roles import Role, has_role
from journalflow.lib.api_client import extract_rows, first_row, supabase_admin
from journalflow.models.user import Actor

logger = logging.getLogger("journalflow.storage")

MANUSCRIPT_BUCKET = "manuscripts"
SIGNED_URL_TTL_SECONDS = 3600

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def _normalize_signed_url(resp: object) -> str | None:
    if not isinstance(resp, dict):
        return None
    return str(resp.get("signedUrl") or resp.get("signedURL") or "") or None


def safe_file_name(name: str) -> str:
    base = str(name or "").replace("\\", "/").split("/")[-1].strip()
    cleaned = _UNSAFE_CHARS.sub("_", base).strip("._")
    return cleaned or "manuscript.pdf"


@dataclass(frozen=True)
class SignedUrl:
    url: str
    expires_in: int


class StorageService:
    """
    稿件文件存储（Supabase Storage, bucket=manuscripts）

    中文注释:
    - 路径约定: {submission_id}/{uuid}_{filename}；路径中不含作者 id（审稿人拿到的签名 URL 里也会带上路径）
    - 访问控制在应用层完成：投稿作者、被分配的审稿人、编辑可读。
    """

    def __init__(self, *, client: Any = None, bucket: str = MANUSCRIPT_BUCKET) -> None:
        self.client = client or supabase_admin
        self.bucket = bucket

    def _bucket(self):
        return self.client.storage.from_(self.bucket)

    def build_path(self, *, submission_id: str, file_name: str) -> str:
        return f"{submission_id}/{uuid.uuid4().hex[:8]}_{safe_file_name(file_name)}"

    def upload(self, path: str, content: bytes, *, content_type: str = "application/pdf") -> str:
        if not content:
            raise ValidationError("Uploaded file is empty")
        # storage3 要求 header 值为字符串
        opts = {"content-type": content_type, "upsert": "true"}
        self._bucket().upload(path, content, opts)
        return path

    def download(self, path: str) -> bytes:
        try:
            return self._bucket().download(path)
        except Exception as e:
            logger.warning("[Storage] download failed for %s: %s", path, e)
            raise NotFoundError("File not found")

    def create_signed_url(self, path: str, expires_in: int = SIGNED_URL_TTL_SECONDS) -> SignedUrl:
        signed = self._bucket().create_signed_url(path, expires_in)
        url = _normalize_signed_url(signed)
        if not url:
            raise RuntimeError("Failed to create signed url")
        return SignedUrl(url=url, expires_in=expires_in)

    def can_access(self, actor: Actor, path: str) -> bool:
        if has_role(actor.roles, Role.EDITOR):
            return True
        res = self.client.table("submissions").select("id,submitting_author_id").eq("file_path", path).limit(1).execute()
        submission = first_row(res)
        if not submission:
            return False
        if str(submission.get("submitting_author_id")) == actor.id:
            return True
        assigned = (
            self.client.table("reviews")
            .select("id")
            .eq("submission_id", str(submission.get("id")))
            .eq("reviewer_id", actor.id)
            .limit(1)
            .execute()
        )
        return bool(extract_rows(assigned))

    def signed_url_for(self, actor: Actor, path: str) -> SignedUrl:
        if not self.can_access(actor, path):
            raise AuthorizationError("Not allowed to access this file")
        return self.create_signed_url(path)
