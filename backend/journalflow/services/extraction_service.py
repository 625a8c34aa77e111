from __future__ import annotations

import logging
from typing import Any

from journalflow.core.pdf_processor import extract_text_from_pdf
from journalflow.lib.api_client import supabase_admin
from journalflow.services.storage_service import StorageService

logger = logging.getLogger("journalflow.extraction")


class ExtractionService:
    """
    稿件全文抽取（后台任务）：下载 PDF -> pdfplumber 抽取 -> 写回 submissions.extracted_text。

    失败只记录日志，不影响稿件状态。
    """

    def __init__(self, *, client: Any = None, storage: StorageService | None = None) -> None:
        self.client = client or supabase_admin
        self.storage = storage or StorageService(client=self.client)

    def run(self, submission_id: str, file_path: str) -> bool:
        try:
            content = self.storage.download(file_path)
        except Exception as e:
            logger.warning("[Extraction] download failed (ignored): %s", e)
            return False

        text = extract_text_from_pdf(content)
        if text is None:
            return False

        try:
            self.client.table("submissions").update({"extracted_text": text}).eq("id", str(submission_id)).execute()
        except Exception as e:
            logger.warning("[Extraction] write-back failed (ignored): %s", e)
            return False
        logger.info("[Extraction] submission %s: %s chars extracted", submission_id, len(text))
        return True
