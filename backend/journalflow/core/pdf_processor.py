import io
import logging
import os
from typing import Optional

import pdfplumber

logger = logging.getLogger("journalflow.pdf")


def extract_text_from_pdf(content: bytes, *, max_pages: Optional[int] = None, max_chars: Optional[int] = None) -> Optional[str]:
    """
    使用 pdfplumber 从 PDF 字节流中提取全文文本

    中文注释:
    1. 该函数用于投稿上传后的全文抽取（写回 submissions.extracted_text，供全文检索）。
    2. 抽取失败只记录日志并返回 None，绝不阻塞稿件流转。
    3. 页数/字符上限可通过 PDF_PARSE_MAX_PAGES / PDF_PARSE_MAX_CHARS 配置（0 表示不限）。
    """
    try:
        if max_pages is None:
            try:
                max_pages = int(os.environ.get("PDF_PARSE_MAX_PAGES", "0"))
            except ValueError:
                max_pages = 0
        if max_chars is None:
            try:
                max_chars = int(os.environ.get("PDF_PARSE_MAX_CHARS", "0"))
            except ValueError:
                max_chars = 0

        all_text = []
        with pdfplumber.open(io.BytesIO(content)) as pdf:
            pages = pdf.pages[:max_pages] if max_pages and max_pages > 0 else pdf.pages
            for page in pages:
                text = page.extract_text()
                if text:
                    all_text.append(text)

        combined = "\n".join(all_text).strip()
        if max_chars and max_chars > 0:
            return combined[:max_chars]
        return combined
    except Exception as e:
        logger.warning("PDF 文本提取失败: %s", e)
        return None
