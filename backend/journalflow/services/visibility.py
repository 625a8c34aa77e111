"""
盲审可见性策略（纯函数，无 I/O）

中文注释:
- double_blind：审稿人视图去掉作者姓名、单位、ORCID、作者 id 与合著者列表；
  标题/摘要/关键词/全文仍可见。
- 存储路径（file_path）不进入审稿人视图，只给出 has_manuscript_file；文件通过签名 URL 获取。
- single_blind：审稿人可以看到作者身份。
- 无论哪种模式，作者永远看不到审稿人身份（固定策略，不可按稿件配置）。
"""
from __future__ import annotations

from typing import Any, Optional

from journalflow.models.journal_settings import ReviewType

REVIEWER_VISIBLE_FIELDS = (
    "id",
    "title",
    "abstract",
    "keywords",
    "extracted_text",
    "status",
    "created_at",
)

AUTHOR_VISIBLE_REVIEW_FIELDS = ("id", "submission_id", "content", "submitted_at")


def reviewer_view(
    submission: dict[str, Any],
    author_profile: Optional[dict[str, Any]],
    review_type: ReviewType | str,
) -> dict[str, Any]:
    view = {key: submission.get(key) for key in REVIEWER_VISIBLE_FIELDS if key in submission}
    mode = ReviewType(review_type)
    view["review_type"] = mode.value
    view["has_manuscript_file"] = bool(submission.get("file_path"))
    if mode == ReviewType.DOUBLE_BLIND:
        return view

    profile = author_profile or {}
    view["submitting_author_id"] = submission.get("submitting_author_id")
    view["author_name"] = profile.get("full_name") or ""
    view["author_affiliation"] = profile.get("affiliation") or ""
    view["author_orcid"] = profile.get("orcid_id")
    view["co_authors"] = list(submission.get("co_authors") or [])
    return view


def author_review_view(review: dict[str, Any]) -> dict[str, Any]:
    return {key: review.get(key) for key in AUTHOR_VISIBLE_REVIEW_FIELDS if key in review}
