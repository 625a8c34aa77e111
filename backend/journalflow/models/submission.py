from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class SubmissionStatus(str, Enum):
    """
    投稿生命周期状态枚举（共 7 个）。

    中文注释:
    - 状态流转规则集中在 `allowed_next`，服务层统一校验，避免散落在 API 层/前端。
    - 终态：published / withdrawn / rejected（rejected 仅允许作者撤稿）。
    """

    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    REVISION_REQUESTED = "revision_requested"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    PUBLISHED = "published"
    WITHDRAWN = "withdrawn"

    @classmethod
    def allowed_next(cls, current: str) -> set[str]:
        """
        状态机规则必须显性可见：

        - submitted -> under_review / accepted / rejected / revision_requested（未送审直接决定，如 desk reject）/ withdrawn
        - under_review -> revision_requested / accepted / rejected / withdrawn
        - revision_requested -> under_review（新一轮外审）/ revision_requested / accepted / rejected / withdrawn
        - accepted -> published / withdrawn
        - rejected -> withdrawn
        - published / withdrawn -> (none)
        """
        c = cls(current)
        if c == cls.SUBMITTED:
            return {
                cls.UNDER_REVIEW.value,
                cls.REVISION_REQUESTED.value,
                cls.ACCEPTED.value,
                cls.REJECTED.value,
                cls.WITHDRAWN.value,
            }
        if c == cls.UNDER_REVIEW:
            return {
                cls.REVISION_REQUESTED.value,
                cls.ACCEPTED.value,
                cls.REJECTED.value,
                cls.WITHDRAWN.value,
            }
        if c == cls.REVISION_REQUESTED:
            return {
                cls.UNDER_REVIEW.value,
                cls.REVISION_REQUESTED.value,
                cls.ACCEPTED.value,
                cls.REJECTED.value,
                cls.WITHDRAWN.value,
            }
        if c == cls.ACCEPTED:
            return {cls.PUBLISHED.value, cls.WITHDRAWN.value}
        if c == cls.REJECTED:
            return {cls.WITHDRAWN.value}
        return set()

    @classmethod
    def can_transition(cls, current: str, target: str) -> bool:
        return str(target) in cls.allowed_next(current)


TERMINAL_STATUSES = frozenset(
    {SubmissionStatus.PUBLISHED.value, SubmissionStatus.WITHDRAWN.value, SubmissionStatus.REJECTED.value}
)

# 可以接收审稿人分配的状态
REVIEWABLE_STATUSES = frozenset(
    {
        SubmissionStatus.SUBMITTED.value,
        SubmissionStatus.UNDER_REVIEW.value,
        SubmissionStatus.REVISION_REQUESTED.value,
    }
)

STATUS_LABELS: dict[str, str] = {
    SubmissionStatus.SUBMITTED.value: "Submitted",
    SubmissionStatus.UNDER_REVIEW.value: "Under Review",
    SubmissionStatus.REVISION_REQUESTED.value: "Revision Requested",
    SubmissionStatus.ACCEPTED.value: "Accepted",
    SubmissionStatus.REJECTED.value: "Rejected",
    SubmissionStatus.PUBLISHED.value: "Published",
    SubmissionStatus.WITHDRAWN.value: "Withdrawn",
}


def status_label(status: str) -> str:
    # 未知状态属于编程错误：直接 KeyError，不做兜底
    return STATUS_LABELS[status]


class CoAuthor(BaseModel):
    name: str
    affiliation: str = ""


class SubmissionCreate(BaseModel):
    """
    投稿请求体。

    中文注释: 标题/摘要是否为空由服务层校验（返回统一的 ValidationError），这里不加 min_length。
    """

    title: str = ""
    abstract: str = ""
    keywords: list[str] = Field(default_factory=list)
    co_authors: list[CoAuthor] = Field(default_factory=list)


class ManuscriptFileAttach(BaseModel):
    file_path: str
