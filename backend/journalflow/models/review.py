from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class ReviewAssignRequest(BaseModel):
    submission_id: UUID
    reviewer_id: UUID
    deadline: Optional[datetime] = Field(
        default=None, description="截止时间；缺省时按 journal_settings.default_review_deadline_days 计算"
    )


class ReviewSubmitRequest(BaseModel):
    content: str = ""
