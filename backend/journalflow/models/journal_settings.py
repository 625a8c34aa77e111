from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class ReviewType(str, Enum):
    SINGLE_BLIND = "single_blind"
    DOUBLE_BLIND = "double_blind"


class JournalSettings(BaseModel):
    """
    期刊全局配置（单行记录）

    中文注释:
    - 由 SettingsService.get() 读取；表中无记录时使用默认值。
    - crossref 凭据只在服务端使用，对外输出请用 `public_dict()`。
    """

    id: Optional[str] = None
    journal_name: str = "Academic Journal"
    review_type: ReviewType = ReviewType.DOUBLE_BLIND
    default_review_deadline_days: int = 21
    doi_prefix: str = "10.XXXXX"
    doi_namespace: str = "asjsr"
    crossref_username: Optional[str] = None
    crossref_password: Optional[str] = None

    def has_crossref_credentials(self) -> bool:
        return bool(self.crossref_username and self.crossref_password)

    def public_dict(self) -> dict:
        return self.model_dump(mode="json", exclude={"crossref_password"})


class JournalSettingsUpdate(BaseModel):
    journal_name: Optional[str] = Field(None, min_length=1, max_length=200)
    review_type: Optional[ReviewType] = None
    default_review_deadline_days: Optional[int] = Field(None, ge=1, le=365)
    doi_prefix: Optional[str] = Field(None, pattern=r"^10\.[A-Za-z0-9.]+$")
    doi_namespace: Optional[str] = Field(None, pattern=r"^[a-z0-9-]+$")
    crossref_username: Optional[str] = None
    crossref_password: Optional[str] = None
