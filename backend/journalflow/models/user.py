from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


@dataclass(frozen=True)
class Actor:
    """
    当前调用者（身份 + 角色集合）。

    中文注释: 所有需要鉴权的服务方法都显式接收 Actor，不读取任何“全局当前用户”。
    """

    id: str
    roles: frozenset[str]

    @classmethod
    def of(cls, user_id: str, roles: list[str] | set[str] | tuple[str, ...] | None) -> "Actor":
        return cls(id=str(user_id), roles=frozenset(str(r).strip().lower() for r in (roles or []) if str(r).strip()))


class UserProfileUpdate(BaseModel):
    full_name: Optional[str] = Field(None, min_length=1, max_length=100)
    affiliation: Optional[str] = Field(None, max_length=200)
    orcid_id: Optional[str] = None
    bio: Optional[str] = Field(None, max_length=2000)

    @field_validator("orcid_id", mode="before")
    @classmethod
    def normalize_optional_text_fields(cls, v):
        """
        允许前端传空字符串（例如未填写 ORCID）而不触发 422。
        - "" / "   " -> None
        """
        if v is None:
            return None
        if isinstance(v, str):
            stripped = v.strip()
            return stripped or None
        return v


class RoleUpdate(BaseModel):
    roles: List[str]
