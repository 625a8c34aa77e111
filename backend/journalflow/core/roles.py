from __future__ import annotations

from enum import Enum
from typing import Iterable

from journalflow.core.errors import AuthorizationError, ValidationError
from journalflow.models.user import Actor

# 中文注释：
# - 角色是“能力集合”（非互斥）：同一用户可同时是 author / reviewer / editor。
# - 鉴权统一做集合成员判断，不做角色继承。


class Role(str, Enum):
    AUTHOR = "author"
    REVIEWER = "reviewer"
    EDITOR = "editor"


KNOWN_ROLES = frozenset(r.value for r in Role)
DEFAULT_ROLES = [Role.AUTHOR.value]


def normalize_roles(roles: Iterable[str] | None) -> set[str]:
    """
    将输入角色归一化（小写、去空）。
    """
    out: set[str] = set()
    for raw in roles or []:
        role = str(raw or "").strip().lower()
        if not role:
            continue
        out.add(role)
    return out


def has_role(roles: Iterable[str] | None, role: Role | str) -> bool:
    target = role.value if isinstance(role, Role) else str(role).strip().lower()
    return target in normalize_roles(roles)


def require_role(actor: Actor, role: Role | str) -> None:
    if not has_role(actor.roles, role):
        name = role.value if isinstance(role, Role) else str(role)
        raise AuthorizationError(f"Requires {name} role")


def validate_role_set(roles: Iterable[str] | None) -> list[str]:
    """
    校验编辑提交的角色集合：只允许已知角色，且不能为空。
    """
    normalized = normalize_roles(roles)
    unknown = normalized - KNOWN_ROLES
    if unknown:
        raise ValidationError(f"Unknown roles: {sorted(unknown)}")
    if not normalized:
        raise ValidationError("At least one role is required")
    return sorted(normalized)
