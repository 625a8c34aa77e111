from __future__ import annotations

from dataclasses import dataclass, field
from functools import wraps
from typing import Any, Callable, Generic, Optional, TypeVar

T = TypeVar("T")


class WorkflowError(Exception):
    """
    领域错误基类。

    中文注释:
    - 服务层只抛出该体系内的异常；API 层通过 `status_code`/`code` 映射为 HTTP 响应。
    - 不直接抛 HTTPException，保证核心逻辑与传输层解耦。
    """

    status_code: int = 400
    code: str = "workflow_error"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.code)
        self.message = message or self.code

    def to_dict(self) -> dict[str, str]:
        return {"code": self.code, "message": self.message}


class ValidationError(WorkflowError):
    status_code = 422
    code = "validation_error"


class AuthorizationError(WorkflowError):
    status_code = 403
    code = "authorization_error"


class InvalidStateError(WorkflowError):
    status_code = 409
    code = "invalid_state"


class ConflictOfInterestError(WorkflowError):
    status_code = 409
    code = "conflict_of_interest"


class DuplicateAssignmentError(WorkflowError):
    status_code = 409
    code = "duplicate_assignment"


class NotFoundError(WorkflowError):
    status_code = 404
    code = "not_found"


@dataclass
class ActionResult(Generic[T]):
    """
    Discriminated result of a domain operation: either `data` (ok=True) or
    `error` (ok=False). `events` carries the notification events the operation
    emitted, so callers can assert on side effects without a mail transport.
    """

    ok: bool
    data: Optional[T] = None
    error: Optional[WorkflowError] = None
    events: list[Any] = field(default_factory=list)

    @classmethod
    def success(cls, data: T, events: list[Any] | None = None) -> "ActionResult[T]":
        return cls(ok=True, data=data, events=list(events or []))

    @classmethod
    def failure(cls, error: WorkflowError) -> "ActionResult[T]":
        return cls(ok=False, error=error)


def workflow_action(fn: Callable[..., Any]) -> Callable[..., ActionResult[Any]]:
    """
    服务操作装饰器：把 WorkflowError 折叠为失败的 ActionResult。

    中文注释:
    - 被装饰函数可以直接返回 ActionResult（携带 events），也可以返回普通值。
    - 非领域异常（存储故障等）不在这里吞掉，交给中间件统一记录并返回 500。
    """

    @wraps(fn)
    def _wrapped(*args: Any, **kwargs: Any) -> ActionResult[Any]:
        try:
            out = fn(*args, **kwargs)
        except WorkflowError as e:
            return ActionResult.failure(e)
        if isinstance(out, ActionResult):
            return out
        return ActionResult.success(out)

    return _wrapped
