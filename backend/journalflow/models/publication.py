from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class DepositStatus(str, Enum):
    PENDING = "pending"
    DEPOSITED = "deposited"
    FAILED = "failed"


class RetractRequest(BaseModel):
    notice: str = ""
