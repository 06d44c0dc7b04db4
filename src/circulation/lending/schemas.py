"""Pydantic schemas for lending results."""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, Field

from ..db.schemas import BorrowRecordResponse
from ..errors import (
    ConflictError,
    ConflictReason,
    LendingError,
    NotFoundEntity,
    NotFoundError,
)


class ResultCode(str, Enum):
    """Outcome of a lending call."""

    OK = "ok"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    UNAVAILABLE = "unavailable"


class LendingResult(BaseModel):
    """Caller-facing envelope for a lending call.

    ``data`` holds a single record for borrow/return and a list for
    holdings/history. Failures carry the error kind in ``code`` plus the
    missing ``entity`` or the conflict ``reason``.
    """

    success: bool
    code: ResultCode = ResultCode.OK
    data: Optional[Union[BorrowRecordResponse, list[BorrowRecordResponse]]] = None
    message: Optional[str] = None
    entity: Optional[NotFoundEntity] = None
    reason: Optional[ConflictReason] = None
    retryable: bool = False
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def ok(
        cls, data: Union[BorrowRecordResponse, list[BorrowRecordResponse]]
    ) -> "LendingResult":
        return cls(success=True, data=data)

    @classmethod
    def from_error(cls, error: LendingError) -> "LendingResult":
        """Build a failure result from a lending error."""
        return cls(
            success=False,
            code=ResultCode(error.code),
            message=str(error),
            entity=error.entity if isinstance(error, NotFoundError) else None,
            reason=error.reason if isinstance(error, ConflictError) else None,
            retryable=error.retryable,
        )

    @property
    def records(self) -> list[BorrowRecordResponse]:
        """``data`` as a list, whatever the call returned."""
        if self.data is None:
            return []
        if isinstance(self.data, list):
            return self.data
        return [self.data]
