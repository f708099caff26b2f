"""Uniform operation results and the error-code taxonomy."""

from __future__ import annotations

from enum import StrEnum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class ErrorCode(StrEnum):
    """Machine-readable failure codes returned by every operation."""

    # Authorization
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    # Lookup
    NOT_FOUND = "NOT_FOUND"
    # State conflicts
    INVALID_STATUS = "INVALID_STATUS"
    ALREADY_EXISTS = "ALREADY_EXISTS"
    ALREADY_FINALIZED = "ALREADY_FINALIZED"
    SELF_OFFER = "SELF_OFFER"
    NO_PROFILE = "NO_PROFILE"
    # Preconditions
    INCOMPLETE = "INCOMPLETE"
    TRANSFER_REQUIRED = "TRANSFER_REQUIRED"
    PAYMENT_REQUIRED = "PAYMENT_REQUIRED"
    # External dependencies
    AI_ERROR = "AI_ERROR"
    AUTH_FAILED = "AUTH_FAILED"
    # Catalogue
    UNKNOWN_OPERATION = "UNKNOWN_OPERATION"
    INVALID_INPUT = "INVALID_INPUT"
    INTERNAL_ERROR = "INTERNAL_ERROR"


DEFAULT_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.UNAUTHORIZED: "Authentication required",
    ErrorCode.FORBIDDEN: "Not allowed",
    ErrorCode.NOT_FOUND: "Not found",
    ErrorCode.INVALID_STATUS: "Not allowed in the current status",
    ErrorCode.ALREADY_EXISTS: "Already exists",
    ErrorCode.ALREADY_FINALIZED: "Transfer pack is already finalized",
    ErrorCode.SELF_OFFER: "Cannot make an offer on your own request",
    ErrorCode.NO_PROFILE: "A consultant profile is required",
    ErrorCode.INCOMPLETE: "Summary and key decisions are required",
    ErrorCode.TRANSFER_REQUIRED: "A finalized transfer pack is required",
    ErrorCode.PAYMENT_REQUIRED: "Workspace is locked until payment succeeds",
    ErrorCode.AI_ERROR: "Text generation failed",
    ErrorCode.AUTH_FAILED: "Unknown user",
    ErrorCode.UNKNOWN_OPERATION: "Unknown operation",
    ErrorCode.INVALID_INPUT: "Invalid input",
    ErrorCode.INTERNAL_ERROR: "Internal error",
}


class OperationResult(BaseModel, Generic[T]):
    """Outcome of one catalogue operation: data on success, a code on failure."""

    success: bool
    data: T | None = None
    error: str | None = None
    code: ErrorCode | None = None


class Page(BaseModel, Generic[T]):
    """One page of a listing."""

    items: list[T] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    limit: int = 20

    @property
    def has_more(self) -> bool:
        return self.page * self.limit < self.total


def ok(data: Any = None) -> OperationResult[Any]:
    return OperationResult(success=True, data=data)


def fail(code: ErrorCode, error: str | None = None) -> OperationResult[Any]:
    """Build a failed result with the code's default message unless given."""
    return OperationResult(success=False, code=code, error=error or DEFAULT_MESSAGES[code])


class OperationError(Exception):
    """Raised inside a service to abort an operation with a specific code.

    Raising inside ``Database.transaction`` rolls the transaction back, so a
    failed check never leaves partial state.
    """

    def __init__(self, code: ErrorCode, message: str | None = None) -> None:
        self.code = code
        self.message = message or DEFAULT_MESSAGES[code]
        super().__init__(self.message)
