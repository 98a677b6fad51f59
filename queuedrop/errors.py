"""Shared error envelope and operation results.

Business-rule failures are values, not exceptions: every mutating operation
returns a `Result` carrying either its value or an `ErrorResponse`. The same
envelope is what the MQTT adapter sends back to clients.

`QueueStateError` is the one hard failure. It signals corrupted state and is
never returned as a value.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class ErrorCode(str, Enum):
    # validation
    INVALID_NAME = "invalid_name"
    INVALID_SETTINGS = "invalid_settings"
    BAD_REQUEST = "bad_request"

    # state machine
    INVALID_TRANSITION = "invalid_transition"

    # lookups
    CUSTOMER_NOT_FOUND = "customer_not_found"
    QUEUE_NOT_FOUND = "queue_not_found"

    # business rules
    CAPACITY_EXCEEDED = "capacity_exceeded"
    NOT_ACTIVE = "not_active"
    PAUSED = "paused"
    EMPTY = "empty"
    SLUG_TAKEN = "slug_taken"

    # server side
    INTERNAL_ERROR = "internal_error"

    # optimistic concurrency
    VERSION_CONFLICT = "version_conflict"


@dataclass(frozen=True)
class ErrorResponse:
    code: ErrorCode
    message: str

    @property
    def retryable(self) -> bool:
        """Only a lost race is worth a reload and retry."""
        return self.code is ErrorCode.VERSION_CONFLICT

    def to_message(self, *, corr_id: str | None = None) -> dict[str, Any]:
        msg: dict[str, Any] = {"type": "error", "code": self.code.value, "message": self.message}
        if corr_id is not None:
            msg["corr_id"] = corr_id
        return msg

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class QueueOperationError(Exception):
    """Raised by `Result.unwrap()` for callers that want exceptions."""

    def __init__(self, error: ErrorResponse) -> None:
        super().__init__(str(error))
        self.error = error


class QueueStateError(RuntimeError):
    """Aggregate state is corrupt (an invariant was bypassed)."""


@dataclass(frozen=True)
class Result(Generic[T]):
    value: T | None = None
    error: ErrorResponse | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T | None = None) -> Result[T]:
        return cls(value=value)

    @classmethod
    def failure(cls, error: ErrorResponse) -> Result[T]:
        return cls(error=error)

    def unwrap(self) -> T:
        if self.error is not None:
            raise QueueOperationError(self.error)
        return self.value  # type: ignore[return-value]


# -------------------- common errors --------------------


def invalid_name() -> ErrorResponse:
    return ErrorResponse(
        ErrorCode.INVALID_NAME, "Customer name is required and must be between 1 and 100 characters."
    )


def invalid_settings(message: str) -> ErrorResponse:
    return ErrorResponse(ErrorCode.INVALID_SETTINGS, message)


def bad_request(message: str) -> ErrorResponse:
    return ErrorResponse(ErrorCode.BAD_REQUEST, message)


def invalid_transition(message: str) -> ErrorResponse:
    return ErrorResponse(ErrorCode.INVALID_TRANSITION, message)


def customer_not_found(customer_id: str) -> ErrorResponse:
    return ErrorResponse(ErrorCode.CUSTOMER_NOT_FOUND, f"Customer '{customer_id}' not found in queue.")


def queue_not_found(queue_id: str) -> ErrorResponse:
    return ErrorResponse(ErrorCode.QUEUE_NOT_FOUND, f"Queue '{queue_id}' was not found.")


def token_not_found() -> ErrorResponse:
    # Never echo the token: it is the customer's credential.
    return ErrorResponse(ErrorCode.CUSTOMER_NOT_FOUND, "No customer found with that token.")


def slug_taken(slug: str) -> ErrorResponse:
    return ErrorResponse(ErrorCode.SLUG_TAKEN, f"A queue with slug '{slug}' already exists for this business.")


def internal_error() -> ErrorResponse:
    return ErrorResponse(ErrorCode.INTERNAL_ERROR, "The queue could not be updated. Try again later.")


def capacity_exceeded(limit: int) -> ErrorResponse:
    return ErrorResponse(ErrorCode.CAPACITY_EXCEEDED, f"Queue has reached its capacity of {limit} customers.")


def not_active() -> ErrorResponse:
    return ErrorResponse(ErrorCode.NOT_ACTIVE, "Queue is not currently active.")


def paused() -> ErrorResponse:
    return ErrorResponse(ErrorCode.PAUSED, "Queue is paused and not accepting new customers.")


def empty() -> ErrorResponse:
    return ErrorResponse(ErrorCode.EMPTY, "No customers waiting in queue.")


def version_conflict(expected: int, actual: int) -> ErrorResponse:
    return ErrorResponse(
        ErrorCode.VERSION_CONFLICT,
        f"Queue was modified concurrently (expected version {expected}, found {actual}). Reload and retry.",
    )
