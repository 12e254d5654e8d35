"""
Error taxonomy and action results.

Expected failures (missing records, actions outside their valid state,
half-applied multi-document writes) are returned as ActionResult values.
Collaborator outages are raised as TransportError and propagate untouched.
"""
import enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict


class ErrorKind(str, enum.Enum):
    """Kinds of failure an action can report."""
    NOT_FOUND = "not_found"
    PRECONDITION_FAILED = "precondition_failed"
    PARTIAL_WRITE_FAILURE = "partial_write_failure"
    TRANSPORT_ERROR = "transport_error"


class StoreError(Exception):
    """Base class for errors raised by the relationship store."""
    pass


class TransportError(StoreError):
    """Raised when the backing database or broker cannot be reached."""

    def __init__(self, message: str, original: Optional[BaseException] = None):
        super().__init__(message)
        self.original = original


class ActionResult(BaseModel):
    """
    Outcome of a handler call.

    Attributes:
        ok: Whether the action succeeded (or was a no-op on an absent relation)
        kind: Failure kind when ok is False
        reason: Machine-readable reason, e.g. "blocked_by_them" or "not_sender"
        detail: Human-readable message for the caller to surface
        data: Optional payload (message view, relationship state, ...)
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    ok: bool
    kind: Optional[ErrorKind] = None
    reason: Optional[str] = None
    detail: str = ""
    data: Any = None

    @classmethod
    def success(cls, data: Any = None, detail: str = "") -> "ActionResult":
        return cls(ok=True, data=data, detail=detail)

    @classmethod
    def not_found(cls, detail: str, reason: str = "not_found") -> "ActionResult":
        return cls(ok=False, kind=ErrorKind.NOT_FOUND, reason=reason, detail=detail)

    @classmethod
    def precondition_failed(cls, reason: str, detail: str) -> "ActionResult":
        return cls(ok=False, kind=ErrorKind.PRECONDITION_FAILED, reason=reason, detail=detail)

    @classmethod
    def partial_write(cls, detail: str, data: Any = None) -> "ActionResult":
        return cls(
            ok=False,
            kind=ErrorKind.PARTIAL_WRITE_FAILURE,
            reason="partial_write",
            detail=detail,
            data=data,
        )
