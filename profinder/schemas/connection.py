"""
Pydantic schemas for connection actions, reports, and audits.
"""
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator

from profinder.core.errors import ErrorKind
from profinder.core.relationship import RelationshipState
from profinder.models.report import Report
from profinder.utils.helpers import to_iso_utc


class ReportCreate(BaseModel):
    """Schema for reporting a user."""

    reason: str = Field(..., min_length=1, max_length=1000, description="Reason for the report")

    @field_validator("reason")
    @classmethod
    def validate_reason(cls, v: str) -> str:
        """Ensure reason is not whitespace only."""
        if not v.strip():
            raise ValueError("Reason cannot be empty")
        return v.strip()

    class Config:
        json_schema_extra = {
            "example": {
                "reason": "Spam"
            }
        }


class ActionResponse(BaseModel):
    """Result of a connection action."""

    success: bool
    detail: str = ""
    state: Optional[RelationshipState] = Field(None, description="Relationship state after the action")
    data: Any = None


class ActionErrorResponse(BaseModel):
    """Error body for failed actions."""

    kind: ErrorKind
    reason: Optional[str] = None
    detail: str


class RelationshipStateResponse(BaseModel):
    """Relationship state between the caller and another user."""

    user_id: str
    other_user_id: str
    state: RelationshipState


class ReportResponse(BaseModel):
    """Stored report."""

    id: str
    reporter_id: str
    reported_user_id: str
    reason: str
    timestamp: Optional[str] = None

    @classmethod
    def from_report(cls, report: Report) -> "ReportResponse":
        return cls(
            id=report.id,
            reporter_id=report.reporter_id,
            reported_user_id=report.reported_user_id,
            reason=report.reason,
            timestamp=to_iso_utc(report.created_at),
        )


class AuditIssue(BaseModel):
    """One inconsistency found by the relationship audit."""

    kind: str = Field(..., description="asymmetric_connection, pending_while_connected, self_reference, dangling_reference")
    user_id: str
    other_user_id: str
    field: str
    repaired: bool = False


class AuditReport(BaseModel):
    """Result of a relationship audit pass."""

    users_scanned: int
    issues: List[AuditIssue] = Field(default_factory=list)
    repaired: int = 0
