"""
Report model - a user reporting another user for admin review.
"""
from datetime import datetime

from sqlalchemy import DateTime, Index, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from profinder.models.base import Base, GeneratedIdMixin


class Report(Base, GeneratedIdMixin):
    """
    Report model.

    Independent of blocking: a report does not block, and a block does not
    report. An open report from the sender disables sending to the reported user.
    """

    __tablename__ = "reports"

    reporter_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        doc="User who filed the report"
    )

    reported_user_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
        doc="User being reported"
    )

    reason: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        doc="Reason given by the reporter (e.g. 'Spam', 'Harassment')"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        doc="When the report was filed"
    )

    def __repr__(self) -> str:
        return f"<Report(reporter_id={self.reporter_id}, reported_user_id={self.reported_user_id})>"


Index("idx_reports_reporter_reported", Report.reporter_id, Report.reported_user_id)
