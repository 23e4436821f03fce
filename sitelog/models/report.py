"""
SiteLog Backend: Report & Attachment SQLAlchemy Models
=========================================================

What:  ORM models for the `reports` and `report_media` tables.
Why:   A report is one site inspection; its media rows are the photos
       uploaded with it.

Table Design Rationale:
    - extras: JSON (not JSONB) so the caller's key order survives a round trip;
    - tonnage: DOUBLE PRECISION, the same float the API accepted, so the value
      returned on create is the value stored (no scale rounding, no overflow)
    - site_name: TEXT, no length cap beyond non-empty
      emits a JSON number
    - created_by: nullable, ON DELETE SET NULL; a report outlives its author
    - report_media.report_id: ON DELETE CASCADE; media never exist without
      their report

    Index on (report_date DESC, id DESC):
        Matches the list endpoint's ORDER BY exactly.
"""

from datetime import date, datetime, timezone
from typing import Any, Optional

from sqlalchemy import (
    JSON,
    Date,
    DateTime,
    Double,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from sitelog.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Report(Base):
    """
    One inspection report for a site.

    Lifecycle:
        Created once per POST /api/reports together with its media rows,
        inside a single transaction. Immutable afterwards.
    """

    __tablename__ = "reports"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    site_name: Mapped[str] = mapped_column(Text, nullable=False)

    report_date: Mapped[date] = mapped_column(Date, nullable=False)

    weather: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    tonnage: Mapped[Optional[float]] = mapped_column(
        Double,
        nullable=True,
    )

    cover_material: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    status: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    extras: Mapped[Any] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
        comment="Caller-supplied structured data, stored verbatim",
    )

    created_by: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        Index("idx_reports_date_id", report_date.desc(), id.desc()),
    )

    def __repr__(self) -> str:
        return (
            f"<Report(id={self.id}, site_name='{self.site_name}', "
            f"report_date='{self.report_date}')>"
        )


class ReportMedia(Base):
    """A stored upload belonging to exactly one report."""

    __tablename__ = "report_media"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    report_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("reports.id", ondelete="CASCADE"),
        nullable=False,
    )

    # Sanitized, timestamp-prefixed name inside the upload directory
    filename: Mapped[str] = mapped_column(String(255), nullable=False)

    mime_type: Mapped[str] = mapped_column(String(255), nullable=False)

    path: Mapped[str] = mapped_column(Text, nullable=False)

    uploaded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        Index("idx_report_media_report_id", report_id),
    )

    def __repr__(self) -> str:
        return f"<ReportMedia(id={self.id}, report_id={self.report_id}, filename='{self.filename}')>"
