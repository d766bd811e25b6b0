"""
Project breakdown model for the government budget tracker.

This module defines the SQLAlchemy model for breakdowns: dated report
snapshots (the per-project ledger) carrying location, financial and
physical-status data.
"""

from decimal import Decimal
from enum import Enum as PyEnum
from sqlalchemy import Column, String, DateTime, Numeric, Text, Boolean, ForeignKey, Index, Uuid
import uuid
from app.models.base import Base, SnapshotMixin, utcnow


class BreakdownStatus(str, PyEnum):
    """Canonical status vocabulary of a breakdown report."""

    COMPLETED = "completed"
    DELAYED = "delayed"
    ONGOING = "ongoing"
    ON_HOLD = "on_hold"
    CANCELLED = "cancelled"


class ProjectBreakdown(SnapshotMixin, Base):
    """
    Breakdown model representing one report row for a project.

    Several breakdowns per project form its time series. The soft-delete
    columns mirror the project's; trash_event_id records which project trash
    event flagged the row so a restore can undo exactly that cascade.
    """

    __tablename__ = "project_breakdowns"
    __table_args__ = (
        Index("ix_project_breakdowns_project_report_date", "project_id", "report_date"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, nullable=False, default=uuid.uuid4)
    project_id = Column(Uuid(as_uuid=True), ForeignKey("projects.id"), nullable=False, index=True)
    report_date = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    batch_id = Column(String(64), nullable=True, index=True)

    # Location
    district = Column(String(100), nullable=True)
    municipality = Column(String(100), nullable=True, index=True)
    barangay = Column(String(100), nullable=True)

    # Classification
    fund_source = Column(String(255), nullable=True)
    program_type = Column(String(100), nullable=True)
    implementing_agency = Column(String(255), nullable=True)

    # Financial snapshot
    appropriation = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    obligation = Column(Numeric(15, 2), nullable=True)
    balance = Column(Numeric(15, 2), nullable=True)

    accomplishment_rate = Column(Numeric(5, 2), nullable=False, default=Decimal("0.00"))
    status = Column(String(20), nullable=True, index=True)
    remarks = Column(Text, nullable=True)

    # Soft delete
    is_deleted = Column(Boolean, nullable=False, default=False, index=True)
    deleted_at = Column(DateTime(timezone=True), nullable=True)
    deleted_by = Column(Uuid(as_uuid=True), nullable=True)
    trash_event_id = Column(String(36), nullable=True)

    created_by = Column(Uuid(as_uuid=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_by = Column(Uuid(as_uuid=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow)

    def __repr__(self) -> str:
        """String representation of the ProjectBreakdown model."""
        return (
            f"<ProjectBreakdown(id={self.id}, "
            f"project_id={self.project_id}, "
            f"report_date={self.report_date}, "
            f"status='{self.status}', "
            f"is_deleted={self.is_deleted})>"
        )
