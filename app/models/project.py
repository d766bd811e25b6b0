"""
Project model for the government budget tracker.

This module defines the SQLAlchemy model for projects, the funded initiatives
that belong to a budget item and aggregate their breakdown reports.
"""

from decimal import Decimal
from enum import Enum as PyEnum
from sqlalchemy import Column, Integer, String, DateTime, Numeric, Text, Boolean, ForeignKey, Uuid
import uuid
from app.models.base import Base, SnapshotMixin, utcnow


class AggregateStatus(str, PyEnum):
    """Derived status of a project or budget item."""

    ONGOING = "ongoing"
    DELAYED = "delayed"
    COMPLETED = "completed"


class Project(SnapshotMixin, Base):
    """
    Project model representing a funded initiative.

    utilization_rate is computed from the project's own allocated/utilized
    amounts on every write. status and the per-status counts are derived from
    the active child breakdowns by ProjectAggregator.
    """

    __tablename__ = "projects"

    id = Column(Uuid(as_uuid=True), primary_key=True, nullable=False, default=uuid.uuid4)
    budget_item_id = Column(Uuid(as_uuid=True), ForeignKey("budget_items.id"), nullable=True, index=True)
    particulars = Column(String(255), nullable=False, index=True)
    implementing_office = Column(String(255), nullable=False)
    total_budget_allocated = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    obligated_budget = Column(Numeric(15, 2), nullable=True)
    total_budget_utilized = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    utilization_rate = Column(Numeric(9, 2), nullable=False, default=Decimal("0.00"))
    project_accomplishment = Column(Numeric(5, 2), nullable=True)
    remarks = Column(Text, nullable=True)
    year = Column(Integer, nullable=True)
    target_date_completion = Column(DateTime(timezone=True), nullable=True)
    project_manager_id = Column(Uuid(as_uuid=True), nullable=True)
    is_pinned = Column(Boolean, nullable=False, default=False)

    # Derived from breakdowns
    status = Column(String(20), nullable=False, default=AggregateStatus.ONGOING.value)
    project_completed = Column(Integer, nullable=False, default=0)
    project_delayed = Column(Integer, nullable=False, default=0)
    projects_on_track = Column(Integer, nullable=False, default=0)

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
        """String representation of the Project model."""
        return (
            f"<Project(id={self.id}, "
            f"budget_item_id={self.budget_item_id}, "
            f"particulars='{self.particulars}', "
            f"status='{self.status}', "
            f"is_deleted={self.is_deleted})>"
        )
