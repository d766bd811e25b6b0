"""
Budget item model for the government budget tracker.

This module defines the SQLAlchemy model for budget items, the top-level
funding lines whose totals and status are rolled up from their projects.
"""

from decimal import Decimal
from sqlalchemy import Column, Integer, String, DateTime, Numeric, Text, Boolean, Uuid
import uuid
from app.models.base import Base, SnapshotMixin, utcnow
from app.models.project import AggregateStatus


class BudgetItem(SnapshotMixin, Base):
    """
    Budget item model representing a named budget line (e.g. a funding program).

    Only particulars, allocation and the descriptive fields are editable.
    Obligated/utilized totals, utilization rate, status and the per-status
    project counts are derived from the non-deleted child projects by
    BudgetItemAggregator.
    """

    __tablename__ = "budget_items"

    id = Column(Uuid(as_uuid=True), primary_key=True, nullable=False, default=uuid.uuid4)
    particulars = Column(String(255), nullable=False, unique=True, index=True)
    total_budget_allocated = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    year = Column(Integer, nullable=True)
    fiscal_year = Column(Integer, nullable=True)
    notes = Column(Text, nullable=True)
    is_pinned = Column(Boolean, nullable=False, default=False)

    # Derived
    obligated_budget = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    total_budget_utilized = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    utilization_rate = Column(Numeric(9, 2), nullable=False, default=Decimal("0.00"))
    status = Column(String(20), nullable=False, default=AggregateStatus.ONGOING.value)
    project_completed = Column(Integer, nullable=False, default=0)
    project_delayed = Column(Integer, nullable=False, default=0)
    projects_on_track = Column(Integer, nullable=False, default=0)

    created_by = Column(Uuid(as_uuid=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_by = Column(Uuid(as_uuid=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow)

    def __repr__(self) -> str:
        """String representation of the BudgetItem model."""
        return (
            f"<BudgetItem(id={self.id}, "
            f"particulars='{self.particulars}', "
            f"total_budget_allocated={self.total_budget_allocated}, "
            f"status='{self.status}')>"
        )
