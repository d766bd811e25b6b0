"""
Remark model for the government budget tracker.

This module defines the SQLAlchemy model for remarks: free-text notes
attached to a project, optionally tagged with its budget item, a category
and a priority.
"""

from enum import Enum as PyEnum
from sqlalchemy import Column, String, DateTime, Text, Boolean, ForeignKey, Index, Uuid
import uuid
from app.models.base import Base, SnapshotMixin, utcnow


class RemarkPriority(str, PyEnum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Remark(SnapshotMixin, Base):
    """
    Remark model representing a note on a project.

    Remarks do not take part in any rollup. They are removed together with
    their project when the project is hard-deleted.
    """

    __tablename__ = "remarks"
    __table_args__ = (
        Index("ix_remarks_project_category", "project_id", "category"),
        Index("ix_remarks_project_created_at", "project_id", "created_at"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, nullable=False, default=uuid.uuid4)
    project_id = Column(Uuid(as_uuid=True), ForeignKey("projects.id"), nullable=False, index=True)
    budget_item_id = Column(
        Uuid(as_uuid=True), ForeignKey("budget_items.id", ondelete="SET NULL"), nullable=True, index=True
    )
    content = Column(Text, nullable=False)
    category = Column(String(100), nullable=True)
    priority = Column(String(10), nullable=True, index=True)
    tags = Column(String(255), nullable=True)
    attachments = Column(Text, nullable=True)
    is_pinned = Column(Boolean, nullable=False, default=False)

    created_by = Column(Uuid(as_uuid=True), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_by = Column(Uuid(as_uuid=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow)

    def __repr__(self) -> str:
        """String representation of the Remark model."""
        return (
            f"<Remark(id={self.id}, "
            f"project_id={self.project_id}, "
            f"category='{self.category}', "
            f"priority='{self.priority}')>"
        )
