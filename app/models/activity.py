"""
Activity log model for the immutable audit trail.

This module defines the SQLAlchemy model for activity log entries, which
record every create/update/delete/bulk operation on budget items, projects,
breakdowns and remarks together with before/after snapshots.
"""

from enum import Enum as PyEnum
from sqlalchemy import Column, Integer, String, DateTime, JSON, Text, Boolean, Index, Uuid
from app.models.base import Base, utcnow


class ActivityAction(str, PyEnum):
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
    RESTORED = "restored"
    BULK_CREATED = "bulk_created"
    BULK_UPDATED = "bulk_updated"
    BULK_DELETED = "bulk_deleted"
    VIEWED = "viewed"
    EXPORTED = "exported"


class ActivitySource(str, PyEnum):
    WEB_UI = "web_ui"
    BULK_IMPORT = "bulk_import"
    API = "api"
    SYSTEM = "system"
    MIGRATION = "migration"


class TargetType(str, PyEnum):
    BUDGET_ITEM = "budget_item"
    PROJECT = "project"
    BREAKDOWN = "breakdown"
    REMARK = "remark"


class ActivityLog(Base):
    """
    Activity log model tracking system actions.

    Entries are append-only. The identity of the target and of the actor is
    denormalized at write time so the entry stays searchable after the target
    is deleted and is not rewritten when the actor's role changes. Only the
    review columns may be updated after insert.
    """

    __tablename__ = "activity_logs"
    __table_args__ = (
        Index("ix_activity_logs_target", "target_type", "target_id"),
        Index("ix_activity_logs_user_timestamp", "performed_by", "timestamp"),
        Index("ix_activity_logs_project_office", "target_name", "implementing_office"),
        Index("ix_activity_logs_flagged_reviewed", "is_flagged", "is_reviewed", "timestamp"),
    )

    # Integer key gives insertion order for timestamp ties
    id = Column(Integer, primary_key=True, autoincrement=True)
    target_type = Column(String(20), nullable=False)
    action = Column(String(20), nullable=False, index=True)
    target_id = Column(String(36), nullable=True)

    # Identity snapshot
    target_name = Column(String(255), nullable=False)
    implementing_office = Column(String(255), nullable=True)
    budget_item_id = Column(String(36), nullable=True, index=True)
    project_id = Column(String(36), nullable=True, index=True)
    district = Column(String(100), nullable=True)
    municipality = Column(String(100), nullable=True)
    barangay = Column(String(100), nullable=True)

    # Change tracking
    previous_values = Column(JSON, nullable=True)
    new_values = Column(JSON, nullable=True)
    changed_fields = Column(JSON, nullable=True)
    change_summary = Column(JSON, nullable=True)

    # Actor snapshot
    performed_by = Column(Uuid(as_uuid=True), nullable=False)
    performed_by_name = Column(String(100), nullable=False)
    performed_by_email = Column(String(100), nullable=False)
    performed_by_role = Column(String(20), nullable=False)

    reason = Column(Text, nullable=True)
    source = Column(String(20), nullable=True, index=True)
    batch_id = Column(String(64), nullable=True, index=True)
    timestamp = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    # Flags & review
    is_flagged = Column(Boolean, nullable=False, default=False)
    flag_reason = Column(String(255), nullable=True)
    is_reviewed = Column(Boolean, nullable=False, default=False)
    reviewed_by = Column(Uuid(as_uuid=True), nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    review_notes = Column(Text, nullable=True)

    # Aggregation impact
    triggered_aggregation_update = Column(Boolean, nullable=False, default=False)
    affected_aggregation_ids = Column(JSON, nullable=True)

    def __repr__(self):
        """String representation of the ActivityLog model."""
        return (
            f"<ActivityLog(id={self.id}, action='{self.action}', "
            f"target_type='{self.target_type}', performed_by={self.performed_by})>"
        )
