"""
Models package initialization.

This module imports all models to ensure they are registered with SQLAlchemy.
"""

from app.models.base import Base

from app.models.user import User, UserRole
from app.models.project import Project, AggregateStatus
from app.models.budget_item import BudgetItem
from app.models.breakdown import ProjectBreakdown, BreakdownStatus
from app.models.activity import ActivityLog, ActivityAction, ActivitySource, TargetType
from app.models.remark import Remark, RemarkPriority


__all__ = [
    "Base",
    "User",
    "UserRole",
    "BudgetItem",
    "Project",
    "AggregateStatus",
    "ProjectBreakdown",
    "BreakdownStatus",
    "ActivityLog",
    "ActivityAction",
    "ActivitySource",
    "TargetType",
    "Remark",
    "RemarkPriority",
]
