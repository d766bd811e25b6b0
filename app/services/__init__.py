"""
Services package initialization.

This module imports all services to make them available from a single import point.
"""

from app.services.aggregation import BudgetItemAggregator, ProjectAggregator
from app.services.activity import ActivityService
from app.services.breakdown import BreakdownService
from app.services.budget_item import BudgetItemService
from app.services.project import ProjectService
from app.services.remark import RemarkService
from app.services.trash import TrashService
from app.services.user import UserService

__all__ = [
    "BudgetItemAggregator",
    "ProjectAggregator",
    "ActivityService",
    "BreakdownService",
    "BudgetItemService",
    "ProjectService",
    "RemarkService",
    "TrashService",
    "UserService",
]
