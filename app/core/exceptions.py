"""
Domain exception hierarchy.

Services raise these types; routers map them to HTTP status codes through the
handlers registered in app.main. Nothing in the aggregation or audit layers
catches them, so a failure aborts the enclosing unit of work.

Usage:
    from app.core.exceptions import NotFoundError, PreconditionFailedError

    raise NotFoundError("Budget item", budget_item_id)
    raise PreconditionFailedError(
        "Cannot delete budget item with 2 linked project(s).", blocking_count=2
    )
"""

from typing import Optional, Union
from uuid import UUID


class BudgetTrackerError(Exception):
    """Base class for all domain errors."""


class NotFoundError(BudgetTrackerError):
    """Raised when a referenced entity (budget item, project, breakdown, user) is absent.

    The message is the literal user-facing text, e.g. "Budget item not found".
    The id is kept on the instance for logging only.
    """

    def __init__(
        self,
        resource: str,
        resource_id: Optional[Union[UUID, int, str]] = None,
        message: Optional[str] = None,
    ) -> None:
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(message or f"{resource} not found")


class PreconditionFailedError(BudgetTrackerError):
    """Raised when a mutation is blocked by the current state of related records.

    Args:
        message: Human-readable, user-actionable explanation.
        blocking_count: Number of child records blocking the operation.
    """

    def __init__(self, message: str, blocking_count: int = 0) -> None:
        self.blocking_count = blocking_count
        super().__init__(message)


class ValidationSkipped(BudgetTrackerError):
    """A single record of a bulk batch that was skipped.

    Never raised to callers of the bulk operations; instances are collected on
    the returned BulkResult so the caller can see which ids were skipped.
    """

    def __init__(self, record_id: Optional[Union[UUID, str]], reason: str) -> None:
        self.record_id = record_id
        self.reason = reason
        super().__init__(f"Skipped {record_id}: {reason}")
