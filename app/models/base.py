"""
Base SQLAlchemy model class.

This module defines the base class for all SQLAlchemy models in the application,
plus the helpers every tracked entity shares.
"""

from datetime import datetime, timezone
from typing import Any, Dict

from sqlalchemy import inspect
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def utcnow() -> datetime:
    """Timezone-aware current time used for all audit timestamps."""
    return datetime.now(timezone.utc)


class SnapshotMixin:
    """Adds a plain-dict snapshot of the mapped columns, used by the audit log."""

    def to_dict(self) -> Dict[str, Any]:
        mapper = inspect(self).mapper
        return {attr.key: getattr(self, attr.key) for attr in mapper.column_attrs}
