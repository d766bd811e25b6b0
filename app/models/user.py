"""
User model for actor identity.
This module defines the SQLAlchemy model for the users whose identity is
snapshotted onto every activity log entry.
"""
import uuid
from enum import Enum as PyEnum
from sqlalchemy import Column, String, Boolean, DateTime, Uuid
from app.models.base import Base, utcnow


class UserRole(str, PyEnum):
    """Enumeration of user roles."""

    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    USER = "user"


class User(Base):
    """
    User model representing system users.

    Authentication lives outside this service; only the identity fields the
    audit trail needs are stored here.
    """

    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), default=uuid.uuid4, primary_key=True, index=True)
    email = Column(String(100), nullable=False, unique=True, index=True)
    full_name = Column(String(100), nullable=False)
    role = Column(String(20), nullable=False, default=UserRole.USER.value)
    department_name = Column(String(100), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    @property
    def is_admin(self) -> bool:
        return self.role in (UserRole.ADMIN.value, UserRole.SUPER_ADMIN.value)

    def __repr__(self) -> str:
        """String representation of the User model."""
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"
