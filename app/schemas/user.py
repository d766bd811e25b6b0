"""
Pydantic schemas for users.

This module defines the request and response schemas for user-related
API endpoints using Pydantic models.
"""

from typing import Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from uuid import UUID

from app.models.user import UserRole

class UserBase(BaseModel):
    """Base schema for user data."""

    email: EmailStr = Field(..., description="Valid email address")
    full_name: str = Field(..., min_length=2, max_length=100, description="Full name must be 2-100 characters")
    role: str = Field(UserRole.USER.value, description="User role (super_admin, admin, user)")
    department_name: Optional[str] = Field(None, max_length=100, description="Department name")
    is_active: bool = Field(True, description="Whether the user account is active")

    @field_validator('role')
    @classmethod
    def validate_role(cls, v):
        allowed_roles = [role.value for role in UserRole]
        if v not in allowed_roles:
            raise ValueError(f"Role must be one of {allowed_roles}")
        return v

class UserCreate(UserBase):
    """Schema for creating a new user."""

    pass

class User(UserBase):
    """Schema for user response data."""

    id: UUID
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
