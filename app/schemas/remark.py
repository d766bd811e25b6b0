"""
Pydantic schemas for project remarks.

This module defines the request and response schemas for remark
API endpoints using Pydantic models.
"""

from typing import Dict, Optional
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.models.remark import RemarkPriority


class RemarkBase(BaseModel):
    """Base schema for remark data."""

    content: str = Field(..., min_length=1)
    category: Optional[str] = Field(None, max_length=100)
    priority: Optional[RemarkPriority] = None
    tags: Optional[str] = Field(None, max_length=255)
    attachments: Optional[str] = None


class RemarkCreate(RemarkBase):
    """Schema for creating a remark on a project."""

    project_id: UUID
    budget_item_id: Optional[UUID] = None
    is_pinned: bool = False
    reason: Optional[str] = None


class RemarkUpdate(BaseModel):
    """Partial update; only the fields that are set are applied."""

    content: Optional[str] = Field(None, min_length=1)
    category: Optional[str] = Field(None, max_length=100)
    priority: Optional[RemarkPriority] = None
    tags: Optional[str] = Field(None, max_length=255)
    attachments: Optional[str] = None
    is_pinned: Optional[bool] = None
    reason: Optional[str] = None


class Remark(RemarkBase):
    """Schema for remark response data."""

    id: UUID
    project_id: UUID
    budget_item_id: Optional[UUID] = None
    priority: Optional[str] = None
    is_pinned: bool
    created_by: UUID
    created_at: datetime
    updated_by: Optional[UUID] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class RemarkStatistics(BaseModel):
    """Counts of a project's remarks by pin state, priority and category."""

    total: int
    pinned: int
    high_priority: int
    medium_priority: int
    low_priority: int
    categories: Dict[str, int] = Field(default_factory=dict)
