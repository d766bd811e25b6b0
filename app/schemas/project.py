"""
Pydantic schemas for projects.

This module defines the request and response schemas for project
API endpoints using Pydantic models.
"""

from typing import Optional
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ProjectBase(BaseModel):
    """Base schema for project data."""

    particulars: str = Field(..., min_length=1, max_length=255)
    budget_item_id: Optional[UUID] = None
    implementing_office: str = Field(..., min_length=1, max_length=255)
    total_budget_allocated: Decimal = Field(..., ge=0)
    obligated_budget: Optional[Decimal] = Field(None, ge=0)
    total_budget_utilized: Decimal = Field(Decimal("0.00"), ge=0)
    project_accomplishment: Optional[Decimal] = Field(None, ge=0, le=100)
    remarks: Optional[str] = None
    year: Optional[int] = None
    target_date_completion: Optional[datetime] = None
    project_manager_id: Optional[UUID] = None


class ProjectCreate(ProjectBase):
    """Schema for creating a new project. Status and counts come from breakdowns."""

    reason: Optional[str] = None


class ProjectUpdate(ProjectBase):
    """
    Schema for updating a project.

    The editable fields are replaced as a whole, so omitting budget_item_id
    detaches the project from its budget item.
    """

    reason: Optional[str] = None


class Project(ProjectBase):
    """Schema for project response data."""

    id: UUID
    utilization_rate: Decimal
    status: str
    project_completed: int
    project_delayed: int
    projects_on_track: int
    is_pinned: bool
    is_deleted: bool
    deleted_at: Optional[datetime] = None
    deleted_by: Optional[UUID] = None
    created_by: Optional[UUID] = None
    created_at: datetime
    updated_by: Optional[UUID] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class TrashRequest(BaseModel):
    reason: Optional[str] = None


class TrashResult(BaseModel):
    """Outcome of a trash, restore or permanent delete."""

    project_id: UUID
    affected_breakdown_ids: list[UUID] = Field(default_factory=list)
    budget_item_id: Optional[UUID] = None
    success: bool = True
