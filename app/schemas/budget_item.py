"""
Pydantic schemas for budget items.

This module defines the request and response schemas for budget item
API endpoints using Pydantic models.
"""

from typing import Optional
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class BudgetItemBase(BaseModel):
    """Base schema for budget item data."""

    particulars: str = Field(..., min_length=1, max_length=255)
    total_budget_allocated: Decimal = Field(..., ge=0)
    year: Optional[int] = None
    fiscal_year: Optional[int] = None
    notes: Optional[str] = None


class BudgetItemCreate(BudgetItemBase):
    """Schema for creating a new budget item. Derived fields start at zero."""

    pass


class BudgetItemUpdate(BaseModel):
    """Schema for updating a budget item. Derived fields are not editable."""

    particulars: Optional[str] = Field(None, min_length=1, max_length=255)
    total_budget_allocated: Optional[Decimal] = Field(None, ge=0)
    year: Optional[int] = None
    fiscal_year: Optional[int] = None
    notes: Optional[str] = None
    reason: Optional[str] = None


class BudgetItem(BudgetItemBase):
    """Schema for budget item response data."""

    id: UUID
    obligated_budget: Decimal
    total_budget_utilized: Decimal
    utilization_rate: Decimal
    status: str
    project_completed: int
    project_delayed: int
    projects_on_track: int
    is_pinned: bool
    created_by: Optional[UUID] = None
    created_at: datetime
    updated_by: Optional[UUID] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class BudgetItemStatistics(BaseModel):
    """Portfolio-wide totals across all budget items."""

    total_allocated: Decimal
    total_utilized: Decimal
    average_utilization_rate: Decimal
    total_budget_items: int
