"""
Pydantic schemas for project breakdowns.

This module defines the request and response schemas for breakdown report
endpoints, including the bulk operations and report ingestion.
"""

from typing import List, Optional
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.models.activity import ActivitySource
from app.utils.status import normalize_status


def _canonical_status(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    status = normalize_status(v)
    if status is None:
        raise ValueError(f"Unknown breakdown status: {v}")
    return status.value


class BreakdownFields(BaseModel):
    """Editable report fields shared by create, update and ingestion."""

    report_date: Optional[datetime] = None
    batch_id: Optional[str] = None
    district: Optional[str] = None
    municipality: Optional[str] = None
    barangay: Optional[str] = None
    fund_source: Optional[str] = None
    program_type: Optional[str] = None
    implementing_agency: Optional[str] = None
    appropriation: Decimal = Field(Decimal("0.00"), ge=0)
    obligation: Optional[Decimal] = None
    balance: Optional[Decimal] = None
    accomplishment_rate: Decimal = Field(Decimal("0.00"), ge=0, le=100)
    status: Optional[str] = None
    remarks: Optional[str] = None

    @field_validator("status")
    @classmethod
    def canonical_status(cls, v):
        return _canonical_status(v)


class BreakdownCreate(BreakdownFields):
    project_id: UUID


class BreakdownUpdate(BaseModel):
    """Partial update; only the fields that are set are applied."""

    report_date: Optional[datetime] = None
    district: Optional[str] = None
    municipality: Optional[str] = None
    barangay: Optional[str] = None
    fund_source: Optional[str] = None
    program_type: Optional[str] = None
    implementing_agency: Optional[str] = None
    appropriation: Optional[Decimal] = Field(None, ge=0)
    obligation: Optional[Decimal] = None
    balance: Optional[Decimal] = None
    accomplishment_rate: Optional[Decimal] = Field(None, ge=0, le=100)
    status: Optional[str] = None
    remarks: Optional[str] = None

    @field_validator("status")
    @classmethod
    def canonical_status(cls, v):
        return _canonical_status(v)


class BreakdownBulkUpdateItem(BreakdownUpdate):
    id: UUID


class BreakdownBulkCreate(BaseModel):
    records: List[BreakdownCreate]
    source: ActivitySource = ActivitySource.BULK_IMPORT
    reason: Optional[str] = None


class BreakdownBulkUpdate(BaseModel):
    records: List[BreakdownBulkUpdateItem]
    source: ActivitySource = ActivitySource.BULK_IMPORT
    reason: Optional[str] = None


class BreakdownBulkDelete(BaseModel):
    ids: List[UUID]
    source: ActivitySource = ActivitySource.WEB_UI
    reason: Optional[str] = None


class ProjectReport(BreakdownFields):
    """A report row that finds or creates its project by name and office."""

    project_name: str = Field(..., min_length=1, max_length=255)
    implementing_office: str = Field(..., min_length=1, max_length=255)
    budget_item_id: Optional[UUID] = None


class Breakdown(BreakdownFields):
    """Schema for breakdown response data."""

    id: UUID
    project_id: UUID
    report_date: datetime
    is_deleted: bool
    deleted_at: Optional[datetime] = None
    deleted_by: Optional[UUID] = None
    created_by: Optional[UUID] = None
    created_at: datetime
    updated_by: Optional[UUID] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class SkippedRecord(BaseModel):
    id: Optional[UUID] = None
    reason: str


class BulkResult(BaseModel):
    """Outcome of a bulk operation; skipped holds the records that were not applied."""

    count: int
    ids: List[UUID] = Field(default_factory=list)
    skipped: List[SkippedRecord] = Field(default_factory=list)
    batch_id: Optional[str] = None


class MunicipalityStats(BaseModel):
    municipality: str
    count: int
    total_budget: Decimal
