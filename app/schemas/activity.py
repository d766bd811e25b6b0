# app/schemas/activity.py
from datetime import datetime
from typing import Any, Dict, List, Optional
import uuid
from pydantic import BaseModel, ConfigDict, Field


class ActivityLogResponse(BaseModel):
    id: int
    target_type: str
    action: str
    target_id: Optional[str] = None
    target_name: str
    implementing_office: Optional[str] = None
    budget_item_id: Optional[str] = None
    project_id: Optional[str] = None
    district: Optional[str] = None
    municipality: Optional[str] = None
    barangay: Optional[str] = None
    previous_values: Optional[Dict[str, Any]] = None
    new_values: Optional[Dict[str, Any]] = None
    changed_fields: Optional[List[str]] = None
    change_summary: Optional[Dict[str, Any]] = None
    performed_by: uuid.UUID
    performed_by_name: str
    performed_by_email: str
    performed_by_role: str
    reason: Optional[str] = None
    source: Optional[str] = None
    batch_id: Optional[str] = None
    timestamp: datetime
    is_flagged: bool
    flag_reason: Optional[str] = None
    is_reviewed: bool
    reviewed_by: Optional[uuid.UUID] = None
    reviewed_at: Optional[datetime] = None
    review_notes: Optional[str] = None
    triggered_aggregation_update: bool
    affected_aggregation_ids: Optional[List[str]] = None

    model_config = ConfigDict(from_attributes=True)


class ActivityFilters(BaseModel):
    """Filters for the paginated activity listing; all are optional and combined with AND."""

    target_type: Optional[str] = None
    target_id: Optional[str] = None
    action: Optional[str] = None
    performed_by: Optional[uuid.UUID] = None
    implementing_office: Optional[str] = None
    target_name: Optional[str] = None
    budget_item_id: Optional[str] = None
    project_id: Optional[str] = None
    municipality: Optional[str] = None
    batch_id: Optional[str] = None
    source: Optional[str] = None
    is_flagged: Optional[bool] = None
    is_reviewed: Optional[bool] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class ReviewRequest(BaseModel):
    review_notes: Optional[str] = None


class UserActivityCount(BaseModel):
    user_id: uuid.UUID
    user_name: str
    count: int


class ActivityStatistics(BaseModel):
    total_activities: int
    action_counts: Dict[str, int] = Field(default_factory=dict)
    source_counts: Dict[str, int] = Field(default_factory=dict)
    flagged_count: int = 0
    unreviewed_flagged_count: int = 0
    top_users: List[UserActivityCount] = Field(default_factory=list)


class TimelineBucket(BaseModel):
    date: str
    count: int
