"""
Activity log endpoints.
Read access to the audit trail plus the administrator review annotation.
"""
from typing import List, Optional
from datetime import datetime
from uuid import UUID
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from app.db.session import get_db
from app.core.deps import get_current_actor, get_pagination_params
from app.core.logging import logger
from app.models.user import User
from app.schemas.activity import (
    ActivityFilters,
    ActivityLogResponse,
    ActivityStatistics,
    ReviewRequest,
    TimelineBucket,
)
from app.services.activity import ActivityService
from app.utils.pagination import PaginationParams, PaginatedResponse

router = APIRouter()


@router.get("/", response_model=PaginatedResponse[ActivityLogResponse])
async def list_activities(
    db: AsyncSession = Depends(get_db),
    pagination: PaginationParams = Depends(get_pagination_params),
    target_type: Optional[str] = Query(None, description="budget_item, project or breakdown"),
    target_id: Optional[str] = Query(None),
    action: Optional[str] = Query(None, description="Filter by action (created, updated, ...)"),
    performed_by: Optional[UUID] = Query(None, description="Filter by acting user"),
    target_name: Optional[str] = Query(None, description="Substring of the project or item name"),
    implementing_office: Optional[str] = Query(None, description="Substring of the implementing office"),
    municipality: Optional[str] = Query(None, description="Substring of the municipality"),
    budget_item_id: Optional[str] = Query(None),
    project_id: Optional[str] = Query(None),
    batch_id: Optional[str] = Query(None),
    source: Optional[str] = Query(None),
    is_flagged: Optional[bool] = Query(None),
    is_reviewed: Optional[bool] = Query(None),
    start_date: Optional[datetime] = Query(None, description="Start date filter (ISO format)"),
    end_date: Optional[datetime] = Query(None, description="End date filter (ISO format)"),
) -> PaginatedResponse[ActivityLogResponse]:
    """
    Retrieve activity entries with filtering and pagination.
    """
    filters = ActivityFilters(
        target_type=target_type,
        target_id=target_id,
        action=action,
        performed_by=performed_by,
        target_name=target_name,
        implementing_office=implementing_office,
        municipality=municipality,
        budget_item_id=budget_item_id,
        project_id=project_id,
        batch_id=batch_id,
        source=source,
        is_flagged=is_flagged,
        is_reviewed=is_reviewed,
        start_date=start_date,
        end_date=end_date,
    )
    page = await ActivityService.list_activities(db, filters, pagination)
    return PaginatedResponse[ActivityLogResponse](
        items=[ActivityLogResponse.model_validate(entry) for entry in page.items],
        total=page.total,
        page=page.page,
        size=page.size,
        pages=page.pages,
        has_next=page.has_next,
        has_prev=page.has_prev,
    )


@router.get("/recent", response_model=List[ActivityLogResponse])
async def get_recent_activities(
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db)
):
    return await ActivityService.get_recent(db, limit=limit)


@router.get("/flagged", response_model=List[ActivityLogResponse])
async def get_flagged_activities(
    unreviewed_only: bool = True,
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db)
):
    return await ActivityService.get_flagged(db, unreviewed_only=unreviewed_only, limit=limit)


@router.get("/search", response_model=List[ActivityLogResponse])
async def search_activities(
    q: str = Query(..., min_length=1, description="Keyword"),
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db)
):
    return await ActivityService.search(db, q, limit=limit)


@router.get("/statistics", response_model=ActivityStatistics)
async def get_activity_statistics(
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    db: AsyncSession = Depends(get_db)
):
    return await ActivityService.get_statistics(db, start_date=start_date, end_date=end_date)


@router.get("/timeline", response_model=List[TimelineBucket])
async def get_activity_timeline(
    days: int = Query(30, ge=1, le=366),
    db: AsyncSession = Depends(get_db)
):
    return await ActivityService.get_timeline(db, days=days)


@router.get("/batches/{batch_id}", response_model=List[ActivityLogResponse])
async def get_batch(batch_id: str, db: AsyncSession = Depends(get_db)):
    """Entries of one bulk operation, in processing order."""
    return await ActivityService.get_by_batch(db, batch_id)


@router.get("/users/{user_id}", response_model=List[ActivityLogResponse])
async def get_user_activities(
    user_id: UUID,
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db)
):
    return await ActivityService.get_by_user(db, user_id, limit=limit)


@router.get("/{target_type}/{target_id}", response_model=List[ActivityLogResponse])
async def get_target_history(
    target_type: str,
    target_id: str,
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db)
):
    """History of one budget item, project or breakdown, newest first."""
    return await ActivityService.get_by_target(db, target_type, target_id, limit=limit)


@router.post("/{activity_id}/review", response_model=ActivityLogResponse)
async def review_activity(
    activity_id: int,
    body: ReviewRequest,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(get_current_actor)
):
    """
    Mark an entry as reviewed. Administrators only.
    """
    logger.info(f"Review of activity {activity_id} requested by: {actor.email}")
    return await ActivityService.review(db, activity_id, actor.id, body.review_notes)


@router.get("/{activity_id}", response_model=ActivityLogResponse)
async def get_activity(activity_id: int, db: AsyncSession = Depends(get_db)):
    entry = await ActivityService.get_by_id(db, activity_id)
    if entry is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Activity not found")
    return entry
