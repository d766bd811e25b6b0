"""
Remark API endpoints.
This module provides endpoints for project remarks and their listings.
"""
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.deps import get_current_actor
from app.core.logging import logger
from app.db.session import get_db
from app.models.remark import RemarkPriority
from app.models.user import User
from app.schemas.project import TrashRequest
from app.schemas.remark import Remark, RemarkCreate, RemarkStatistics, RemarkUpdate
from app.services.remark import RemarkService

router = APIRouter()


@router.post("/", response_model=Remark, status_code=status.HTTP_201_CREATED)
async def create_remark(
    remark_in: RemarkCreate,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(get_current_actor)
) -> Remark:
    """
    Create a remark on a project.

    Args:
        remark_in: Remark creation data
        db: Database session
        actor: Acting user

    Returns:
        Created remark
    """
    logger.info(f"Remark creation requested by: {actor.email}")
    return await RemarkService.create(db, remark_in, actor.id)


@router.get("/recent", response_model=List[Remark])
async def get_recent_remarks(
    project_id: Optional[UUID] = None,
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db)
) -> List[Remark]:
    return await RemarkService.get_recent(db, project_id=project_id, limit=limit)


@router.get("/search", response_model=List[Remark])
async def search_remarks(
    q: str = Query(..., min_length=1),
    project_id: Optional[UUID] = None,
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db)
) -> List[Remark]:
    return await RemarkService.search(db, q, project_id=project_id, limit=limit)


@router.get("/projects/{project_id}", response_model=List[Remark])
async def list_project_remarks(
    project_id: UUID,
    category: Optional[str] = None,
    priority: Optional[RemarkPriority] = None,
    is_pinned: Optional[bool] = None,
    db: AsyncSession = Depends(get_db)
) -> List[Remark]:
    """List a project's remarks, pinned first, newest first."""
    return await RemarkService.list_by_project(
        db, project_id, category=category, priority=priority, is_pinned=is_pinned
    )


@router.get("/projects/{project_id}/pinned", response_model=List[Remark])
async def get_pinned_remarks(project_id: UUID, db: AsyncSession = Depends(get_db)) -> List[Remark]:
    return await RemarkService.get_pinned(db, project_id)


@router.get("/projects/{project_id}/categories/{category}", response_model=List[Remark])
async def list_remarks_by_category(
    project_id: UUID,
    category: str,
    db: AsyncSession = Depends(get_db)
) -> List[Remark]:
    return await RemarkService.list_by_category(db, project_id, category)


@router.get("/projects/{project_id}/stats", response_model=RemarkStatistics)
async def get_project_remark_stats(project_id: UUID, db: AsyncSession = Depends(get_db)) -> RemarkStatistics:
    return await RemarkService.get_project_stats(db, project_id)


@router.get("/budget-items/{budget_item_id}", response_model=List[Remark])
async def list_budget_item_remarks(budget_item_id: UUID, db: AsyncSession = Depends(get_db)) -> List[Remark]:
    return await RemarkService.list_by_budget_item(db, budget_item_id)


@router.get("/priority/{priority}", response_model=List[Remark])
async def list_remarks_by_priority(
    priority: RemarkPriority,
    project_id: Optional[UUID] = None,
    db: AsyncSession = Depends(get_db)
) -> List[Remark]:
    return await RemarkService.list_by_priority(db, priority, project_id=project_id)


@router.get("/users/{user_id}", response_model=List[Remark])
async def list_user_remarks(
    user_id: UUID,
    project_id: Optional[UUID] = None,
    db: AsyncSession = Depends(get_db)
) -> List[Remark]:
    return await RemarkService.get_by_user(db, user_id, project_id=project_id)


@router.get("/{remark_id}", response_model=Remark)
async def get_remark(remark_id: UUID, db: AsyncSession = Depends(get_db)) -> Remark:
    remark = await RemarkService.get_by_id(db, remark_id)
    if remark is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Remark not found")
    return remark


@router.patch("/{remark_id}", response_model=Remark)
async def update_remark(
    remark_id: UUID,
    remark_in: RemarkUpdate,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(get_current_actor)
) -> Remark:
    return await RemarkService.update(db, remark_id, remark_in, actor.id)


@router.post("/{remark_id}/pin", response_model=Remark)
async def toggle_remark_pin(
    remark_id: UUID,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(get_current_actor)
) -> Remark:
    return await RemarkService.toggle_pin(db, remark_id, actor.id)


@router.delete("/{remark_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_remark(
    remark_id: UUID,
    body: Optional[TrashRequest] = None,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(get_current_actor)
) -> None:
    await RemarkService.delete(db, remark_id, actor.id, reason=body.reason if body else None)
