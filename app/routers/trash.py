"""
Trash API endpoints.
This module provides the soft-delete, restore and permanent delete endpoints
for projects.
"""
from typing import List, Literal, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.deps import get_current_actor
from app.core.logging import logger
from app.db.session import get_db
from app.models.user import User
from app.schemas.project import Project, TrashRequest, TrashResult
from app.services.trash import TrashService

router = APIRouter()


@router.get("/", response_model=List[Project])
async def list_trash(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db)
) -> List[Project]:
    return await TrashService.list_trash(db, skip=skip, limit=limit)


@router.post("/projects/{project_id}", response_model=TrashResult)
async def move_project_to_trash(
    project_id: UUID,
    body: Optional[TrashRequest] = None,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(get_current_actor)
) -> TrashResult:
    """
    Move a project and its active breakdowns to the trash.

    Args:
        project_id: Project ID
        body: Optional reason
        db: Database session
        actor: Acting user

    Returns:
        The trashed project and breakdown ids
    """
    logger.info(f"Trash of project {project_id} requested by: {actor.email}")
    return await TrashService.move_to_trash(db, project_id, actor.id, reason=body.reason if body else None)


@router.post("/projects/{project_id}/restore", response_model=TrashResult)
async def restore_project(
    project_id: UUID,
    scope: Optional[Literal["cascade", "all"]] = None,
    body: Optional[TrashRequest] = None,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(get_current_actor)
) -> TrashResult:
    logger.info(f"Restore of project {project_id} requested by: {actor.email}")
    return await TrashService.restore_from_trash(
        db, project_id, actor.id, reason=body.reason if body else None, scope=scope
    )


@router.delete("/projects/{project_id}", response_model=TrashResult)
async def delete_project_permanently(
    project_id: UUID,
    body: Optional[TrashRequest] = None,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(get_current_actor)
) -> TrashResult:
    logger.info(f"Permanent delete of project {project_id} requested by: {actor.email}")
    return await TrashService.delete_permanently(db, project_id, actor.id, reason=body.reason if body else None)
