"""
Project API endpoints.
This module provides CRUD endpoints for projects and their report history.
"""
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.deps import get_current_actor
from app.core.logging import logger
from app.db.session import get_db, unit_of_work
from app.models.user import User
from app.schemas.breakdown import Breakdown
from app.schemas.project import Project, ProjectCreate, ProjectUpdate, TrashRequest
from app.services.aggregation import ProjectAggregator, RecomputeResult
from app.services.breakdown import BreakdownService
from app.services.project import ProjectService

router = APIRouter()


@router.post("/", response_model=Project, status_code=status.HTTP_201_CREATED)
async def create_project(
    project_in: ProjectCreate,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(get_current_actor)
) -> Project:
    """
    Create a new project.

    Args:
        project_in: Project creation data
        db: Database session
        actor: Acting user

    Returns:
        Created project
    """
    logger.info(f"Project creation requested by: {actor.email}")
    return await ProjectService.create(db, project_in, actor.id)


@router.get("/", response_model=List[Project])
async def list_projects(
    budget_item_id: Optional[UUID] = None,
    include_deleted: bool = False,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db)
) -> List[Project]:
    return await ProjectService.get_all(
        db, budget_item_id=budget_item_id, include_deleted=include_deleted, skip=skip, limit=limit
    )


@router.get("/{project_id}", response_model=Project)
async def get_project(project_id: UUID, db: AsyncSession = Depends(get_db)) -> Project:
    project = await ProjectService.get_by_id(db, project_id)
    if project is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found")
    return project


@router.get("/{project_id}/history", response_model=List[Breakdown])
async def get_project_history(
    project_id: UUID,
    include_deleted: bool = False,
    db: AsyncSession = Depends(get_db)
) -> List[Breakdown]:
    """Get a project's breakdown reports ordered by report date."""
    return await BreakdownService.get_project_history(db, project_id, include_deleted=include_deleted)


@router.put("/{project_id}", response_model=Project)
async def update_project(
    project_id: UUID,
    project_in: ProjectUpdate,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(get_current_actor)
) -> Project:
    """
    Update a project, moving it between budget items if budget_item_id changes.

    Args:
        project_id: Project ID
        project_in: New field values plus an optional reason
        db: Database session
        actor: Acting user

    Returns:
        Updated project
    """
    return await ProjectService.update(db, project_id, project_in, actor.id)


@router.post("/{project_id}/pin", response_model=Project)
async def toggle_project_pin(
    project_id: UUID,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(get_current_actor)
) -> Project:
    return await ProjectService.toggle_pin(db, project_id, actor.id)


@router.post("/{project_id}/recalculate", response_model=RecomputeResult)
async def recalculate_project(
    project_id: UUID,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(get_current_actor)
) -> RecomputeResult:
    async with unit_of_work(db):
        result = await ProjectAggregator.recompute(db, project_id, actor.id)
    return result


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(
    project_id: UUID,
    body: Optional[TrashRequest] = None,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(get_current_actor)
) -> None:
    """Hard-delete a project with no active breakdowns (409 otherwise)."""
    await ProjectService.delete(db, project_id, actor.id, reason=body.reason if body else None)
