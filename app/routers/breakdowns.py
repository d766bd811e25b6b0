"""
Breakdown API endpoints.
This module provides endpoints for breakdown reports, bulk operations and
report ingestion.
"""
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.deps import get_current_actor
from app.core.logging import logger
from app.db.session import get_db
from app.models.user import User
from app.schemas.breakdown import (
    Breakdown,
    BreakdownBulkCreate,
    BreakdownBulkDelete,
    BreakdownBulkUpdate,
    BreakdownCreate,
    BreakdownUpdate,
    BulkResult,
    MunicipalityStats,
    ProjectReport,
)
from app.schemas.project import TrashRequest
from app.services.breakdown import BreakdownService

router = APIRouter()


@router.post("/", response_model=Breakdown, status_code=status.HTTP_201_CREATED)
async def create_breakdown(
    breakdown_in: BreakdownCreate,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(get_current_actor)
) -> Breakdown:
    """
    Create a breakdown report.

    Args:
        breakdown_in: Breakdown creation data
        db: Database session
        actor: Acting user

    Returns:
        Created breakdown
    """
    logger.info(f"Breakdown creation requested by: {actor.email}")
    return await BreakdownService.create(db, breakdown_in, actor.id)


@router.post("/reports", response_model=Breakdown, status_code=status.HTTP_201_CREATED)
async def log_project_report(
    report: ProjectReport,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(get_current_actor)
) -> Breakdown:
    """Ingest a report row, creating the named project if it does not exist yet."""
    return await BreakdownService.log_report(db, report, actor.id)


@router.post("/bulk", response_model=BulkResult)
async def bulk_create_breakdowns(
    body: BreakdownBulkCreate,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(get_current_actor)
) -> BulkResult:
    logger.info(f"Bulk create of {len(body.records)} breakdown(s) requested by: {actor.email}")
    return await BreakdownService.bulk_create(
        db, body.records, actor.id, source=body.source, reason=body.reason
    )


@router.put("/bulk", response_model=BulkResult)
async def bulk_update_breakdowns(
    body: BreakdownBulkUpdate,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(get_current_actor)
) -> BulkResult:
    logger.info(f"Bulk update of {len(body.records)} breakdown(s) requested by: {actor.email}")
    return await BreakdownService.bulk_update(
        db, body.records, actor.id, source=body.source, reason=body.reason
    )


@router.post("/bulk-delete", response_model=BulkResult)
async def bulk_delete_breakdowns(
    body: BreakdownBulkDelete,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(get_current_actor)
) -> BulkResult:
    logger.info(f"Bulk delete of {len(body.ids)} breakdown(s) requested by: {actor.email}")
    return await BreakdownService.bulk_delete(db, body.ids, actor.id, source=body.source, reason=body.reason)


@router.get("/stats/municipalities", response_model=List[MunicipalityStats])
async def get_stats_by_municipality(db: AsyncSession = Depends(get_db)) -> List[MunicipalityStats]:
    return await BreakdownService.get_stats_by_municipality(db)


@router.get("/{breakdown_id}", response_model=Breakdown)
async def get_breakdown(breakdown_id: UUID, db: AsyncSession = Depends(get_db)) -> Breakdown:
    breakdown = await BreakdownService.get_by_id(db, breakdown_id)
    if breakdown is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Breakdown not found")
    return breakdown


@router.patch("/{breakdown_id}", response_model=Breakdown)
async def update_breakdown(
    breakdown_id: UUID,
    breakdown_in: BreakdownUpdate,
    reason: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(get_current_actor)
) -> Breakdown:
    return await BreakdownService.update(db, breakdown_id, breakdown_in, actor.id, reason=reason)


@router.post("/{breakdown_id}/trash", response_model=Breakdown)
async def trash_breakdown(
    breakdown_id: UUID,
    body: Optional[TrashRequest] = None,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(get_current_actor)
) -> Breakdown:
    return await BreakdownService.move_to_trash(db, breakdown_id, actor.id, reason=body.reason if body else None)


@router.post("/{breakdown_id}/restore", response_model=Breakdown)
async def restore_breakdown(
    breakdown_id: UUID,
    body: Optional[TrashRequest] = None,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(get_current_actor)
) -> Breakdown:
    return await BreakdownService.restore_from_trash(
        db, breakdown_id, actor.id, reason=body.reason if body else None
    )


@router.delete("/{breakdown_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_breakdown(
    breakdown_id: UUID,
    body: Optional[TrashRequest] = None,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(get_current_actor)
) -> None:
    await BreakdownService.delete(db, breakdown_id, actor.id, reason=body.reason if body else None)
