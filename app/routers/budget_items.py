"""
Budget item API endpoints.
This module provides CRUD endpoints for budget items plus the rollup repair.
"""
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.deps import get_current_actor
from app.core.logging import logger
from app.db.session import get_db, unit_of_work
from app.models.user import User
from app.schemas.budget_item import BudgetItem, BudgetItemCreate, BudgetItemStatistics, BudgetItemUpdate
from app.schemas.project import TrashRequest
from app.services.aggregation import ProjectAggregator, RecomputeResult, RepairResult
from app.services.budget_item import BudgetItemService

router = APIRouter()


@router.post("/", response_model=BudgetItem, status_code=status.HTTP_201_CREATED)
async def create_budget_item(
    item_in: BudgetItemCreate,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(get_current_actor)
) -> BudgetItem:
    """
    Create a new budget item.

    Args:
        item_in: Budget item creation data
        db: Database session
        actor: Acting user

    Returns:
        Created budget item
    """
    logger.info(f"Budget item creation requested by: {actor.email}")
    return await BudgetItemService.create(db, item_in, actor.id)


@router.get("/", response_model=List[BudgetItem])
async def list_budget_items(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    year: Optional[int] = None,
    db: AsyncSession = Depends(get_db)
) -> List[BudgetItem]:
    return await BudgetItemService.get_all(db, skip=skip, limit=limit, year=year)


@router.get("/statistics", response_model=BudgetItemStatistics)
async def get_budget_item_statistics(db: AsyncSession = Depends(get_db)) -> BudgetItemStatistics:
    return await BudgetItemService.get_statistics(db)


@router.post("/recalculate", response_model=RepairResult)
async def recalculate_all(
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(get_current_actor)
) -> RepairResult:
    """
    Recompute every project and budget item from their children.

    Used to repair aggregates that drifted from their children.
    """
    logger.info(f"Full recompute requested by: {actor.email}")
    async with unit_of_work(db):
        results = await ProjectAggregator.recompute_all(db, actor.id)
    return results


@router.get("/{budget_item_id}", response_model=BudgetItem)
async def get_budget_item(
    budget_item_id: UUID,
    db: AsyncSession = Depends(get_db)
) -> BudgetItem:
    budget_item = await BudgetItemService.get_by_id(db, budget_item_id)
    if budget_item is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Budget item not found")
    return budget_item


@router.put("/{budget_item_id}", response_model=BudgetItem)
async def update_budget_item(
    budget_item_id: UUID,
    item_in: BudgetItemUpdate,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(get_current_actor)
) -> BudgetItem:
    """
    Update a budget item.

    Args:
        budget_item_id: Budget item ID
        item_in: Fields to change plus an optional reason
        db: Database session
        actor: Acting user

    Returns:
        Updated budget item
    """
    return await BudgetItemService.update(db, budget_item_id, item_in, actor.id)


@router.post("/{budget_item_id}/pin", response_model=BudgetItem)
async def toggle_budget_item_pin(
    budget_item_id: UUID,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(get_current_actor)
) -> BudgetItem:
    return await BudgetItemService.toggle_pin(db, budget_item_id, actor.id)


@router.post("/{budget_item_id}/recalculate", response_model=RecomputeResult)
async def recalculate_budget_item(
    budget_item_id: UUID,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(get_current_actor)
) -> RecomputeResult:
    async with unit_of_work(db):
        result = await ProjectAggregator.recompute_for_budget_item(db, budget_item_id, actor.id)
    return result


@router.delete("/{budget_item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_budget_item(
    budget_item_id: UUID,
    body: Optional[TrashRequest] = None,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(get_current_actor)
) -> None:
    """
    Delete a budget item that has no linked projects.

    Returns 409 with the number of linked projects otherwise.
    """
    await BudgetItemService.delete(db, budget_item_id, actor.id, reason=body.reason if body else None)
