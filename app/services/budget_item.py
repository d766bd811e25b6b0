"""
Service layer for budget item operations.

This module contains the business logic for budget items. Only the
descriptive fields and the allocation are written here; the derived
rollups are owned by BudgetItemAggregator.
"""

from typing import List, Optional
from decimal import Decimal
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from app.core.exceptions import BudgetTrackerError, NotFoundError, PreconditionFailedError
from app.core.logging import logger
from app.db.audit import ActivityConfig, log_activity
from app.db.session import unit_of_work
from app.models.activity import ActivityAction, TargetType
from app.models.base import utcnow
from app.models.budget_item import BudgetItem
from app.models.project import AggregateStatus, Project
from app.schemas.budget_item import BudgetItemCreate, BudgetItemStatistics, BudgetItemUpdate
from app.services.aggregation import BudgetItemAggregator, TWO_PLACES, ZERO


class BudgetItemService:
    """Service class for budget item operations."""

    @staticmethod
    async def create(
        db: AsyncSession,
        item_in: BudgetItemCreate,
        actor_id: UUID
    ) -> BudgetItem:
        """
        Create a new budget item with its derived fields zeroed.

        Args:
            db: Database session
            item_in: Budget item creation data
            actor_id: ID of the user performing the action

        Returns:
            Created budget item

        Raises:
            BudgetTrackerError: If the particulars are already taken
        """
        logger.info(f"Creating new budget item: {item_in.particulars}")

        async with unit_of_work(db):
            if await BudgetItemService.get_by_particulars(db, item_in.particulars):
                logger.warning(f"Budget item already exists: {item_in.particulars}")
                raise BudgetTrackerError(f"Budget item '{item_in.particulars}' already exists")

            now = utcnow()
            budget_item = BudgetItem(
                **item_in.model_dump(),
                obligated_budget=ZERO,
                total_budget_utilized=ZERO,
                utilization_rate=ZERO,
                status=AggregateStatus.ONGOING.value,
                project_completed=0,
                project_delayed=0,
                projects_on_track=0,
                is_pinned=False,
                created_by=actor_id,
                created_at=now,
                updated_by=actor_id,
                updated_at=now,
            )
            db.add(budget_item)
            await db.flush()

            await log_activity(
                db,
                actor_id,
                TargetType.BUDGET_ITEM,
                ActivityConfig(
                    action=ActivityAction.CREATED,
                    target_id=budget_item.id,
                    snapshot=budget_item.to_dict(),
                ),
            )

        logger.info(f"Created budget item with ID: {budget_item.id}")
        return budget_item

    @staticmethod
    async def get_by_id(db: AsyncSession, budget_item_id: UUID) -> Optional[BudgetItem]:
        """
        Get a budget item by ID.

        Args:
            db: Database session
            budget_item_id: Budget item ID

        Returns:
            Budget item if found, None otherwise
        """
        logger.debug(f"Getting budget item by ID: {budget_item_id}")
        result = await db.execute(select(BudgetItem).where(BudgetItem.id == budget_item_id))
        return result.scalars().first()

    @staticmethod
    async def get_by_particulars(db: AsyncSession, particulars: str) -> Optional[BudgetItem]:
        logger.debug(f"Getting budget item by particulars: {particulars}")
        result = await db.execute(select(BudgetItem).where(BudgetItem.particulars == particulars))
        return result.scalars().first()

    @staticmethod
    async def get_all(
        db: AsyncSession,
        skip: int = 0,
        limit: int = 100,
        year: Optional[int] = None
    ) -> List[BudgetItem]:
        """
        Get budget items, pinned first, newest first.

        Args:
            db: Database session
            skip: Number of records to skip
            limit: Maximum number of records to return
            year: Filter by year

        Returns:
            List of budget items
        """
        logger.debug(f"Getting budget items with skip={skip}, limit={limit}, year={year}")
        query = select(BudgetItem)
        if year is not None:
            query = query.where(BudgetItem.year == year)
        query = query.order_by(BudgetItem.is_pinned.desc(), BudgetItem.created_at.desc())
        result = await db.execute(query.offset(skip).limit(limit))
        return list(result.scalars().all())

    @staticmethod
    async def update(
        db: AsyncSession,
        budget_item_id: UUID,
        item_in: BudgetItemUpdate,
        actor_id: UUID
    ) -> BudgetItem:
        """
        Update a budget item's editable fields.

        A change of total_budget_allocated recomputes the item's utilization.

        Args:
            db: Database session
            budget_item_id: Budget item ID
            item_in: Fields to change plus an optional reason
            actor_id: ID of the user performing the action

        Returns:
            Updated budget item

        Raises:
            NotFoundError: If the budget item does not exist
            BudgetTrackerError: If the new particulars are already taken
        """
        logger.info(f"Updating budget item with ID: {budget_item_id}")

        async with unit_of_work(db):
            budget_item = await BudgetItemService.get_by_id(db, budget_item_id)
            if budget_item is None:
                logger.warning(f"Budget item not found, ID: {budget_item_id}")
                raise NotFoundError("Budget item", budget_item_id)

            previous = budget_item.to_dict()
            update_data = item_in.model_dump(exclude_unset=True, exclude={"reason"})

            new_particulars = update_data.get("particulars")
            if new_particulars and new_particulars != budget_item.particulars:
                if await BudgetItemService.get_by_particulars(db, new_particulars):
                    raise BudgetTrackerError(f"Budget item '{new_particulars}' already exists")

            for field, value in update_data.items():
                setattr(budget_item, field, value)
            budget_item.updated_by = actor_id
            budget_item.updated_at = utcnow()
            await db.flush()

            affected = []
            if "total_budget_allocated" in update_data and Decimal(
                str(update_data["total_budget_allocated"])
            ) != Decimal(str(previous["total_budget_allocated"])):
                await BudgetItemAggregator.recompute(db, budget_item.id, actor_id)
                affected.append(budget_item.id)

            await log_activity(
                db,
                actor_id,
                TargetType.BUDGET_ITEM,
                ActivityConfig(
                    action=ActivityAction.UPDATED,
                    target_id=budget_item.id,
                    previous_values=previous,
                    new_values=budget_item.to_dict(),
                    reason=item_in.reason,
                    affected_aggregation_ids=affected,
                ),
            )

        logger.info(f"Updated budget item with ID: {budget_item.id}")
        return budget_item

    @staticmethod
    async def delete(
        db: AsyncSession,
        budget_item_id: UUID,
        actor_id: UUID,
        reason: Optional[str] = None
    ) -> None:
        """
        Hard-delete a budget item that no project references.

        Trashed projects still count as references.

        Raises:
            NotFoundError: If the budget item does not exist
            PreconditionFailedError: If any project is linked
        """
        logger.info(f"Deleting budget item with ID: {budget_item_id}")

        async with unit_of_work(db):
            budget_item = await BudgetItemService.get_by_id(db, budget_item_id)
            if budget_item is None:
                raise NotFoundError("Budget item", budget_item_id)

            linked = (
                await db.execute(
                    select(func.count()).select_from(Project).where(Project.budget_item_id == budget_item_id)
                )
            ).scalar() or 0
            if linked:
                logger.warning(f"Refusing to delete budget item {budget_item_id}: {linked} linked project(s)")
                raise PreconditionFailedError(
                    f"Cannot delete budget item with {linked} linked project(s).",
                    blocking_count=linked,
                )

            await log_activity(
                db,
                actor_id,
                TargetType.BUDGET_ITEM,
                ActivityConfig(
                    action=ActivityAction.DELETED,
                    target_id=budget_item.id,
                    snapshot=budget_item.to_dict(),
                    reason=reason,
                ),
            )
            await db.delete(budget_item)
            await db.flush()

        logger.info(f"Deleted budget item with ID: {budget_item_id}")

    @staticmethod
    async def toggle_pin(db: AsyncSession, budget_item_id: UUID, actor_id: UUID) -> BudgetItem:
        async with unit_of_work(db):
            budget_item = await BudgetItemService.get_by_id(db, budget_item_id)
            if budget_item is None:
                raise NotFoundError("Budget item", budget_item_id)
            previous = budget_item.to_dict()
            budget_item.is_pinned = not budget_item.is_pinned
            budget_item.updated_by = actor_id
            budget_item.updated_at = utcnow()
            await db.flush()
            await log_activity(
                db,
                actor_id,
                TargetType.BUDGET_ITEM,
                ActivityConfig(
                    action=ActivityAction.UPDATED,
                    target_id=budget_item.id,
                    previous_values=previous,
                    new_values=budget_item.to_dict(),
                ),
            )
        logger.info(f"Budget item {budget_item_id} pinned={budget_item.is_pinned}")
        return budget_item

    @staticmethod
    async def get_statistics(db: AsyncSession) -> BudgetItemStatistics:
        """
        Get portfolio totals across all budget items.

        Returns:
            Total allocated and utilized amounts, the mean utilization rate
            and the number of budget items
        """
        result = await db.execute(
            select(
                func.count(BudgetItem.id),
                func.coalesce(func.sum(BudgetItem.total_budget_allocated), 0),
                func.coalesce(func.sum(BudgetItem.total_budget_utilized), 0),
                func.coalesce(func.avg(BudgetItem.utilization_rate), 0),
            )
        )
        count, allocated, utilized, average = result.one()
        return BudgetItemStatistics(
            total_allocated=Decimal(str(allocated)).quantize(TWO_PLACES),
            total_utilized=Decimal(str(utilized)).quantize(TWO_PLACES),
            average_utilization_rate=Decimal(str(average)).quantize(TWO_PLACES),
            total_budget_items=count,
        )
