"""
Rollup engine for projects and budget items.

This module keeps every derived field in exactly one place:

- ProjectAggregator derives a project's per-status counts and status from its
  active (non-deleted) breakdowns, then recomputes the parent budget item.
- BudgetItemAggregator derives a budget item's obligated/utilized totals,
  utilization rate, per-status counts and status from its active projects.

Both recomputes read the current children and overwrite the derived fields,
so they are idempotent and double as the repair mechanism for drifted
aggregates (recompute_all). The parent row is selected FOR UPDATE so two
concurrent recomputes of the same parent serialize instead of losing an
update. Locks are always taken child first, then parent; two parents of
the same mutation are locked in id order.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Iterable, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError
from app.core.logging import logger
from app.models.base import utcnow
from app.models.breakdown import BreakdownStatus, ProjectBreakdown
from app.models.budget_item import BudgetItem
from app.models.project import AggregateStatus, Project
from app.utils.status import normalize_status

ZERO = Decimal("0.00")
TWO_PLACES = Decimal("0.01")


@dataclass(frozen=True)
class StatusCounts:
    completed: int = 0
    delayed: int = 0
    on_track: int = 0


def count_breakdown_statuses(statuses: Iterable[Optional[str]]) -> StatusCounts:
    """Count breakdown statuses; on_hold counts as on track, cancelled/missing count nowhere."""
    completed = delayed = on_track = 0
    for raw in statuses:
        status = normalize_status(raw)
        if status == BreakdownStatus.COMPLETED:
            completed += 1
        elif status == BreakdownStatus.DELAYED:
            delayed += 1
        elif status in (BreakdownStatus.ONGOING, BreakdownStatus.ON_HOLD):
            on_track += 1
    return StatusCounts(completed=completed, delayed=delayed, on_track=on_track)


def count_project_statuses(statuses: Iterable[Optional[str]]) -> StatusCounts:
    completed = delayed = on_track = 0
    for status in statuses:
        if status == AggregateStatus.COMPLETED.value:
            completed += 1
        elif status == AggregateStatus.DELAYED.value:
            delayed += 1
        elif status == AggregateStatus.ONGOING.value:
            on_track += 1
    return StatusCounts(completed=completed, delayed=delayed, on_track=on_track)


def derive_status(counts: StatusCounts) -> AggregateStatus:
    """
    Most-urgent-wins status: any ongoing child keeps the parent ongoing,
    otherwise delayed beats completed. No counted children means ongoing.
    """
    if counts.on_track > 0:
        return AggregateStatus.ONGOING
    if counts.delayed > 0:
        return AggregateStatus.DELAYED
    if counts.completed > 0:
        return AggregateStatus.COMPLETED
    return AggregateStatus.ONGOING


def calculate_utilization_rate(allocated: Any, utilized: Any) -> Decimal:
    """Return (utilized / allocated) * 100 rounded to 2 places, or 0 when nothing is allocated."""
    allocated = Decimal(str(allocated or 0))
    utilized = Decimal(str(utilized or 0))
    if allocated <= 0:
        return ZERO
    return (utilized / allocated * 100).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


class RecomputeResult(BaseModel):
    """Outcome of one recompute, attributable to its entity id."""

    entity_id: UUID
    active_children: int = 0
    completed: int = 0
    delayed: int = 0
    on_track: int = 0
    status: Optional[AggregateStatus] = None
    obligated_budget: Optional[Decimal] = None
    total_budget_utilized: Optional[Decimal] = None
    utilization_rate: Optional[Decimal] = None
    parent: Optional["RecomputeResult"] = None
    error: Optional[str] = None


class RepairResult(BaseModel):
    """Outcome of a full recompute: every project, then every budget item."""

    projects: List[RecomputeResult] = Field(default_factory=list)
    budget_items: List[RecomputeResult] = Field(default_factory=list)


class BudgetItemAggregator:
    """Recomputes budget item rollups from their active projects."""

    @staticmethod
    async def recompute(
        db: AsyncSession,
        budget_item_id: UUID,
        actor_id: UUID
    ) -> RecomputeResult:
        """
        Recompute a budget item's derived fields.

        Args:
            db: Database session
            budget_item_id: Budget item ID
            actor_id: User recorded as updated_by

        Returns:
            RecomputeResult with the persisted values

        Raises:
            NotFoundError: If the budget item does not exist
        """
        result = await db.execute(
            select(BudgetItem).where(BudgetItem.id == budget_item_id).with_for_update()
        )
        budget_item = result.scalars().first()
        if budget_item is None:
            logger.warning(f"Budget item not found for recompute, ID: {budget_item_id}")
            raise NotFoundError("Budget item", budget_item_id)

        result = await db.execute(
            select(Project).where(
                Project.budget_item_id == budget_item_id,
                Project.is_deleted.is_not(True),
            )
        )
        projects = result.scalars().all()

        if not projects:
            counts = StatusCounts()
            obligated = utilized = ZERO
            rate = ZERO
        else:
            counts = count_project_statuses(p.status for p in projects)
            obligated = sum((Decimal(str(p.obligated_budget or 0)) for p in projects), ZERO)
            utilized = sum((Decimal(str(p.total_budget_utilized or 0)) for p in projects), ZERO)
            rate = calculate_utilization_rate(budget_item.total_budget_allocated, utilized)
        status = derive_status(counts)

        budget_item.obligated_budget = obligated
        budget_item.total_budget_utilized = utilized
        budget_item.utilization_rate = rate
        budget_item.project_completed = counts.completed
        budget_item.project_delayed = counts.delayed
        budget_item.projects_on_track = counts.on_track
        budget_item.status = status.value
        budget_item.updated_at = utcnow()
        budget_item.updated_by = actor_id
        await db.flush()

        logger.debug(
            f"Recomputed budget item {budget_item_id}: projects={len(projects)}, "
            f"utilized={utilized}, rate={rate}, status={status.value}"
        )
        return RecomputeResult(
            entity_id=budget_item_id,
            active_children=len(projects),
            completed=counts.completed,
            delayed=counts.delayed,
            on_track=counts.on_track,
            status=status,
            obligated_budget=obligated,
            total_budget_utilized=utilized,
            utilization_rate=rate,
        )

    @staticmethod
    async def recompute_many(
        db: AsyncSession,
        budget_item_ids: Iterable[UUID],
        actor_id: UUID,
        continue_on_error: bool = False
    ) -> List[RecomputeResult]:
        """
        Recompute several budget items independently.

        A missing id raises unless continue_on_error is set, in which case the
        failure is recorded on that id's result and the loop continues.
        """
        results = []
        for budget_item_id in budget_item_ids:
            try:
                results.append(await BudgetItemAggregator.recompute(db, budget_item_id, actor_id))
            except NotFoundError as e:
                if not continue_on_error:
                    raise
                results.append(RecomputeResult(entity_id=budget_item_id, error=str(e)))
        return results

    @staticmethod
    async def recompute_all(db: AsyncSession, actor_id: UUID) -> List[RecomputeResult]:
        """Recompute every budget item (repair for drifted aggregates)."""
        result = await db.execute(select(BudgetItem.id).order_by(BudgetItem.created_at))
        ids = list(result.scalars().all())
        logger.info(f"Recomputing all {len(ids)} budget items")
        return await BudgetItemAggregator.recompute_many(db, ids, actor_id)


class ProjectAggregator:
    """Recomputes project status counts from their active breakdowns."""

    @staticmethod
    async def recompute(
        db: AsyncSession,
        project_id: UUID,
        actor_id: UUID,
        propagate: bool = True
    ) -> RecomputeResult:
        """
        Recompute a project's derived fields and, by default, its parent budget item.

        Args:
            db: Database session
            project_id: Project ID
            actor_id: User recorded as updated_by
            propagate: Recompute the parent budget item afterwards

        Returns:
            RecomputeResult; parent holds the budget item result when propagated

        Raises:
            NotFoundError: If the project (or its parent budget item) does not exist
        """
        result = await db.execute(
            select(Project).where(Project.id == project_id).with_for_update()
        )
        project = result.scalars().first()
        if project is None:
            logger.warning(f"Project not found for recompute, ID: {project_id}")
            raise NotFoundError("Project", project_id)

        result = await db.execute(
            select(ProjectBreakdown.status).where(
                ProjectBreakdown.project_id == project_id,
                ProjectBreakdown.is_deleted.is_not(True),
            )
        )
        statuses = list(result.scalars().all())
        counts = count_breakdown_statuses(statuses)
        status = derive_status(counts)

        project.project_completed = counts.completed
        project.project_delayed = counts.delayed
        project.projects_on_track = counts.on_track
        project.status = status.value
        project.updated_at = utcnow()
        project.updated_by = actor_id
        await db.flush()

        logger.debug(
            f"Recomputed project {project_id}: breakdowns={len(statuses)}, "
            f"completed={counts.completed}, delayed={counts.delayed}, "
            f"on_track={counts.on_track}, status={status.value}"
        )
        outcome = RecomputeResult(
            entity_id=project_id,
            active_children=len(statuses),
            completed=counts.completed,
            delayed=counts.delayed,
            on_track=counts.on_track,
            status=status,
        )
        if propagate and project.budget_item_id is not None:
            outcome.parent = await BudgetItemAggregator.recompute(db, project.budget_item_id, actor_id)
        return outcome

    @staticmethod
    async def recompute_many(
        db: AsyncSession,
        project_ids: Iterable[UUID],
        actor_id: UUID,
        continue_on_error: bool = False
    ) -> List[RecomputeResult]:
        """Recompute several projects independently (each propagates to its parent)."""
        results = []
        for project_id in project_ids:
            try:
                results.append(await ProjectAggregator.recompute(db, project_id, actor_id))
            except NotFoundError as e:
                if not continue_on_error:
                    raise
                results.append(RecomputeResult(entity_id=project_id, error=str(e)))
        return results

    @staticmethod
    async def recompute_for_budget_item(
        db: AsyncSession,
        budget_item_id: UUID,
        actor_id: UUID
    ) -> RecomputeResult:
        """
        Recompute every active project under a budget item, then the item once.

        Returns:
            The budget item's RecomputeResult
        """
        if await db.get(BudgetItem, budget_item_id) is None:
            raise NotFoundError("Budget item", budget_item_id)
        result = await db.execute(
            select(Project.id).where(
                Project.budget_item_id == budget_item_id,
                Project.is_deleted.is_not(True),
            )
        )
        project_ids = list(result.scalars().all())
        for project_id in project_ids:
            await ProjectAggregator.recompute(db, project_id, actor_id, propagate=False)
        logger.info(f"Recomputed {len(project_ids)} projects for budget item {budget_item_id}")
        return await BudgetItemAggregator.recompute(db, budget_item_id, actor_id)

    @staticmethod
    async def recompute_all(db: AsyncSession, actor_id: UUID) -> RepairResult:
        """Recompute every project without propagation, then every budget item."""
        result = await db.execute(select(Project.id).order_by(Project.created_at))
        project_ids = list(result.scalars().all())
        logger.info(f"Recomputing all {len(project_ids)} projects")
        projects = [
            await ProjectAggregator.recompute(db, project_id, actor_id, propagate=False)
            for project_id in project_ids
        ]
        budget_items = await BudgetItemAggregator.recompute_all(db, actor_id)
        return RepairResult(projects=projects, budget_items=budget_items)


RecomputeResult.model_rebuild()
RepairResult.model_rebuild()
