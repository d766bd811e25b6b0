"""
Service layer for project remarks.

Remarks are notes on a project. They are logged like every other write but
never trigger a rollup.
"""

from collections import Counter
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, case, or_

from app.core.exceptions import NotFoundError
from app.core.logging import logger
from app.db.audit import ActivityConfig, log_activity
from app.db.session import unit_of_work
from app.models.activity import ActivityAction, TargetType
from app.models.base import utcnow
from app.models.budget_item import BudgetItem
from app.models.project import Project
from app.models.remark import Remark, RemarkPriority
from app.schemas.remark import RemarkCreate, RemarkStatistics, RemarkUpdate

PINNED_THEN_NEWEST = (Remark.is_pinned.desc(), Remark.created_at.desc())


def _column_values(data: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value.value if isinstance(value, Enum) else value for key, value in data.items()}


def _remark_identity(project: Project, remark: Remark) -> Dict[str, Any]:
    return {
        "target_name": project.particulars,
        "implementing_office": project.implementing_office,
        "budget_item_id": remark.budget_item_id or project.budget_item_id,
        "project_id": project.id,
    }


class RemarkService:
    """Service class for remark operations."""

    @staticmethod
    async def get_by_id(db: AsyncSession, remark_id: UUID) -> Optional[Remark]:
        logger.debug(f"Getting remark by ID: {remark_id}")
        return await db.get(Remark, remark_id)

    @staticmethod
    async def _load(db: AsyncSession, remark_id: UUID) -> Remark:
        remark = await db.get(Remark, remark_id)
        if remark is None:
            logger.warning(f"Remark not found, ID: {remark_id}")
            raise NotFoundError("Remark", remark_id)
        return remark

    @staticmethod
    async def _load_project(db: AsyncSession, project_id: UUID) -> Project:
        project = await db.get(Project, project_id)
        if project is None:
            logger.warning(f"Project not found, ID: {project_id}")
            raise NotFoundError("Project", project_id)
        return project

    @staticmethod
    async def create(
        db: AsyncSession,
        remark_in: RemarkCreate,
        actor_id: UUID
    ) -> Remark:
        """
        Create a remark on a project.

        Without an explicit budget item the remark is tagged with the
        project's own budget item.

        Args:
            db: Database session
            remark_in: Remark creation data
            actor_id: ID of the user performing the action

        Returns:
            Created remark

        Raises:
            NotFoundError: If the project or the given budget item does not exist
        """
        logger.info(f"Creating remark for project: {remark_in.project_id}")

        async with unit_of_work(db):
            project = await RemarkService._load_project(db, remark_in.project_id)
            budget_item_id = remark_in.budget_item_id
            if budget_item_id is not None:
                if await db.get(BudgetItem, budget_item_id) is None:
                    logger.warning(f"Budget item not found, ID: {budget_item_id}")
                    raise NotFoundError("Budget item", budget_item_id)
            else:
                budget_item_id = project.budget_item_id

            now = utcnow()
            remark = Remark(
                **_column_values(remark_in.model_dump(exclude={"reason", "budget_item_id"})),
                budget_item_id=budget_item_id,
                created_by=actor_id,
                created_at=now,
                updated_by=actor_id,
                updated_at=now,
            )
            db.add(remark)
            await db.flush()

            await log_activity(
                db,
                actor_id,
                TargetType.REMARK,
                ActivityConfig(
                    action=ActivityAction.CREATED,
                    target_id=remark.id,
                    snapshot=remark.to_dict(),
                    identity=_remark_identity(project, remark),
                    reason=remark_in.reason,
                ),
            )

        logger.info(f"Created remark with ID: {remark.id}")
        return remark

    @staticmethod
    async def update(
        db: AsyncSession,
        remark_id: UUID,
        remark_in: RemarkUpdate,
        actor_id: UUID
    ) -> Remark:
        """
        Update the fields set on remark_in.

        Raises:
            NotFoundError: If the remark does not exist
        """
        logger.info(f"Updating remark with ID: {remark_id}")

        async with unit_of_work(db):
            remark = await RemarkService._load(db, remark_id)
            project = await RemarkService._load_project(db, remark.project_id)
            previous = remark.to_dict()

            for field, value in _column_values(remark_in.model_dump(exclude_unset=True, exclude={"reason"})).items():
                setattr(remark, field, value)
            remark.updated_by = actor_id
            remark.updated_at = utcnow()
            await db.flush()

            await log_activity(
                db,
                actor_id,
                TargetType.REMARK,
                ActivityConfig(
                    action=ActivityAction.UPDATED,
                    target_id=remark.id,
                    previous_values=previous,
                    new_values=remark.to_dict(),
                    identity=_remark_identity(project, remark),
                    reason=remark_in.reason,
                ),
            )

        logger.info(f"Updated remark with ID: {remark.id}")
        return remark

    @staticmethod
    async def delete(
        db: AsyncSession,
        remark_id: UUID,
        actor_id: UUID,
        reason: Optional[str] = None
    ) -> None:
        """
        Hard-delete a remark. The activity entry keeps the removed row.

        Raises:
            NotFoundError: If the remark does not exist
        """
        logger.info(f"Deleting remark with ID: {remark_id}")

        async with unit_of_work(db):
            remark = await RemarkService._load(db, remark_id)
            project = await RemarkService._load_project(db, remark.project_id)

            await log_activity(
                db,
                actor_id,
                TargetType.REMARK,
                ActivityConfig(
                    action=ActivityAction.DELETED,
                    target_id=remark.id,
                    snapshot=remark.to_dict(),
                    identity=_remark_identity(project, remark),
                    reason=reason,
                ),
            )
            await db.delete(remark)
            await db.flush()

        logger.info(f"Deleted remark with ID: {remark_id}")

    @staticmethod
    async def toggle_pin(db: AsyncSession, remark_id: UUID, actor_id: UUID) -> Remark:
        async with unit_of_work(db):
            remark = await RemarkService._load(db, remark_id)
            project = await RemarkService._load_project(db, remark.project_id)
            previous = remark.to_dict()
            remark.is_pinned = not remark.is_pinned
            remark.updated_by = actor_id
            remark.updated_at = utcnow()
            await db.flush()
            await log_activity(
                db,
                actor_id,
                TargetType.REMARK,
                ActivityConfig(
                    action=ActivityAction.UPDATED,
                    target_id=remark.id,
                    previous_values=previous,
                    new_values=remark.to_dict(),
                    identity=_remark_identity(project, remark),
                ),
            )
        logger.info(f"Remark {remark_id} pinned={remark.is_pinned}")
        return remark

    @staticmethod
    async def delete_for_project(db: AsyncSession, project_id: UUID) -> int:
        """Remove every remark of a project being hard-deleted; runs in the caller's unit of work."""
        result = await db.execute(select(Remark).where(Remark.project_id == project_id))
        remarks = result.scalars().all()
        for remark in remarks:
            await db.delete(remark)
        await db.flush()
        return len(remarks)

    @staticmethod
    async def list_by_project(
        db: AsyncSession,
        project_id: UUID,
        category: Optional[str] = None,
        priority: Optional[RemarkPriority] = None,
        is_pinned: Optional[bool] = None
    ) -> List[Remark]:
        """
        Get a project's remarks, pinned first, newest first.

        Args:
            db: Database session
            project_id: Project ID
            category: Only remarks in this category
            priority: Only remarks with this priority
            is_pinned: Only pinned (True) or unpinned (False) remarks

        Returns:
            List of remarks
        """
        logger.debug(f"Getting remarks for project {project_id}")
        query = select(Remark).where(Remark.project_id == project_id)
        if category is not None:
            query = query.where(Remark.category == category)
        if priority is not None:
            query = query.where(Remark.priority == RemarkPriority(priority).value)
        if is_pinned is not None:
            query = query.where(Remark.is_pinned.is_(is_pinned))
        result = await db.execute(query.order_by(*PINNED_THEN_NEWEST))
        return list(result.scalars().all())

    @staticmethod
    async def list_by_category(db: AsyncSession, project_id: UUID, category: str) -> List[Remark]:
        return await RemarkService.list_by_project(db, project_id, category=category)

    @staticmethod
    async def get_pinned(db: AsyncSession, project_id: UUID) -> List[Remark]:
        return await RemarkService.list_by_project(db, project_id, is_pinned=True)

    @staticmethod
    async def list_by_budget_item(db: AsyncSession, budget_item_id: UUID) -> List[Remark]:
        logger.debug(f"Getting remarks for budget item {budget_item_id}")
        result = await db.execute(
            select(Remark).where(Remark.budget_item_id == budget_item_id).order_by(*PINNED_THEN_NEWEST)
        )
        return list(result.scalars().all())

    @staticmethod
    async def list_by_priority(
        db: AsyncSession,
        priority: RemarkPriority,
        project_id: Optional[UUID] = None
    ) -> List[Remark]:
        query = select(Remark).where(Remark.priority == RemarkPriority(priority).value)
        if project_id is not None:
            query = query.where(Remark.project_id == project_id)
        result = await db.execute(query.order_by(*PINNED_THEN_NEWEST))
        return list(result.scalars().all())

    @staticmethod
    async def get_project_stats(db: AsyncSession, project_id: UUID) -> RemarkStatistics:
        """
        Count a project's remarks.

        Returns:
            Totals by pin state and priority plus a per-category count
        """
        result = await db.execute(select(Remark).where(Remark.project_id == project_id))
        remarks = result.scalars().all()
        priorities = Counter(r.priority for r in remarks)
        return RemarkStatistics(
            total=len(remarks),
            pinned=sum(1 for r in remarks if r.is_pinned),
            high_priority=priorities[RemarkPriority.HIGH.value],
            medium_priority=priorities[RemarkPriority.MEDIUM.value],
            low_priority=priorities[RemarkPriority.LOW.value],
            categories=dict(Counter(r.category for r in remarks if r.category)),
        )

    @staticmethod
    async def search(
        db: AsyncSession,
        term: str,
        project_id: Optional[UUID] = None,
        limit: int = 50
    ) -> List[Remark]:
        """Search content and category; content matches come first, then newest first."""
        pattern = f"%{term}%"
        query = select(Remark).where(or_(Remark.content.ilike(pattern), Remark.category.ilike(pattern)))
        if project_id is not None:
            query = query.where(Remark.project_id == project_id)
        query = query.order_by(
            case((Remark.content.ilike(pattern), 0), else_=1),
            Remark.created_at.desc(),
        )
        result = await db.execute(query.limit(limit))
        return list(result.scalars().all())

    @staticmethod
    async def get_recent(db: AsyncSession, project_id: Optional[UUID] = None, limit: int = 10) -> List[Remark]:
        query = select(Remark)
        if project_id is not None:
            query = query.where(Remark.project_id == project_id)
        result = await db.execute(query.order_by(Remark.created_at.desc()).limit(limit))
        return list(result.scalars().all())

    @staticmethod
    async def get_by_user(
        db: AsyncSession,
        user_id: UUID,
        project_id: Optional[UUID] = None,
        limit: int = 100
    ) -> List[Remark]:
        logger.debug(f"Getting remarks written by user {user_id}")
        query = select(Remark).where(Remark.created_by == user_id)
        if project_id is not None:
            query = query.where(Remark.project_id == project_id)
        result = await db.execute(query.order_by(Remark.created_at.desc()).limit(limit))
        return list(result.scalars().all())
