"""
Service layer for project operations.

This module contains the business logic for projects: creation, editing
(including moving a project between budget items), pinning and hard
deletion. Soft deletion lives in TrashService.
"""

from typing import List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from app.core.exceptions import NotFoundError, PreconditionFailedError
from app.core.logging import logger
from app.db.audit import ActivityConfig, log_activity
from app.db.session import unit_of_work
from app.models.activity import ActivityAction, TargetType
from app.models.base import utcnow
from app.models.breakdown import ProjectBreakdown
from app.models.budget_item import BudgetItem
from app.models.project import AggregateStatus, Project
from app.schemas.project import ProjectCreate, ProjectUpdate
from app.services.aggregation import BudgetItemAggregator, calculate_utilization_rate
from app.services.remark import RemarkService


class ProjectService:
    """Service class for project operations."""

    @staticmethod
    async def _ensure_budget_item(db: AsyncSession, budget_item_id: Optional[UUID]) -> None:
        if budget_item_id is not None and await db.get(BudgetItem, budget_item_id) is None:
            logger.warning(f"Budget item not found, ID: {budget_item_id}")
            raise NotFoundError("Budget item", budget_item_id)

    @staticmethod
    async def create(
        db: AsyncSession,
        project_in: ProjectCreate,
        actor_id: UUID
    ) -> Project:
        """
        Create a new project and recompute its budget item.

        Args:
            db: Database session
            project_in: Project creation data
            actor_id: ID of the user performing the action

        Returns:
            Created project

        Raises:
            NotFoundError: If the referenced budget item does not exist
        """
        logger.info(f"Creating new project: {project_in.particulars}")

        async with unit_of_work(db):
            await ProjectService._ensure_budget_item(db, project_in.budget_item_id)

            now = utcnow()
            project = Project(
                **project_in.model_dump(exclude={"reason"}),
                utilization_rate=calculate_utilization_rate(
                    project_in.total_budget_allocated, project_in.total_budget_utilized
                ),
                status=AggregateStatus.ONGOING.value,
                project_completed=0,
                project_delayed=0,
                projects_on_track=0,
                is_pinned=False,
                is_deleted=False,
                created_by=actor_id,
                created_at=now,
                updated_by=actor_id,
                updated_at=now,
            )
            db.add(project)
            await db.flush()

            affected = []
            if project.budget_item_id is not None:
                await BudgetItemAggregator.recompute(db, project.budget_item_id, actor_id)
                affected.append(project.budget_item_id)

            await log_activity(
                db,
                actor_id,
                TargetType.PROJECT,
                ActivityConfig(
                    action=ActivityAction.CREATED,
                    target_id=project.id,
                    snapshot=project.to_dict(),
                    reason=project_in.reason,
                    affected_aggregation_ids=affected,
                ),
            )

        logger.info(f"Created project with ID: {project.id}")
        return project

    @staticmethod
    async def get_by_id(db: AsyncSession, project_id: UUID) -> Optional[Project]:
        """
        Get a project by ID.

        Args:
            db: Database session
            project_id: Project ID

        Returns:
            Project if found, None otherwise
        """
        logger.debug(f"Getting project by ID: {project_id}")
        result = await db.execute(select(Project).where(Project.id == project_id))
        return result.scalars().first()

    @staticmethod
    async def get_all(
        db: AsyncSession,
        budget_item_id: Optional[UUID] = None,
        include_deleted: bool = False,
        skip: int = 0,
        limit: int = 100
    ) -> List[Project]:
        """
        Get projects, pinned first, newest first.

        Args:
            db: Database session
            budget_item_id: Only projects under this budget item
            include_deleted: Include trashed projects
            skip: Number of records to skip
            limit: Maximum number of records to return

        Returns:
            List of projects
        """
        logger.debug(
            f"Getting projects with budget_item_id={budget_item_id}, "
            f"include_deleted={include_deleted}, skip={skip}, limit={limit}"
        )
        query = select(Project)
        if budget_item_id is not None:
            query = query.where(Project.budget_item_id == budget_item_id)
        if not include_deleted:
            query = query.where(Project.is_deleted.is_not(True))
        query = query.order_by(Project.is_pinned.desc(), Project.created_at.desc())
        result = await db.execute(query.offset(skip).limit(limit))
        return list(result.scalars().all())

    @staticmethod
    async def update(
        db: AsyncSession,
        project_id: UUID,
        project_in: ProjectUpdate,
        actor_id: UUID
    ) -> Project:
        """
        Update a project.

        When the project moves to another budget item both the old and the
        new item are recomputed, so the project's contribution moves with it.

        Args:
            db: Database session
            project_id: Project ID
            project_in: New field values plus an optional reason
            actor_id: ID of the user performing the action

        Returns:
            Updated project

        Raises:
            NotFoundError: If the project or the new budget item does not exist
        """
        logger.info(f"Updating project with ID: {project_id}")

        async with unit_of_work(db):
            project = await ProjectService.get_by_id(db, project_id)
            if project is None:
                logger.warning(f"Project not found, ID: {project_id}")
                raise NotFoundError("Project", project_id)
            await ProjectService._ensure_budget_item(db, project_in.budget_item_id)

            previous = project.to_dict()
            old_budget_item_id = project.budget_item_id

            for field, value in project_in.model_dump(exclude={"reason"}).items():
                setattr(project, field, value)
            project.utilization_rate = calculate_utilization_rate(
                project.total_budget_allocated, project.total_budget_utilized
            )
            project.updated_by = actor_id
            project.updated_at = utcnow()
            await db.flush()

            affected = []
            for budget_item_id in (old_budget_item_id, project.budget_item_id):
                if budget_item_id is not None and budget_item_id not in affected:
                    affected.append(budget_item_id)
            # Budget items are locked in id order
            for budget_item_id in sorted(affected, key=str):
                await BudgetItemAggregator.recompute(db, budget_item_id, actor_id)
            if old_budget_item_id != project.budget_item_id:
                logger.info(
                    f"Project {project_id} moved from budget item "
                    f"{old_budget_item_id} to {project.budget_item_id}"
                )

            await log_activity(
                db,
                actor_id,
                TargetType.PROJECT,
                ActivityConfig(
                    action=ActivityAction.UPDATED,
                    target_id=project.id,
                    previous_values=previous,
                    new_values=project.to_dict(),
                    reason=project_in.reason,
                    affected_aggregation_ids=affected,
                ),
            )

        logger.info(f"Updated project with ID: {project.id}")
        return project

    @staticmethod
    async def delete(
        db: AsyncSession,
        project_id: UUID,
        actor_id: UUID,
        reason: Optional[str] = None
    ) -> None:
        """
        Hard-delete a project that has no active breakdowns.

        Breakdowns already in the trash and the project's remarks are deleted
        along with the project.

        Raises:
            NotFoundError: If the project does not exist
            PreconditionFailedError: If the project still has active breakdowns
        """
        logger.info(f"Deleting project with ID: {project_id}")

        async with unit_of_work(db):
            project = await ProjectService.get_by_id(db, project_id)
            if project is None:
                raise NotFoundError("Project", project_id)

            active = (
                await db.execute(
                    select(func.count()).select_from(ProjectBreakdown).where(
                        ProjectBreakdown.project_id == project_id,
                        ProjectBreakdown.is_deleted.is_not(True),
                    )
                )
            ).scalar() or 0
            if active:
                logger.warning(f"Refusing to delete project {project_id}: {active} active breakdown(s)")
                raise PreconditionFailedError(
                    f"Cannot delete project with {active} breakdown(s).",
                    blocking_count=active,
                )

            trashed = (
                await db.execute(select(ProjectBreakdown).where(ProjectBreakdown.project_id == project_id))
            ).scalars().all()
            for breakdown in trashed:
                await db.delete(breakdown)
            await db.flush()
            remarks = await RemarkService.delete_for_project(db, project_id)

            budget_item_id = project.budget_item_id
            await log_activity(
                db,
                actor_id,
                TargetType.PROJECT,
                ActivityConfig(
                    action=ActivityAction.DELETED,
                    target_id=project.id,
                    snapshot=project.to_dict(),
                    reason=reason,
                    affected_aggregation_ids=[budget_item_id] if budget_item_id else None,
                ),
            )
            await db.delete(project)
            await db.flush()

            if budget_item_id is not None:
                await BudgetItemAggregator.recompute(db, budget_item_id, actor_id)

        logger.info(
            f"Deleted project with ID: {project_id} "
            f"({len(trashed)} trashed breakdown(s), {remarks} remark(s) removed)"
        )

    @staticmethod
    async def toggle_pin(db: AsyncSession, project_id: UUID, actor_id: UUID) -> Project:
        async with unit_of_work(db):
            project = await ProjectService.get_by_id(db, project_id)
            if project is None:
                raise NotFoundError("Project", project_id)
            previous = project.to_dict()
            project.is_pinned = not project.is_pinned
            project.updated_by = actor_id
            project.updated_at = utcnow()
            await db.flush()
            await log_activity(
                db,
                actor_id,
                TargetType.PROJECT,
                ActivityConfig(
                    action=ActivityAction.UPDATED,
                    target_id=project.id,
                    previous_values=previous,
                    new_values=project.to_dict(),
                ),
            )
        logger.info(f"Project {project_id} pinned={project.is_pinned}")
        return project
