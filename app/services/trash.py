"""
Soft delete, restore and permanent delete of projects.

Trashing a project flags it and its currently active breakdowns as deleted
and stamps them all with one trash event id. Restore brings back either the
breakdowns of that event ("cascade") or every deleted breakdown of the
project ("all"), as configured by settings.aggregation.trash_restore_scope.
Every operation ends with the affected aggregates recomputed.
"""

from typing import List, Optional
from uuid import UUID
import uuid

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.core.config import settings
from app.core.exceptions import NotFoundError, PreconditionFailedError
from app.core.logging import logger
from app.db.audit import ActivityConfig, log_activity
from app.db.session import unit_of_work
from app.models.activity import ActivityAction, TargetType
from app.models.base import utcnow
from app.models.breakdown import ProjectBreakdown
from app.models.project import Project
from app.schemas.project import TrashResult
from app.services.aggregation import BudgetItemAggregator, ProjectAggregator
from app.services.remark import RemarkService


class TrashService:
    """Service class for project trash operations."""

    @staticmethod
    async def _load_project(db: AsyncSession, project_id: UUID) -> Project:
        result = await db.execute(select(Project).where(Project.id == project_id))
        project = result.scalars().first()
        if project is None:
            logger.warning(f"Project not found, ID: {project_id}")
            raise NotFoundError("Project", project_id)
        return project

    @staticmethod
    async def move_to_trash(
        db: AsyncSession,
        project_id: UUID,
        actor_id: UUID,
        reason: Optional[str] = None
    ) -> TrashResult:
        """
        Soft-delete a project and its active breakdowns.

        Args:
            db: Database session
            project_id: Project ID
            actor_id: ID of the user performing the action
            reason: Optional reason recorded on the activity entry

        Returns:
            TrashResult with the breakdowns flagged by this event

        Raises:
            NotFoundError: If the project does not exist
            PreconditionFailedError: If the project is already in the trash
        """
        logger.info(f"Moving project {project_id} to trash")

        async with unit_of_work(db):
            project = await TrashService._load_project(db, project_id)
            if project.is_deleted:
                raise PreconditionFailedError("Project is already in trash")

            previous = project.to_dict()
            now = utcnow()
            event_id = str(uuid.uuid4())

            result = await db.execute(
                select(ProjectBreakdown).where(
                    ProjectBreakdown.project_id == project_id,
                    ProjectBreakdown.is_deleted.is_not(True),
                )
            )
            breakdowns = result.scalars().all()
            for breakdown in breakdowns:
                breakdown.is_deleted = True
                breakdown.deleted_at = now
                breakdown.deleted_by = actor_id
                breakdown.trash_event_id = event_id
                breakdown.updated_at = now
                breakdown.updated_by = actor_id

            project.is_deleted = True
            project.deleted_at = now
            project.deleted_by = actor_id
            project.trash_event_id = event_id
            project.updated_at = now
            project.updated_by = actor_id
            await db.flush()

            if project.budget_item_id is not None:
                await BudgetItemAggregator.recompute(db, project.budget_item_id, actor_id)

            await log_activity(
                db,
                actor_id,
                TargetType.PROJECT,
                ActivityConfig(
                    action=ActivityAction.UPDATED,
                    target_id=project.id,
                    previous_values=previous,
                    new_values=project.to_dict(),
                    reason=reason,
                    affected_aggregation_ids=[project.budget_item_id] if project.budget_item_id else None,
                ),
            )

        logger.info(f"Project {project_id} moved to trash with {len(breakdowns)} breakdown(s)")
        return TrashResult(
            project_id=project.id,
            affected_breakdown_ids=[b.id for b in breakdowns],
            budget_item_id=project.budget_item_id,
        )

    @staticmethod
    async def restore_from_trash(
        db: AsyncSession,
        project_id: UUID,
        actor_id: UUID,
        reason: Optional[str] = None,
        scope: Optional[str] = None
    ) -> TrashResult:
        """
        Restore a trashed project and its breakdowns.

        Args:
            db: Database session
            project_id: Project ID
            actor_id: ID of the user performing the action
            reason: Optional reason recorded on the activity entry
            scope: "cascade" restores the breakdowns trashed together with the
                project, "all" every deleted breakdown of the project. Defaults
                to the configured trash_restore_scope.

        Returns:
            TrashResult with the restored breakdown ids

        Raises:
            NotFoundError: If the project does not exist
            PreconditionFailedError: If the project is not in the trash
        """
        scope = scope or settings.aggregation.trash_restore_scope
        logger.info(f"Restoring project {project_id} from trash (scope={scope})")

        async with unit_of_work(db):
            project = await TrashService._load_project(db, project_id)
            if not project.is_deleted:
                raise PreconditionFailedError("Project is not in trash")

            previous = project.to_dict()
            query = select(ProjectBreakdown).where(
                ProjectBreakdown.project_id == project_id,
                ProjectBreakdown.is_deleted.is_(True),
            )
            if scope == "cascade":
                query = query.where(ProjectBreakdown.trash_event_id == project.trash_event_id)
            breakdowns = (await db.execute(query)).scalars().all()

            now = utcnow()
            for breakdown in breakdowns:
                breakdown.is_deleted = False
                breakdown.deleted_at = None
                breakdown.deleted_by = None
                breakdown.trash_event_id = None
                breakdown.updated_at = now
                breakdown.updated_by = actor_id

            project.is_deleted = False
            project.deleted_at = None
            project.deleted_by = None
            project.trash_event_id = None
            project.updated_at = now
            project.updated_by = actor_id
            await db.flush()

            await ProjectAggregator.recompute(db, project.id, actor_id)

            affected = [project.id]
            if project.budget_item_id is not None:
                affected.append(project.budget_item_id)
            await log_activity(
                db,
                actor_id,
                TargetType.PROJECT,
                ActivityConfig(
                    action=ActivityAction.RESTORED,
                    target_id=project.id,
                    previous_values=previous,
                    new_values=project.to_dict(),
                    reason=reason,
                    affected_aggregation_ids=affected,
                ),
            )

        logger.info(f"Project {project_id} restored with {len(breakdowns)} breakdown(s)")
        return TrashResult(
            project_id=project.id,
            affected_breakdown_ids=[b.id for b in breakdowns],
            budget_item_id=project.budget_item_id,
        )

    @staticmethod
    async def delete_permanently(
        db: AsyncSession,
        project_id: UUID,
        actor_id: UUID,
        reason: Optional[str] = None
    ) -> TrashResult:
        """
        Hard-delete a project together with all of its breakdowns and remarks.

        The activity entry is written before removal and keeps the full
        project snapshot.

        Raises:
            NotFoundError: If the project does not exist
        """
        logger.info(f"Permanently deleting project {project_id}")

        async with unit_of_work(db):
            project = await TrashService._load_project(db, project_id)
            breakdowns = (
                await db.execute(select(ProjectBreakdown).where(ProjectBreakdown.project_id == project_id))
            ).scalars().all()
            breakdown_ids = [b.id for b in breakdowns]
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

            for breakdown in breakdowns:
                await db.delete(breakdown)
            await db.flush()
            remarks = await RemarkService.delete_for_project(db, project_id)
            await db.delete(project)
            await db.flush()

            if budget_item_id is not None:
                await BudgetItemAggregator.recompute(db, budget_item_id, actor_id)

        logger.info(
            f"Project {project_id} permanently deleted with "
            f"{len(breakdown_ids)} breakdown(s) and {remarks} remark(s)"
        )
        return TrashResult(
            project_id=project_id,
            affected_breakdown_ids=breakdown_ids,
            budget_item_id=budget_item_id,
        )

    @staticmethod
    async def list_trash(db: AsyncSession, skip: int = 0, limit: int = 100) -> List[Project]:
        """List trashed projects, most recently trashed first."""
        result = await db.execute(
            select(Project)
            .where(Project.is_deleted.is_(True))
            .order_by(Project.deleted_at.desc())
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all())
