"""
Service layer for project breakdown operations.

This module contains the business logic for breakdown reports: single and
bulk writes, single-row trash/restore, report ingestion and the read-side
history and municipality statistics. Every write recomputes the owning
project (which propagates to its budget item) inside the same unit of work.
"""

from typing import Any, Dict, List, Optional, Sequence
from decimal import Decimal
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from app.core.exceptions import NotFoundError, PreconditionFailedError, ValidationSkipped
from app.core.logging import logger
from app.db.audit import ActivityConfig, BulkRecord, log_activity, log_bulk
from app.db.session import unit_of_work
from app.models.activity import ActivityAction, ActivitySource, TargetType
from app.models.base import utcnow
from app.models.breakdown import ProjectBreakdown
from app.models.project import Project
from app.schemas.breakdown import (
    BreakdownBulkUpdateItem,
    BreakdownCreate,
    BreakdownUpdate,
    BulkResult,
    MunicipalityStats,
    ProjectReport,
    SkippedRecord,
)
from app.schemas.project import ProjectCreate
from app.services.aggregation import ProjectAggregator, calculate_utilization_rate
from app.services.project import ProjectService


def _project_identity(project: Project) -> Dict[str, Any]:
    return {
        "target_name": project.particulars,
        "implementing_office": project.implementing_office,
        "budget_item_id": project.budget_item_id,
        "project_id": project.id,
    }


def _affected(project: Project) -> List[UUID]:
    ids = [project.id]
    if project.budget_item_id is not None:
        ids.append(project.budget_item_id)
    return ids


def _to_result(ids: Sequence[UUID], skipped: Sequence[ValidationSkipped], batch_id: Optional[str]) -> BulkResult:
    return BulkResult(
        count=len(ids),
        ids=list(ids),
        skipped=[SkippedRecord(id=s.record_id, reason=s.reason) for s in skipped],
        batch_id=batch_id,
    )


class BreakdownService:
    """Service class for project breakdown operations."""

    @staticmethod
    async def get_by_id(db: AsyncSession, breakdown_id: UUID) -> Optional[ProjectBreakdown]:
        logger.debug(f"Getting breakdown by ID: {breakdown_id}")
        result = await db.execute(select(ProjectBreakdown).where(ProjectBreakdown.id == breakdown_id))
        return result.scalars().first()

    @staticmethod
    async def _load(db: AsyncSession, breakdown_id: UUID) -> ProjectBreakdown:
        breakdown = await BreakdownService.get_by_id(db, breakdown_id)
        if breakdown is None:
            logger.warning(f"Breakdown not found, ID: {breakdown_id}")
            raise NotFoundError("Breakdown", breakdown_id)
        return breakdown

    @staticmethod
    async def _load_project(db: AsyncSession, project_id: UUID) -> Project:
        project = await db.get(Project, project_id)
        if project is None:
            logger.warning(f"Project not found, ID: {project_id}")
            raise NotFoundError("Project", project_id)
        return project

    @staticmethod
    async def _load_active_project(db: AsyncSession, project_id: UUID, message: str) -> Project:
        project = await BreakdownService._load_project(db, project_id)
        if project.is_deleted:
            logger.warning(f"Project {project_id} is in trash: {message}")
            raise PreconditionFailedError(message)
        return project

    @staticmethod
    async def _warn_duplicate_report(db: AsyncSession, breakdown: ProjectBreakdown) -> None:
        count = (
            await db.execute(
                select(func.count()).select_from(ProjectBreakdown).where(
                    ProjectBreakdown.project_id == breakdown.project_id,
                    ProjectBreakdown.report_date == breakdown.report_date,
                    ProjectBreakdown.id != breakdown.id,
                    ProjectBreakdown.is_deleted.is_not(True),
                )
            )
        ).scalar() or 0
        if count:
            logger.warning(
                f"Project {breakdown.project_id} already has {count} report(s) "
                f"dated {breakdown.report_date}"
            )

    @staticmethod
    def _new_breakdown(data: Dict[str, Any], actor_id: UUID) -> ProjectBreakdown:
        now = utcnow()
        if data.get("report_date") is None:
            data["report_date"] = now
        return ProjectBreakdown(
            **data,
            is_deleted=False,
            created_by=actor_id,
            created_at=now,
            updated_by=actor_id,
            updated_at=now,
        )

    @staticmethod
    async def create(
        db: AsyncSession,
        breakdown_in: BreakdownCreate,
        actor_id: UUID,
        reason: Optional[str] = None,
        source: ActivitySource = ActivitySource.WEB_UI
    ) -> ProjectBreakdown:
        """
        Create a breakdown report and recompute its project.

        Args:
            db: Database session
            breakdown_in: Breakdown creation data
            actor_id: ID of the user performing the action
            reason: Optional reason recorded on the activity entry
            source: Origin of the write

        Returns:
            Created breakdown

        Raises:
            NotFoundError: If the project does not exist
            PreconditionFailedError: If the project is in the trash
        """
        logger.info(f"Creating breakdown for project: {breakdown_in.project_id}")

        async with unit_of_work(db):
            project = await BreakdownService._load_active_project(
                db, breakdown_in.project_id, "Restore the project before adding breakdowns"
            )
            breakdown = BreakdownService._new_breakdown(breakdown_in.model_dump(), actor_id)
            db.add(breakdown)
            await db.flush()
            await BreakdownService._warn_duplicate_report(db, breakdown)

            await ProjectAggregator.recompute(db, project.id, actor_id)

            await log_activity(
                db,
                actor_id,
                TargetType.BREAKDOWN,
                ActivityConfig(
                    action=ActivityAction.CREATED,
                    target_id=breakdown.id,
                    snapshot=breakdown.to_dict(),
                    identity=_project_identity(project),
                    reason=reason,
                    source=source,
                    affected_aggregation_ids=_affected(project),
                ),
            )

        logger.info(f"Created breakdown with ID: {breakdown.id}")
        return breakdown

    @staticmethod
    async def update(
        db: AsyncSession,
        breakdown_id: UUID,
        breakdown_in: BreakdownUpdate,
        actor_id: UUID,
        reason: Optional[str] = None
    ) -> ProjectBreakdown:
        """
        Update the fields set on breakdown_in and recompute the project.

        Raises:
            NotFoundError: If the breakdown does not exist
            PreconditionFailedError: If the project is in the trash
        """
        logger.info(f"Updating breakdown with ID: {breakdown_id}")

        async with unit_of_work(db):
            breakdown = await BreakdownService._load(db, breakdown_id)
            project = await BreakdownService._load_active_project(
                db, breakdown.project_id, "Restore the project before editing its breakdowns"
            )
            previous = breakdown.to_dict()

            for field, value in breakdown_in.model_dump(exclude_unset=True).items():
                setattr(breakdown, field, value)
            breakdown.updated_by = actor_id
            breakdown.updated_at = utcnow()
            await db.flush()

            await ProjectAggregator.recompute(db, project.id, actor_id)

            await log_activity(
                db,
                actor_id,
                TargetType.BREAKDOWN,
                ActivityConfig(
                    action=ActivityAction.UPDATED,
                    target_id=breakdown.id,
                    previous_values=previous,
                    new_values=breakdown.to_dict(),
                    identity=_project_identity(project),
                    reason=reason,
                    affected_aggregation_ids=_affected(project),
                ),
            )

        logger.info(f"Updated breakdown with ID: {breakdown.id}")
        return breakdown

    @staticmethod
    async def delete(
        db: AsyncSession,
        breakdown_id: UUID,
        actor_id: UUID,
        reason: Optional[str] = None
    ) -> None:
        """
        Hard-delete a breakdown. The activity entry keeps the removed row.

        Raises:
            NotFoundError: If the breakdown does not exist
        """
        logger.info(f"Deleting breakdown with ID: {breakdown_id}")

        async with unit_of_work(db):
            breakdown = await BreakdownService._load(db, breakdown_id)
            project = await BreakdownService._load_project(db, breakdown.project_id)

            await log_activity(
                db,
                actor_id,
                TargetType.BREAKDOWN,
                ActivityConfig(
                    action=ActivityAction.DELETED,
                    target_id=breakdown.id,
                    snapshot=breakdown.to_dict(),
                    identity=_project_identity(project),
                    reason=reason,
                    affected_aggregation_ids=_affected(project),
                ),
            )
            await db.delete(breakdown)
            await db.flush()

            await ProjectAggregator.recompute(db, project.id, actor_id)

        logger.info(f"Deleted breakdown with ID: {breakdown_id}")

    @staticmethod
    async def move_to_trash(
        db: AsyncSession,
        breakdown_id: UUID,
        actor_id: UUID,
        reason: Optional[str] = None
    ) -> ProjectBreakdown:
        """
        Soft-delete a single breakdown.

        Raises:
            NotFoundError: If the breakdown does not exist
            PreconditionFailedError: If it is already in the trash
        """
        logger.info(f"Moving breakdown {breakdown_id} to trash")

        async with unit_of_work(db):
            breakdown = await BreakdownService._load(db, breakdown_id)
            if breakdown.is_deleted:
                raise PreconditionFailedError("Breakdown is already in trash")
            project = await BreakdownService._load_project(db, breakdown.project_id)
            previous = breakdown.to_dict()

            now = utcnow()
            breakdown.is_deleted = True
            breakdown.deleted_at = now
            breakdown.deleted_by = actor_id
            breakdown.updated_at = now
            breakdown.updated_by = actor_id
            await db.flush()

            await ProjectAggregator.recompute(db, project.id, actor_id)

            await log_activity(
                db,
                actor_id,
                TargetType.BREAKDOWN,
                ActivityConfig(
                    action=ActivityAction.UPDATED,
                    target_id=breakdown.id,
                    previous_values=previous,
                    new_values=breakdown.to_dict(),
                    identity=_project_identity(project),
                    reason=reason,
                    affected_aggregation_ids=_affected(project),
                ),
            )
        return breakdown

    @staticmethod
    async def restore_from_trash(
        db: AsyncSession,
        breakdown_id: UUID,
        actor_id: UUID,
        reason: Optional[str] = None
    ) -> ProjectBreakdown:
        """
        Restore a single soft-deleted breakdown.

        Raises:
            NotFoundError: If the breakdown does not exist
            PreconditionFailedError: If it is not in the trash, or its project is
        """
        logger.info(f"Restoring breakdown {breakdown_id} from trash")

        async with unit_of_work(db):
            breakdown = await BreakdownService._load(db, breakdown_id)
            if not breakdown.is_deleted:
                raise PreconditionFailedError("Breakdown is not in trash")
            project = await BreakdownService._load_project(db, breakdown.project_id)
            if project.is_deleted:
                raise PreconditionFailedError("Restore the project before restoring its breakdowns")
            previous = breakdown.to_dict()

            breakdown.is_deleted = False
            breakdown.deleted_at = None
            breakdown.deleted_by = None
            breakdown.trash_event_id = None
            breakdown.updated_at = utcnow()
            breakdown.updated_by = actor_id
            await db.flush()

            await ProjectAggregator.recompute(db, project.id, actor_id)

            await log_activity(
                db,
                actor_id,
                TargetType.BREAKDOWN,
                ActivityConfig(
                    action=ActivityAction.RESTORED,
                    target_id=breakdown.id,
                    previous_values=previous,
                    new_values=breakdown.to_dict(),
                    identity=_project_identity(project),
                    reason=reason,
                    affected_aggregation_ids=_affected(project),
                ),
            )
        return breakdown

    @staticmethod
    async def bulk_create(
        db: AsyncSession,
        records: Sequence[BreakdownCreate],
        actor_id: UUID,
        source: ActivitySource = ActivitySource.BULK_IMPORT,
        reason: Optional[str] = None
    ) -> BulkResult:
        """
        Create several breakdowns in one batch.

        Records whose project does not exist or is in the trash are skipped.
        Each affected project is recomputed once after all inserts.

        Args:
            db: Database session
            records: Breakdowns to create, in order
            actor_id: ID of the user performing the action
            source: Origin of the batch
            reason: Reason applied to every activity entry

        Returns:
            BulkResult with the created ids, the skipped records and the batch id
        """
        logger.info(f"Bulk creating {len(records)} breakdown(s)")

        created: List[ProjectBreakdown] = []
        skipped: List[ValidationSkipped] = []
        projects: Dict[UUID, Project] = {}
        batch_id = None

        async with unit_of_work(db):
            for record in records:
                project = projects.get(record.project_id) or await db.get(Project, record.project_id)
                if project is None:
                    skip = ValidationSkipped(None, f"Project {record.project_id} not found")
                    logger.warning(str(skip))
                    skipped.append(skip)
                    continue
                if project.is_deleted:
                    skip = ValidationSkipped(None, f"Project {record.project_id} is in trash")
                    logger.warning(str(skip))
                    skipped.append(skip)
                    continue
                projects[project.id] = project
                breakdown = BreakdownService._new_breakdown(record.model_dump(), actor_id)
                db.add(breakdown)
                created.append(breakdown)
            await db.flush()

            for project_id in dict.fromkeys(b.project_id for b in created):
                await ProjectAggregator.recompute(db, project_id, actor_id)

            if created:
                batch_id, _ = await log_bulk(
                    db,
                    actor_id,
                    TargetType.BREAKDOWN,
                    ActivityAction.BULK_CREATED,
                    [
                        BulkRecord(
                            target_id=b.id,
                            snapshot=b.to_dict(),
                            identity=_project_identity(projects[b.project_id]),
                            affected_aggregation_ids=_affected(projects[b.project_id]),
                        )
                        for b in created
                    ],
                    source=source,
                    reason=reason,
                )

        logger.info(f"Bulk created {len(created)} breakdown(s), skipped {len(skipped)}")
        return _to_result([b.id for b in created], skipped, batch_id)

    @staticmethod
    async def bulk_update(
        db: AsyncSession,
        records: Sequence[BreakdownBulkUpdateItem],
        actor_id: UUID,
        source: ActivitySource = ActivitySource.BULK_IMPORT,
        reason: Optional[str] = None
    ) -> BulkResult:
        """
        Update several breakdowns in one batch.

        Missing ids and breakdowns of trashed projects are skipped with a
        warning. Each affected project is recomputed once after all updates.

        Returns:
            BulkResult with the updated ids, the skipped records and the batch id
        """
        logger.info(f"Bulk updating {len(records)} breakdown(s)")

        updated: List[ProjectBreakdown] = []
        previous: Dict[UUID, Dict[str, Any]] = {}
        skipped: List[ValidationSkipped] = []
        projects: Dict[UUID, Project] = {}
        batch_id = None

        async with unit_of_work(db):
            for record in records:
                breakdown = await BreakdownService.get_by_id(db, record.id)
                if breakdown is None:
                    skip = ValidationSkipped(record.id, "Breakdown not found")
                    logger.warning(str(skip))
                    skipped.append(skip)
                    continue
                if breakdown.project_id not in projects:
                    projects[breakdown.project_id] = await BreakdownService._load_project(db, breakdown.project_id)
                if projects[breakdown.project_id].is_deleted:
                    skip = ValidationSkipped(record.id, "Project is in trash")
                    logger.warning(str(skip))
                    skipped.append(skip)
                    continue
                previous[breakdown.id] = breakdown.to_dict()
                for field, value in record.model_dump(exclude_unset=True, exclude={"id"}).items():
                    setattr(breakdown, field, value)
                breakdown.updated_by = actor_id
                breakdown.updated_at = utcnow()
                updated.append(breakdown)
            await db.flush()

            for project_id in dict.fromkeys(b.project_id for b in updated):
                await ProjectAggregator.recompute(db, project_id, actor_id)

            if updated:
                batch_id, _ = await log_bulk(
                    db,
                    actor_id,
                    TargetType.BREAKDOWN,
                    ActivityAction.BULK_UPDATED,
                    [
                        BulkRecord(
                            target_id=b.id,
                            previous_values=previous[b.id],
                            new_values=b.to_dict(),
                            identity=_project_identity(projects[b.project_id]),
                            affected_aggregation_ids=_affected(projects[b.project_id]),
                        )
                        for b in updated
                    ],
                    source=source,
                    reason=reason,
                )

        logger.info(f"Bulk updated {len(updated)} breakdown(s), skipped {len(skipped)}")
        return _to_result([b.id for b in updated], skipped, batch_id)

    @staticmethod
    async def bulk_delete(
        db: AsyncSession,
        breakdown_ids: Sequence[UUID],
        actor_id: UUID,
        source: ActivitySource = ActivitySource.WEB_UI,
        reason: Optional[str] = None
    ) -> BulkResult:
        """
        Hard-delete several breakdowns in one batch.

        The entries are written before removal, keep the removed rows as
        previous_values and carry no target id. Missing ids are skipped.

        Returns:
            BulkResult with the deleted ids, the skipped records and the batch id
        """
        logger.info(f"Bulk deleting {len(breakdown_ids)} breakdown(s)")

        doomed: List[ProjectBreakdown] = []
        skipped: List[ValidationSkipped] = []
        projects: Dict[UUID, Project] = {}
        batch_id = None

        async with unit_of_work(db):
            for breakdown_id in dict.fromkeys(breakdown_ids):
                breakdown = await BreakdownService.get_by_id(db, breakdown_id)
                if breakdown is None:
                    skip = ValidationSkipped(breakdown_id, "Breakdown not found")
                    logger.warning(str(skip))
                    skipped.append(skip)
                    continue
                if breakdown.project_id not in projects:
                    projects[breakdown.project_id] = await BreakdownService._load_project(db, breakdown.project_id)
                doomed.append(breakdown)

            if doomed:
                batch_id, _ = await log_bulk(
                    db,
                    actor_id,
                    TargetType.BREAKDOWN,
                    ActivityAction.BULK_DELETED,
                    [
                        BulkRecord(
                            snapshot=b.to_dict(),
                            identity=_project_identity(projects[b.project_id]),
                            affected_aggregation_ids=_affected(projects[b.project_id]),
                        )
                        for b in doomed
                    ],
                    source=source,
                    reason=reason,
                )

            deleted_ids = [b.id for b in doomed]
            for breakdown in doomed:
                await db.delete(breakdown)
            await db.flush()

            for project_id in projects:
                await ProjectAggregator.recompute(db, project_id, actor_id)

        logger.info(f"Bulk deleted {len(deleted_ids)} breakdown(s), skipped {len(skipped)}")
        return _to_result(deleted_ids, skipped, batch_id)

    @staticmethod
    async def _sync_project(
        db: AsyncSession,
        project: Project,
        report: ProjectReport,
        actor_id: UUID,
        source: ActivitySource
    ) -> None:
        """Copy the latest report's numbers onto an existing project."""
        previous = project.to_dict()
        project.total_budget_allocated = report.appropriation
        project.project_accomplishment = report.accomplishment_rate
        if report.remarks is not None:
            project.remarks = report.remarks
        project.utilization_rate = calculate_utilization_rate(
            project.total_budget_allocated, project.total_budget_utilized
        )
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
                reason="Synced from report",
                source=source,
                affected_aggregation_ids=[project.budget_item_id] if project.budget_item_id else None,
            ),
        )

    @staticmethod
    async def log_report(
        db: AsyncSession,
        report: ProjectReport,
        actor_id: UUID,
        source: ActivitySource = ActivitySource.API
    ) -> ProjectBreakdown:
        """
        Ingest a report row, creating its project on first sight.

        The project is matched by name and implementing office among the
        active projects. An existing project takes the allocation,
        accomplishment and remarks of the latest report; the change is
        logged as an update of the project.

        Args:
            db: Database session
            report: Report row with the project's name and office
            actor_id: ID of the user performing the action
            source: Origin of the report

        Returns:
            Created breakdown
        """
        logger.info(f"Logging report for project '{report.project_name}' ({report.implementing_office})")

        async with unit_of_work(db):
            result = await db.execute(
                select(Project)
                .where(
                    Project.particulars == report.project_name,
                    Project.implementing_office == report.implementing_office,
                    Project.is_deleted.is_not(True),
                )
                .order_by(Project.created_at)
            )
            project = result.scalars().first()
            if project is None:
                logger.info(f"No project named '{report.project_name}', creating it")
                project = await ProjectService.create(
                    db,
                    ProjectCreate(
                        particulars=report.project_name,
                        implementing_office=report.implementing_office,
                        budget_item_id=report.budget_item_id,
                        total_budget_allocated=report.appropriation,
                        obligated_budget=report.obligation,
                        project_accomplishment=report.accomplishment_rate,
                        remarks=report.remarks,
                    ),
                    actor_id,
                )
            else:
                await BreakdownService._sync_project(db, project, report, actor_id, source)

            fields = report.model_dump(exclude={"project_name", "implementing_office", "budget_item_id"})
            breakdown = await BreakdownService.create(
                db,
                BreakdownCreate(project_id=project.id, **fields),
                actor_id,
                source=source,
            )
        return breakdown

    @staticmethod
    async def get_project_history(
        db: AsyncSession,
        project_id: UUID,
        include_deleted: bool = False
    ) -> List[ProjectBreakdown]:
        """
        Get a project's reports ordered by report date.

        Raises:
            NotFoundError: If the project does not exist
        """
        await BreakdownService._load_project(db, project_id)
        query = select(ProjectBreakdown).where(ProjectBreakdown.project_id == project_id)
        if not include_deleted:
            query = query.where(ProjectBreakdown.is_deleted.is_not(True))
        result = await db.execute(query.order_by(ProjectBreakdown.report_date, ProjectBreakdown.created_at))
        return list(result.scalars().all())

    @staticmethod
    async def get_stats_by_municipality(db: AsyncSession) -> List[MunicipalityStats]:
        """
        Summarize the latest active report of every active project by municipality.

        Returns:
            One entry per municipality with the number of projects and the
            summed appropriation of their latest reports, sorted by name
        """
        result = await db.execute(
            select(ProjectBreakdown)
            .join(Project, Project.id == ProjectBreakdown.project_id)
            .where(
                ProjectBreakdown.is_deleted.is_not(True),
                Project.is_deleted.is_not(True),
            )
            .order_by(ProjectBreakdown.report_date, ProjectBreakdown.created_at)
        )
        latest: Dict[UUID, ProjectBreakdown] = {}
        for breakdown in result.scalars().all():
            latest[breakdown.project_id] = breakdown

        stats: Dict[str, MunicipalityStats] = {}
        for breakdown in latest.values():
            name = breakdown.municipality or "Unknown"
            entry = stats.setdefault(
                name, MunicipalityStats(municipality=name, count=0, total_budget=Decimal("0.00"))
            )
            entry.count += 1
            entry.total_budget += Decimal(str(breakdown.appropriation or 0))
        return [stats[name] for name in sorted(stats)]
