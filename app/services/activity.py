"""
Read-side queries over the activity log.

Entries are always ordered by timestamp, newest first, with the insertion id
breaking ties. The only write here is the review annotation.
"""

from collections import Counter
from datetime import datetime, timedelta
from typing import List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_

from app.core.logging import logger
from app.db.audit import mark_reviewed
from app.db.session import unit_of_work
from app.models.activity import ActivityLog
from app.models.base import utcnow
from app.schemas.activity import ActivityFilters, ActivityStatistics, TimelineBucket, UserActivityCount
from app.utils.pagination import PaginatedResponse, PaginationParams, paginate_query

NEWEST_FIRST = (ActivityLog.timestamp.desc(), ActivityLog.id.desc())


def _apply_filters(query, filters: ActivityFilters):
    exact = {
        "target_type": ActivityLog.target_type,
        "target_id": ActivityLog.target_id,
        "action": ActivityLog.action,
        "performed_by": ActivityLog.performed_by,
        "budget_item_id": ActivityLog.budget_item_id,
        "project_id": ActivityLog.project_id,
        "batch_id": ActivityLog.batch_id,
        "source": ActivityLog.source,
        "is_flagged": ActivityLog.is_flagged,
        "is_reviewed": ActivityLog.is_reviewed,
    }
    for name, column in exact.items():
        value = getattr(filters, name)
        if value is not None:
            query = query.where(column == value)

    # Substring matches on the denormalized identity
    if filters.target_name:
        query = query.where(ActivityLog.target_name.ilike(f"%{filters.target_name}%"))
    if filters.implementing_office:
        query = query.where(ActivityLog.implementing_office.ilike(f"%{filters.implementing_office}%"))
    if filters.municipality:
        query = query.where(ActivityLog.municipality.ilike(f"%{filters.municipality}%"))

    if filters.start_date is not None:
        query = query.where(ActivityLog.timestamp >= filters.start_date)
    if filters.end_date is not None:
        query = query.where(ActivityLog.timestamp <= filters.end_date)
    return query


class ActivityService:
    """Service class for activity log queries."""

    @staticmethod
    async def get_by_id(db: AsyncSession, activity_id: int) -> Optional[ActivityLog]:
        return await db.get(ActivityLog, activity_id)

    @staticmethod
    async def get_by_target(
        db: AsyncSession,
        target_type: str,
        target_id: str,
        limit: int = 100
    ) -> List[ActivityLog]:
        """
        Get the history of one record.

        Args:
            db: Database session
            target_type: budget_item, project or breakdown
            target_id: ID of the record
            limit: Maximum number of entries to return

        Returns:
            Entries for the record, newest first
        """
        logger.debug(f"Getting activities for {target_type} {target_id}")
        result = await db.execute(
            select(ActivityLog)
            .where(ActivityLog.target_type == target_type, ActivityLog.target_id == str(target_id))
            .order_by(*NEWEST_FIRST)
            .limit(limit)
        )
        return list(result.scalars().all())

    @staticmethod
    async def get_by_user(db: AsyncSession, user_id: UUID, limit: int = 100) -> List[ActivityLog]:
        logger.debug(f"Getting activities performed by user {user_id}")
        result = await db.execute(
            select(ActivityLog)
            .where(ActivityLog.performed_by == user_id)
            .order_by(*NEWEST_FIRST)
            .limit(limit)
        )
        return list(result.scalars().all())

    @staticmethod
    async def get_by_batch(db: AsyncSession, batch_id: str) -> List[ActivityLog]:
        """Get every entry of a bulk batch in the order the records were processed."""
        result = await db.execute(
            select(ActivityLog).where(ActivityLog.batch_id == batch_id).order_by(ActivityLog.id)
        )
        return list(result.scalars().all())

    @staticmethod
    async def get_recent(db: AsyncSession, limit: int = 50) -> List[ActivityLog]:
        result = await db.execute(select(ActivityLog).order_by(*NEWEST_FIRST).limit(limit))
        return list(result.scalars().all())

    @staticmethod
    async def get_flagged(db: AsyncSession, unreviewed_only: bool = True, limit: int = 100) -> List[ActivityLog]:
        query = select(ActivityLog).where(ActivityLog.is_flagged.is_(True))
        if unreviewed_only:
            query = query.where(ActivityLog.is_reviewed.is_not(True))
        result = await db.execute(query.order_by(*NEWEST_FIRST).limit(limit))
        return list(result.scalars().all())

    @staticmethod
    async def list_activities(
        db: AsyncSession,
        filters: ActivityFilters,
        pagination: PaginationParams
    ) -> PaginatedResponse:
        """
        Get a filtered, paginated page of entries.

        Args:
            db: Database session
            filters: Filters combined with AND
            pagination: Page, size and sort order

        Returns:
            Paginated entries
        """
        logger.debug(f"Listing activities with filters {filters.model_dump(exclude_none=True)}")
        query = _apply_filters(select(ActivityLog), filters)
        return await paginate_query(db, query, pagination, model=ActivityLog)

    @staticmethod
    async def search(db: AsyncSession, term: str, limit: int = 50) -> List[ActivityLog]:
        """Keyword search over target name, office, actor, reason and location."""
        pattern = f"%{term}%"
        result = await db.execute(
            select(ActivityLog)
            .where(
                or_(
                    ActivityLog.target_name.ilike(pattern),
                    ActivityLog.implementing_office.ilike(pattern),
                    ActivityLog.performed_by_name.ilike(pattern),
                    ActivityLog.reason.ilike(pattern),
                    ActivityLog.municipality.ilike(pattern),
                )
            )
            .order_by(*NEWEST_FIRST)
            .limit(limit)
        )
        return list(result.scalars().all())

    @staticmethod
    async def get_statistics(
        db: AsyncSession,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None
    ) -> ActivityStatistics:
        """
        Summarize the log over an optional date range.

        Returns:
            Totals per action and source, flagged counts and the ten most
            active users
        """
        filters = ActivityFilters(start_date=start_date, end_date=end_date)

        total = (
            await db.execute(_apply_filters(select(func.count(ActivityLog.id)), filters))
        ).scalar() or 0

        action_rows = await db.execute(
            _apply_filters(select(ActivityLog.action, func.count(ActivityLog.id)), filters)
            .group_by(ActivityLog.action)
        )
        source_rows = await db.execute(
            _apply_filters(select(ActivityLog.source, func.count(ActivityLog.id)), filters)
            .group_by(ActivityLog.source)
        )
        flagged = (
            await db.execute(
                _apply_filters(select(func.count(ActivityLog.id)), filters)
                .where(ActivityLog.is_flagged.is_(True))
            )
        ).scalar() or 0
        unreviewed = (
            await db.execute(
                _apply_filters(select(func.count(ActivityLog.id)), filters)
                .where(ActivityLog.is_flagged.is_(True), ActivityLog.is_reviewed.is_not(True))
            )
        ).scalar() or 0

        count = func.count(ActivityLog.id)
        user_rows = await db.execute(
            _apply_filters(
                select(ActivityLog.performed_by, func.max(ActivityLog.performed_by_name), count),
                filters,
            )
            .group_by(ActivityLog.performed_by)
            .order_by(count.desc())
            .limit(10)
        )

        return ActivityStatistics(
            total_activities=total,
            action_counts={action: n for action, n in action_rows.all()},
            source_counts={(source or "unknown"): n for source, n in source_rows.all()},
            flagged_count=flagged,
            unreviewed_flagged_count=unreviewed,
            top_users=[
                UserActivityCount(user_id=user_id, user_name=name, count=n)
                for user_id, name, n in user_rows.all()
            ],
        )

    @staticmethod
    async def get_timeline(db: AsyncSession, days: int = 30) -> List[TimelineBucket]:
        """Daily entry counts for the last `days` days, oldest day first."""
        since = utcnow() - timedelta(days=days)
        result = await db.execute(select(ActivityLog.timestamp).where(ActivityLog.timestamp >= since))
        counts = Counter(ts.date().isoformat() for ts in result.scalars().all())
        return [TimelineBucket(date=day, count=counts[day]) for day in sorted(counts)]

    @staticmethod
    async def review(
        db: AsyncSession,
        activity_id: int,
        reviewer_id: UUID,
        review_notes: Optional[str] = None
    ) -> ActivityLog:
        """
        Mark an entry as reviewed by an administrator.

        Raises:
            NotFoundError: If the entry or reviewer does not exist
            PreconditionFailedError: If the reviewer is not an administrator
        """
        async with unit_of_work(db):
            entry = await mark_reviewed(db, activity_id, reviewer_id, review_notes)
        return entry
