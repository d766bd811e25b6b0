"""
Tests for breakdown reports, report ingestion and statistics.
"""

from datetime import datetime, timezone
from decimal import Decimal
import uuid

import pytest
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, PreconditionFailedError
from app.schemas.breakdown import BreakdownCreate, BreakdownUpdate, ProjectReport
from app.schemas.project import ProjectCreate
from app.services.activity import ActivityService
from app.services.breakdown import BreakdownService
from app.services.project import ProjectService
from app.services.trash import TrashService


def at(month: int) -> datetime:
    return datetime(2024, month, 1, tzinfo=timezone.utc)


def test_status_is_normalized_on_input():
    """Test that legacy status spellings are stored canonically."""
    record = BreakdownCreate(project_id=uuid.uuid4(), status="On-Hold")
    assert record.status == "on_hold"

    with pytest.raises(ValidationError):
        BreakdownCreate(project_id=uuid.uuid4(), status="finished-ish")


@pytest.mark.asyncio
async def test_create_requires_project(db_session: AsyncSession, staff_user):
    with pytest.raises(NotFoundError, match="Project not found"):
        await BreakdownService.create(db_session, BreakdownCreate(project_id=uuid.uuid4()), staff_user.id)


@pytest.mark.asyncio
async def test_duplicate_report_date_is_accepted(db_session: AsyncSession, staff_user, project):
    """Test that the (project, report_date) uniqueness is only a warning."""
    for _ in range(2):
        await BreakdownService.create(
            db_session, BreakdownCreate(project_id=project.id, report_date=at(3)), staff_user.id
        )

    history = await BreakdownService.get_project_history(db_session, project.id)
    assert len(history) == 2


@pytest.mark.asyncio
async def test_hard_delete_recomputes_project(db_session: AsyncSession, staff_user, project):
    breakdown = await BreakdownService.create(
        db_session, BreakdownCreate(project_id=project.id, status="delayed"), staff_user.id
    )
    breakdown_id = breakdown.id
    assert project.status == "delayed"

    await BreakdownService.delete(db_session, breakdown_id, staff_user.id)

    assert project.status == "ongoing"
    assert project.project_delayed == 0
    assert await BreakdownService.get_by_id(db_session, breakdown_id) is None
    entry = (await ActivityService.get_by_target(db_session, "breakdown", str(breakdown_id)))[0]
    assert entry.action == "deleted"
    assert entry.previous_values["status"] == "delayed"


@pytest.mark.asyncio
async def test_trash_twice_fails(db_session: AsyncSession, staff_user, project):
    breakdown = await BreakdownService.create(db_session, BreakdownCreate(project_id=project.id), staff_user.id)
    breakdown_id, actor_id = breakdown.id, staff_user.id
    await BreakdownService.move_to_trash(db_session, breakdown_id, actor_id)

    with pytest.raises(PreconditionFailedError):
        await BreakdownService.move_to_trash(db_session, breakdown_id, actor_id)


@pytest.mark.asyncio
async def test_log_report_creates_project_once(db_session: AsyncSession, staff_user, budget_item):
    """Test report ingestion finds or creates the project by name and office."""
    report = dict(
        project_name="Water System",
        implementing_office="Provincial Engineering Office",
        budget_item_id=budget_item.id,
        appropriation=Decimal("30000.00"),
        municipality="Mati",
        status="On-Going",
    )

    first = await BreakdownService.log_report(db_session, ProjectReport(**report, report_date=at(1)), staff_user.id)
    second = await BreakdownService.log_report(
        db_session, ProjectReport(**dict(report, status="Completed"), report_date=at(2)), staff_user.id
    )

    assert first.project_id == second.project_id
    project = await ProjectService.get_by_id(db_session, first.project_id)
    assert project.particulars == "Water System"
    assert project.budget_item_id == budget_item.id
    assert project.total_budget_allocated == Decimal("30000.00")
    assert project.project_completed == 1
    assert project.projects_on_track == 1
    assert budget_item.projects_on_track == 1

    entries = await ActivityService.get_by_target(db_session, "breakdown", str(first.id))
    assert entries[0].source == "api"


@pytest.mark.asyncio
async def test_project_history_is_ordered_by_report_date(db_session: AsyncSession, staff_user, project):
    for month in (3, 1, 2):
        await BreakdownService.create(
            db_session, BreakdownCreate(project_id=project.id, report_date=at(month), remarks=f"m{month}"), staff_user.id
        )

    history = await BreakdownService.get_project_history(db_session, project.id)

    assert [b.remarks for b in history] == ["m1", "m2", "m3"]


@pytest.mark.asyncio
async def test_stats_by_municipality_uses_latest_report(db_session: AsyncSession, staff_user, budget_item, project):
    """Test that only the latest active report of each project counts."""
    other = await ProjectService.create(
        db_session,
        ProjectCreate(
            particulars="Health Center",
            budget_item_id=budget_item.id,
            implementing_office="Provincial Health Office",
            total_budget_allocated=Decimal("80000.00"),
        ),
        staff_user.id,
    )
    rows = [
        (project.id, 1, "Tagum", "1000.00"),
        (project.id, 2, "Tagum", "2000.00"),
        (other.id, 1, "Panabo", "5000.00"),
        (other.id, 3, "Tagum", "7000.00"),
    ]
    for project_id, month, municipality, amount in rows:
        await BreakdownService.create(
            db_session,
            BreakdownCreate(
                project_id=project_id,
                report_date=at(month),
                municipality=municipality,
                appropriation=Decimal(amount),
            ),
            staff_user.id,
        )

    stats = await BreakdownService.get_stats_by_municipality(db_session)

    assert [(s.municipality, s.count, s.total_budget) for s in stats] == [
        ("Tagum", 2, Decimal("9000.00")),
    ]


@pytest.mark.asyncio
async def test_create_under_trashed_project_is_refused(db_session: AsyncSession, staff_user, project):
    """Test that a trashed project takes no new breakdowns."""
    project_id, actor_id = project.id, staff_user.id
    await TrashService.move_to_trash(db_session, project_id, actor_id)

    with pytest.raises(PreconditionFailedError, match="Restore the project before adding breakdowns"):
        await BreakdownService.create(db_session, BreakdownCreate(project_id=project_id), actor_id)

    assert await BreakdownService.get_project_history(db_session, project_id, include_deleted=True) == []


@pytest.mark.asyncio
async def test_update_under_trashed_project_is_refused(db_session: AsyncSession, staff_user, project):
    breakdown = await BreakdownService.create(
        db_session, BreakdownCreate(project_id=project.id, status="ongoing"), staff_user.id
    )
    breakdown_id, actor_id = breakdown.id, staff_user.id
    await TrashService.move_to_trash(db_session, project.id, actor_id)

    with pytest.raises(PreconditionFailedError, match="Restore the project before editing its breakdowns"):
        await BreakdownService.update(db_session, breakdown_id, BreakdownUpdate(status="completed"), actor_id)

    stored = await BreakdownService.get_by_id(db_session, breakdown_id)
    assert stored.status == "ongoing"
    assert stored.is_deleted is True


@pytest.mark.asyncio
async def test_log_report_syncs_existing_project(db_session: AsyncSession, staff_user, budget_item):
    """Test that a later report carries its allocation, accomplishment and remarks to the project."""
    report = dict(
        project_name="Flood Control",
        implementing_office="Provincial Engineering Office",
        budget_item_id=budget_item.id,
        municipality="Compostela",
    )

    first = await BreakdownService.log_report(
        db_session,
        ProjectReport(
            **report, appropriation=Decimal("1000.00"), accomplishment_rate=Decimal("10"),
            remarks="Mobilization", report_date=at(1),
        ),
        staff_user.id,
    )
    project = await ProjectService.get_by_id(db_session, first.project_id)
    assert project.total_budget_allocated == Decimal("1000.00")
    assert project.project_accomplishment == Decimal("10")
    assert project.remarks == "Mobilization"

    await BreakdownService.log_report(
        db_session,
        ProjectReport(
            **report, appropriation=Decimal("5000.00"), accomplishment_rate=Decimal("45"),
            remarks="Excavation ongoing", report_date=at(2),
        ),
        staff_user.id,
    )

    assert project.total_budget_allocated == Decimal("5000.00")
    assert project.project_accomplishment == Decimal("45")
    assert project.remarks == "Excavation ongoing"
    assert project.projects_on_track == 0

    entries = await ActivityService.get_by_target(db_session, "project", str(project.id))
    assert [e.action for e in entries] == ["updated", "created"]
    assert "total_budget_allocated" in entries[0].changed_fields
    assert entries[0].reason == "Synced from report"
    assert entries[0].is_flagged
