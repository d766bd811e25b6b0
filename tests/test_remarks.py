"""
Tests for project remarks.
"""

from decimal import Decimal
import uuid

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError
from app.models.remark import Remark, RemarkPriority
from app.schemas.budget_item import BudgetItemCreate
from app.schemas.remark import RemarkCreate, RemarkUpdate
from app.services.activity import ActivityService
from app.services.budget_item import BudgetItemService
from app.services.remark import RemarkService
from app.services.trash import TrashService


async def add_remark(db, project, actor_id, content, **fields):
    return await RemarkService.create(db, RemarkCreate(project_id=project.id, content=content, **fields), actor_id)


@pytest.mark.asyncio
async def test_create_defaults_budget_item_from_project(db_session: AsyncSession, staff_user, budget_item, project):
    """Test that a remark without a budget item takes its project's."""
    remark = await add_remark(
        db_session, project, staff_user.id, "Contractor mobilized", category="progress", priority=RemarkPriority.LOW
    )

    assert remark.budget_item_id == budget_item.id
    assert remark.priority == "low"
    assert remark.is_pinned is False
    assert remark.created_by == staff_user.id

    entries = await ActivityService.get_by_target(db_session, "remark", str(remark.id))
    assert entries[0].action == "created"
    assert entries[0].target_name == "Farm-to-Market Road"
    assert entries[0].project_id == str(project.id)
    assert entries[0].new_values["content"] == "Contractor mobilized"


@pytest.mark.asyncio
async def test_create_with_explicit_budget_item(db_session: AsyncSession, staff_user, project):
    other = await BudgetItemService.create(
        db_session,
        BudgetItemCreate(particulars="Trust Fund", total_budget_allocated=Decimal("1000.00")),
        staff_user.id,
    )

    remark = await add_remark(db_session, project, staff_user.id, "Charged to trust fund", budget_item_id=other.id)

    assert remark.budget_item_id == other.id


@pytest.mark.asyncio
async def test_create_requires_project_and_budget_item(db_session: AsyncSession, staff_user, project):
    project_id, actor_id = project.id, staff_user.id

    with pytest.raises(NotFoundError, match="Project not found"):
        await RemarkService.create(db_session, RemarkCreate(project_id=uuid.uuid4(), content="x"), actor_id)

    with pytest.raises(NotFoundError, match="Budget item not found"):
        await RemarkService.create(
            db_session, RemarkCreate(project_id=project_id, content="x", budget_item_id=uuid.uuid4()), actor_id
        )

    assert await RemarkService.list_by_project(db_session, project_id) == []


@pytest.mark.asyncio
async def test_update_applies_set_fields_only(db_session: AsyncSession, staff_user, project):
    remark = await add_remark(db_session, project, staff_user.id, "Rainy season delay", category="issue")

    await RemarkService.update(
        db_session, remark.id, RemarkUpdate(priority=RemarkPriority.HIGH, reason="Escalated"), staff_user.id
    )

    assert remark.content == "Rainy season delay"
    assert remark.category == "issue"
    assert remark.priority == "high"

    entry = (await ActivityService.get_by_target(db_session, "remark", str(remark.id)))[0]
    assert entry.action == "updated"
    assert entry.changed_fields == ["priority"]
    assert entry.reason == "Escalated"
    assert entry.target_name == "Farm-to-Market Road"


@pytest.mark.asyncio
async def test_toggle_pin(db_session: AsyncSession, staff_user, project):
    remark = await add_remark(db_session, project, staff_user.id, "Check drainage")

    await RemarkService.toggle_pin(db_session, remark.id, staff_user.id)
    assert remark.is_pinned is True
    assert [r.id for r in await RemarkService.get_pinned(db_session, project.id)] == [remark.id]

    await RemarkService.toggle_pin(db_session, remark.id, staff_user.id)
    assert remark.is_pinned is False
    assert await RemarkService.get_pinned(db_session, project.id) == []


@pytest.mark.asyncio
async def test_delete_logs_before_removal(db_session: AsyncSession, staff_user, project):
    """Test the deleted entry keeps the removed remark."""
    remark = await add_remark(db_session, project, staff_user.id, "Duplicate note")
    remark_id = remark.id

    await RemarkService.delete(db_session, remark_id, staff_user.id, reason="Duplicate")

    assert await RemarkService.get_by_id(db_session, remark_id) is None
    entry = (await ActivityService.get_by_target(db_session, "remark", str(remark_id)))[0]
    assert entry.action == "deleted"
    assert entry.previous_values["content"] == "Duplicate note"
    assert entry.reason == "Duplicate"

    with pytest.raises(NotFoundError, match="Remark not found"):
        await RemarkService.delete(db_session, remark_id, staff_user.id)


@pytest.mark.asyncio
async def test_list_by_project_pins_first_and_filters(db_session: AsyncSession, staff_user, project):
    first = await add_remark(db_session, project, staff_user.id, "Survey done", category="progress")
    pinned = await add_remark(
        db_session, project, staff_user.id, "Right of way issue", category="issue",
        priority=RemarkPriority.HIGH, is_pinned=True,
    )
    await add_remark(db_session, project, staff_user.id, "Asphalt delivered", category="progress")

    remarks = await RemarkService.list_by_project(db_session, project.id)
    assert len(remarks) == 3
    assert remarks[0].id == pinned.id

    progress = await RemarkService.list_by_category(db_session, project.id, "progress")
    assert len(progress) == 2
    assert first.id in {r.id for r in progress}

    high = await RemarkService.list_by_project(db_session, project.id, priority=RemarkPriority.HIGH)
    assert [r.id for r in high] == [pinned.id]
    assert [r.id for r in await RemarkService.list_by_priority(db_session, "high")] == [pinned.id]

    unpinned = await RemarkService.list_by_project(db_session, project.id, is_pinned=False)
    assert pinned.id not in {r.id for r in unpinned}


@pytest.mark.asyncio
async def test_project_stats(db_session: AsyncSession, staff_user, project):
    await add_remark(db_session, project, staff_user.id, "a", category="issue", priority=RemarkPriority.HIGH, is_pinned=True)
    await add_remark(db_session, project, staff_user.id, "b", category="issue", priority=RemarkPriority.MEDIUM)
    await add_remark(db_session, project, staff_user.id, "c", category="progress")

    stats = await RemarkService.get_project_stats(db_session, project.id)

    assert stats.total == 3
    assert stats.pinned == 1
    assert (stats.high_priority, stats.medium_priority, stats.low_priority) == (1, 1, 0)
    assert stats.categories == {"issue": 2, "progress": 1}


@pytest.mark.asyncio
async def test_search_puts_content_matches_first(db_session: AsyncSession, staff_user, project):
    by_category = await add_remark(db_session, project, staff_user.id, "Culverts installed", category="Drainage")
    by_content = await add_remark(db_session, project, staff_user.id, "Drainage canal cleared", category="progress")
    await add_remark(db_session, project, staff_user.id, "Unrelated", category="progress")

    found = await RemarkService.search(db_session, "drainage")

    assert [r.id for r in found] == [by_content.id, by_category.id]
    assert await RemarkService.search(db_session, "drainage", project_id=uuid.uuid4()) == []


@pytest.mark.asyncio
async def test_listings_by_budget_item_user_and_recency(db_session: AsyncSession, staff_user, admin_user, budget_item, project):
    mine = await add_remark(db_session, project, staff_user.id, "Staff note")
    theirs = await add_remark(db_session, project, admin_user.id, "Admin note")

    assert {r.id for r in await RemarkService.list_by_budget_item(db_session, budget_item.id)} == {mine.id, theirs.id}
    assert [r.id for r in await RemarkService.get_by_user(db_session, admin_user.id)] == [theirs.id]
    assert len(await RemarkService.get_recent(db_session, project_id=project.id, limit=1)) == 1
    assert await RemarkService.get_by_user(db_session, staff_user.id, project_id=uuid.uuid4()) == []


@pytest.mark.asyncio
async def test_remarks_go_with_their_project(db_session: AsyncSession, staff_user, project):
    """Test that permanently deleting a project removes its remarks."""
    await add_remark(db_session, project, staff_user.id, "Final inspection pending")
    project_id = project.id
    await TrashService.move_to_trash(db_session, project_id, staff_user.id)

    await TrashService.delete_permanently(db_session, project_id, staff_user.id)

    rows = await db_session.execute(select(Remark).where(Remark.project_id == project_id))
    assert rows.scalars().all() == []
