"""
Tests for budget item operations.
"""

from decimal import Decimal
import uuid

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import BudgetTrackerError, NotFoundError, PreconditionFailedError
from app.models.activity import ActivityLog
from app.schemas.budget_item import BudgetItemCreate, BudgetItemUpdate
from app.services.activity import ActivityService
from app.services.budget_item import BudgetItemService
from app.services.trash import TrashService


@pytest.mark.asyncio
async def test_budget_item_create_zeroes_derived_fields(db_session: AsyncSession, budget_item):
    """Test BudgetItemService.create."""
    assert budget_item.id is not None
    assert budget_item.obligated_budget == Decimal("0")
    assert budget_item.total_budget_utilized == Decimal("0")
    assert budget_item.utilization_rate == Decimal("0")
    assert budget_item.status == "ongoing"
    assert (budget_item.project_completed, budget_item.project_delayed, budget_item.projects_on_track) == (0, 0, 0)


@pytest.mark.asyncio
async def test_particulars_must_be_unique(db_session: AsyncSession, staff_user, budget_item):
    with pytest.raises(BudgetTrackerError, match="already exists"):
        await BudgetItemService.create(
            db_session,
            BudgetItemCreate(particulars="20% Development Fund", total_budget_allocated=Decimal("1.00")),
            staff_user.id,
        )


@pytest.mark.asyncio
async def test_delete_blocked_by_linked_projects(db_session: AsyncSession, staff_user, budget_item, project):
    """Test that a budget item with a linked project cannot be deleted and nothing changes."""
    item_id, actor_id = budget_item.id, staff_user.id

    with pytest.raises(PreconditionFailedError) as exc_info:
        await BudgetItemService.delete(db_session, item_id, actor_id)

    assert str(exc_info.value) == "Cannot delete budget item with 1 linked project(s)."
    assert exc_info.value.blocking_count == 1
    assert await BudgetItemService.get_by_id(db_session, item_id) is not None
    deleted = await db_session.execute(select(ActivityLog).where(ActivityLog.action == "deleted"))
    assert deleted.scalars().all() == []


@pytest.mark.asyncio
async def test_trashed_projects_still_block_delete(db_session: AsyncSession, staff_user, budget_item, project):
    item_id, actor_id = budget_item.id, staff_user.id
    await TrashService.move_to_trash(db_session, project.id, actor_id)

    with pytest.raises(PreconditionFailedError, match="1 linked project"):
        await BudgetItemService.delete(db_session, item_id, actor_id)


@pytest.mark.asyncio
async def test_delete_logs_snapshot(db_session: AsyncSession, staff_user, budget_item):
    item_id = budget_item.id

    await BudgetItemService.delete(db_session, item_id, staff_user.id, reason="Entered twice")

    assert await BudgetItemService.get_by_id(db_session, item_id) is None
    entry = (await ActivityService.get_by_target(db_session, "budget_item", str(item_id)))[0]
    assert entry.action == "deleted"
    assert entry.previous_values["particulars"] == "20% Development Fund"
    assert entry.target_name == "20% Development Fund"
    assert entry.reason == "Entered twice"


@pytest.mark.asyncio
async def test_update_unknown_budget_item(db_session: AsyncSession, staff_user):
    with pytest.raises(NotFoundError, match="Budget item not found"):
        await BudgetItemService.update(db_session, uuid.uuid4(), BudgetItemUpdate(notes="x"), staff_user.id)


@pytest.mark.asyncio
async def test_allocation_change_recomputes_utilization(db_session: AsyncSession, staff_user, budget_item, project):
    await BudgetItemService.update(
        db_session, budget_item.id, BudgetItemUpdate(total_budget_allocated=Decimal("50000.00")), staff_user.id
    )

    assert budget_item.utilization_rate == Decimal("50.00")


@pytest.mark.asyncio
async def test_statistics(db_session: AsyncSession, staff_user, budget_item, project):
    """Test BudgetItemService.get_statistics."""
    await BudgetItemService.create(
        db_session,
        BudgetItemCreate(particulars="Calamity Fund", total_budget_allocated=Decimal("50000.00")),
        staff_user.id,
    )

    stats = await BudgetItemService.get_statistics(db_session)

    assert stats.total_budget_items == 2
    assert stats.total_allocated == Decimal("150000.00")
    assert stats.total_utilized == Decimal("25000.00")
    assert stats.average_utilization_rate == Decimal("12.50")


@pytest.mark.asyncio
async def test_pinned_items_come_first(db_session: AsyncSession, staff_user, budget_item):
    other = await BudgetItemService.create(
        db_session,
        BudgetItemCreate(particulars="Calamity Fund", total_budget_allocated=Decimal("50000.00")),
        staff_user.id,
    )
    await BudgetItemService.toggle_pin(db_session, budget_item.id, staff_user.id)

    items = await BudgetItemService.get_all(db_session)

    assert [i.id for i in items] == [budget_item.id, other.id]
