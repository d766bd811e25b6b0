"""
Tests for the activity log.
"""

from decimal import Decimal
import uuid

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, PreconditionFailedError
from app.db.audit import ActivityConfig, log_activity
from app.models.activity import ActivityAction, TargetType
from app.schemas.activity import ActivityFilters
from app.schemas.breakdown import BreakdownCreate, BreakdownUpdate
from app.schemas.budget_item import BudgetItemCreate, BudgetItemUpdate
from app.services.activity import ActivityService
from app.services.breakdown import BreakdownService
from app.services.budget_item import BudgetItemService
from app.utils.pagination import PaginationParams


@pytest.mark.asyncio
async def test_create_logs_actor_and_target_snapshot(db_session: AsyncSession, staff_user, budget_item):
    """Test the created entry of a budget item."""
    entries = await ActivityService.get_by_target(db_session, "budget_item", str(budget_item.id))

    assert len(entries) == 1
    entry = entries[0]
    assert entry.action == "created"
    assert entry.target_name == "20% Development Fund"
    assert entry.budget_item_id == str(budget_item.id)
    assert entry.performed_by == staff_user.id
    assert entry.performed_by_name == "Maria Santos"
    assert entry.performed_by_email == "staff@example.gov"
    assert entry.performed_by_role == "user"
    assert entry.new_values["particulars"] == "20% Development Fund"
    assert entry.previous_values is None
    assert entry.source == "web_ui"


@pytest.mark.asyncio
async def test_update_records_diff_and_flag(db_session: AsyncSession, staff_user, budget_item):
    """Test an allocation change from 100000 to 150000."""
    await BudgetItemService.update(
        db_session,
        budget_item.id,
        BudgetItemUpdate(total_budget_allocated=Decimal("150000.00"), reason="Supplemental budget"),
        staff_user.id,
    )

    entry = (await ActivityService.get_by_target(db_session, "budget_item", str(budget_item.id)))[0]
    assert entry.action == "updated"
    assert entry.changed_fields == ["total_budget_allocated"]
    assert entry.change_summary["budget_changed"] is True
    assert entry.change_summary["old_budget"] == 100000.0
    assert entry.change_summary["new_budget"] == 150000.0
    assert entry.previous_values["total_budget_allocated"] == 100000.0
    assert entry.new_values["total_budget_allocated"] == 150000.0
    assert entry.reason == "Supplemental budget"
    assert entry.is_flagged is True
    assert entry.flag_reason == "Budget changed by 50.00%"
    assert entry.triggered_aggregation_update is True
    assert entry.affected_aggregation_ids == [str(budget_item.id)]


@pytest.mark.asyncio
async def test_unknown_actor_fails_the_mutation(db_session: AsyncSession):
    """Test that a missing actor aborts the write together with its entry."""
    with pytest.raises(NotFoundError, match="User not found for logging"):
        await BudgetItemService.create(
            db_session,
            BudgetItemCreate(particulars="Ghost Fund", total_budget_allocated=Decimal("1.00")),
            uuid.uuid4(),
        )

    assert await BudgetItemService.get_by_particulars(db_session, "Ghost Fund") is None
    assert await ActivityService.get_recent(db_session) == []


@pytest.mark.asyncio
async def test_breakdown_entries_carry_project_identity(db_session: AsyncSession, staff_user, budget_item, project):
    """Test the denormalized identity of a breakdown entry."""
    breakdown = await BreakdownService.create(
        db_session,
        BreakdownCreate(project_id=project.id, municipality="Tagum", district="1st", status="On-Going"),
        staff_user.id,
    )

    entry = (await ActivityService.get_by_target(db_session, "breakdown", str(breakdown.id)))[0]
    assert entry.target_name == "Farm-to-Market Road"
    assert entry.implementing_office == "Provincial Engineering Office"
    assert entry.project_id == str(project.id)
    assert entry.budget_item_id == str(budget_item.id)
    assert entry.municipality == "Tagum"
    assert entry.new_values["status"] == "ongoing"
    assert entry.affected_aggregation_ids == [str(project.id), str(budget_item.id)]


@pytest.mark.asyncio
async def test_status_change_to_completed_is_flagged(db_session: AsyncSession, staff_user, project):
    breakdown = await BreakdownService.create(
        db_session, BreakdownCreate(project_id=project.id, status="ongoing"), staff_user.id
    )
    await BreakdownService.update(db_session, breakdown.id, BreakdownUpdate(status="Completed"), staff_user.id)

    entry = (await ActivityService.get_by_target(db_session, "breakdown", str(breakdown.id)))[0]
    assert entry.changed_fields == ["status"]
    assert entry.change_summary["status_changed"] is True
    assert entry.change_summary["new_status"] == "completed"
    assert entry.flag_reason == "Status changed to completed"


@pytest.mark.asyncio
async def test_actor_role_is_snapshotted(db_session: AsyncSession, staff_user, budget_item):
    """Test that changing a user's role does not rewrite earlier entries."""
    staff_user.role = "admin"
    await db_session.commit()

    entry = (await ActivityService.get_by_target(db_session, "budget_item", str(budget_item.id)))[0]
    assert entry.performed_by_role == "user"


@pytest.mark.asyncio
async def test_review_requires_admin(db_session: AsyncSession, staff_user, admin_user, budget_item):
    """Test review annotation permissions."""
    entry = (await ActivityService.get_by_target(db_session, "budget_item", str(budget_item.id)))[0]
    entry_id, staff_id, admin_id = entry.id, staff_user.id, admin_user.id

    with pytest.raises(PreconditionFailedError, match="administrator"):
        await ActivityService.review(db_session, entry_id, staff_id)

    reviewed = await ActivityService.review(db_session, entry_id, admin_id, "Checked against GAA")
    assert reviewed.is_reviewed is True
    assert reviewed.reviewed_by == admin_id
    assert reviewed.reviewed_at is not None
    assert reviewed.review_notes == "Checked against GAA"
    assert reviewed.action == "created"


@pytest.mark.asyncio
async def test_review_unknown_entry(db_session: AsyncSession, admin_user):
    with pytest.raises(NotFoundError):
        await ActivityService.review(db_session, 999, admin_user.id)


@pytest.mark.asyncio
async def test_log_activity_directly(db_session: AsyncSession, staff_user):
    """Test logging a viewed action without a snapshot."""
    entry = await log_activity(
        db_session,
        staff_user.id,
        TargetType.PROJECT,
        ActivityConfig(action=ActivityAction.VIEWED, target_id="abc"),
    )
    assert entry.id is not None
    assert entry.target_name == "Unknown Project"
    assert entry.changed_fields is None
    assert entry.is_flagged is False


@pytest.mark.asyncio
async def test_filtered_listing_and_search(db_session: AsyncSession, staff_user, budget_item, project):
    """Test the paginated listing filters and keyword search."""
    await BreakdownService.create(
        db_session, BreakdownCreate(project_id=project.id, municipality="Panabo"), staff_user.id
    )

    page = await ActivityService.list_activities(
        db_session, ActivityFilters(target_name="farm-to"), PaginationParams(page=1, size=10)
    )
    assert page.total == 2
    assert {entry.target_type for entry in page.items} == {"project", "breakdown"}
    assert page.items[0].target_type == "breakdown"

    page = await ActivityService.list_activities(
        db_session, ActivityFilters(action="created", target_type="budget_item"), PaginationParams()
    )
    assert page.total == 1

    results = await ActivityService.search(db_session, "panabo")
    assert len(results) == 1


@pytest.mark.asyncio
async def test_statistics(db_session: AsyncSession, staff_user, budget_item, project):
    stats = await ActivityService.get_statistics(db_session)

    assert stats.total_activities == 2
    assert stats.action_counts == {"created": 2}
    assert stats.source_counts == {"web_ui": 2}
    assert stats.top_users[0].user_id == staff_user.id
    assert stats.top_users[0].count == 2

    timeline = await ActivityService.get_timeline(db_session)
    assert sum(bucket.count for bucket in timeline) == 2
