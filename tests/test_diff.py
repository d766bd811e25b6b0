"""
Tests for field-level change detection and review flagging.
"""

from datetime import datetime, timezone
from decimal import Decimal
import uuid

from app.utils.diff import ChangeSet, compute_changes, evaluate_flag

THRESHOLD = Decimal("20")


def test_budget_change_is_detected_and_summarized():
    """Test a total_budget_allocated change from 100 to 150."""
    changes = compute_changes(
        {"particulars": "Road", "total_budget_allocated": Decimal("100")},
        {"particulars": "Road", "total_budget_allocated": Decimal("150")},
    )

    assert changes.changed_fields == ["total_budget_allocated"]
    assert changes.change_summary.budget_changed is True
    assert changes.change_summary.old_budget == 100.0
    assert changes.change_summary.new_budget == 150.0
    assert changes.change_summary.status_changed is None


def test_metadata_fields_are_ignored():
    """Test that id and audit metadata never count as changes."""
    before = {
        "id": uuid.uuid4(),
        "remarks": "same",
        "updated_at": datetime(2024, 1, 1, tzinfo=timezone.utc),
        "updated_by": uuid.uuid4(),
    }
    after = dict(before, id=uuid.uuid4(), updated_at=datetime(2024, 2, 1, tzinfo=timezone.utc), updated_by=uuid.uuid4())

    changes = compute_changes(before, after)

    assert changes.changed_fields == []
    assert not changes.has_changes
    assert changes.change_summary.is_empty()


def test_nested_values_compare_by_value():
    """Test that key order inside nested structures does not matter."""
    changes = compute_changes(
        {"meta": {"a": 1, "b": [1, 2]}, "amount": Decimal("100.00")},
        {"meta": {"b": [1, 2], "a": 1}, "amount": Decimal("100")},
    )
    assert changes.changed_fields == []


def test_changed_fields_keep_previous_key_order_then_new_keys():
    """Test ordering of changed fields."""
    changes = compute_changes(
        {"status": "ongoing", "remarks": "a", "district": "1st"},
        {"district": "2nd", "remarks": "b", "status": "ongoing", "barangay": "Poblacion"},
    )
    assert changes.changed_fields == ["remarks", "district", "barangay"]
    assert changes.change_summary.location_changed is True


def test_summary_flags_for_interesting_fields():
    """Test status, schedule, report date and manager summaries."""
    changes = compute_changes(
        {
            "status": "ongoing",
            "target_date_completion": "2024-06-30",
            "report_date": "2024-01-31",
            "project_manager_id": None,
        },
        {
            "status": "completed",
            "target_date_completion": "2024-12-31",
            "report_date": "2024-02-29",
            "project_manager_id": str(uuid.uuid4()),
        },
    )
    summary = changes.change_summary
    assert summary.status_changed is True
    assert summary.old_status == "ongoing"
    assert summary.new_status == "completed"
    assert summary.schedule_changed is True
    assert summary.date_changed is True
    assert summary.manager_changed is True
    assert summary.budget_changed is None


def test_missing_side_gives_empty_result():
    """Test that a create or delete has no diff."""
    assert compute_changes(None, {"a": 1}) == ChangeSet()
    assert compute_changes({"a": 1}, None) == ChangeSet()


def test_appropriation_counts_as_budget():
    changes = compute_changes({"appropriation": Decimal("10")}, {"appropriation": Decimal("12")})
    assert changes.change_summary.budget_changed is True


def test_flag_large_budget_change():
    changes = compute_changes({"total_budget_allocated": 100}, {"total_budget_allocated": 150})
    assert evaluate_flag(changes, THRESHOLD) == "Budget changed by 50.00%"


def test_small_budget_change_is_not_flagged():
    changes = compute_changes({"total_budget_allocated": 100}, {"total_budget_allocated": 110})
    assert evaluate_flag(changes, THRESHOLD) is None


def test_flag_budget_set_from_zero():
    changes = compute_changes({"total_budget_allocated": 0}, {"total_budget_allocated": 5})
    assert evaluate_flag(changes, THRESHOLD) == "Budget set from zero"


def test_flag_completion_status():
    changes = compute_changes({"status": "ongoing"}, {"status": "completed"})
    assert evaluate_flag(changes, THRESHOLD) == "Status changed to completed"

    changes = compute_changes({"status": "ongoing"}, {"status": "delayed"})
    assert evaluate_flag(changes, THRESHOLD) is None
