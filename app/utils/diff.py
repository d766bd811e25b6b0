"""
Field-level change detection for audit entries.

compute_changes() compares two snapshots of the same record and reports
which fields differ plus a short summary of the changes reviewers care about
(budget, status, schedule, manager, report date, location). Values are
compared by canonical JSON serialization, so nested structures compare by
value and Decimal("100.00") equals Decimal("100").
"""

from decimal import Decimal, InvalidOperation
from typing import Any, List, Mapping, Optional

from pydantic import BaseModel, Field

from app.utils.serialization import canonical_json, make_json_serializable

# Identifier and audit metadata never count as a change
IGNORED_FIELDS = frozenset({"id", "created_at", "created_by", "updated_at", "updated_by"})

BUDGET_FIELDS = ("total_budget_allocated", "appropriation")
LOCATION_FIELDS = ("district", "municipality", "barangay")
FLAGGED_STATUSES = ("completed", "cancelled")


class ChangeSummary(BaseModel):
    """Structured flags for the interesting fields of an update."""

    budget_changed: Optional[bool] = None
    old_budget: Optional[float] = None
    new_budget: Optional[float] = None
    status_changed: Optional[bool] = None
    old_status: Optional[str] = None
    new_status: Optional[str] = None
    schedule_changed: Optional[bool] = None
    date_changed: Optional[bool] = None
    manager_changed: Optional[bool] = None
    location_changed: Optional[bool] = None

    def is_empty(self) -> bool:
        return not self.model_dump(exclude_none=True)


class ChangeSet(BaseModel):
    changed_fields: List[str] = Field(default_factory=list)
    change_summary: ChangeSummary = Field(default_factory=ChangeSummary)

    @property
    def has_changes(self) -> bool:
        return bool(self.changed_fields)


def _ordered_keys(previous: Mapping[str, Any], new: Mapping[str, Any]) -> List[str]:
    keys = list(previous.keys())
    keys.extend(key for key in new.keys() if key not in previous)
    return keys


def compute_changes(
    previous: Optional[Mapping[str, Any]],
    new: Optional[Mapping[str, Any]],
) -> ChangeSet:
    """
    Compute the delta between two versions of a record.

    Args:
        previous: Record before the mutation, or None for a pure create
        new: Record after the mutation, or None for a pure delete

    Returns:
        ChangeSet with the ordered changed field names and the summary.
        Both are empty when either side is absent.
    """
    if previous is None or new is None:
        return ChangeSet()

    changed_fields = [
        key
        for key in _ordered_keys(previous, new)
        if key not in IGNORED_FIELDS
        and canonical_json(previous.get(key)) != canonical_json(new.get(key))
    ]

    summary = ChangeSummary()
    for field in BUDGET_FIELDS:
        if field in changed_fields:
            summary.budget_changed = True
            summary.old_budget = make_json_serializable(previous.get(field))
            summary.new_budget = make_json_serializable(new.get(field))
            break
    if "status" in changed_fields:
        summary.status_changed = True
        summary.old_status = make_json_serializable(previous.get("status"))
        summary.new_status = make_json_serializable(new.get("status"))
    if "target_date_completion" in changed_fields:
        summary.schedule_changed = True
    if "report_date" in changed_fields:
        summary.date_changed = True
    if "project_manager_id" in changed_fields:
        summary.manager_changed = True
    if any(field in changed_fields for field in LOCATION_FIELDS):
        summary.location_changed = True

    return ChangeSet(changed_fields=changed_fields, change_summary=summary)


def evaluate_flag(change_set: ChangeSet, threshold_percent: Decimal) -> Optional[str]:
    """
    Decide whether an update deserves admin review.

    Returns the flag reason, or None. Flags budget changes of at least
    threshold_percent of the old amount and status moves to completed or
    cancelled.
    """
    summary = change_set.change_summary
    if summary.budget_changed:
        try:
            old = Decimal(str(summary.old_budget or 0))
            new = Decimal(str(summary.new_budget or 0))
        except InvalidOperation:
            old = new = Decimal("0")
        if old == 0 and new != 0:
            return "Budget set from zero"
        if old != 0 and abs(new - old) / abs(old) * 100 >= threshold_percent:
            return f"Budget changed by {abs(new - old) / abs(old) * 100:.2f}%"
    if summary.status_changed and summary.new_status in FLAGGED_STATUSES:
        return f"Status changed to {summary.new_status}"
    return None
