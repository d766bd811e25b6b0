"""
Audit logging utilities.

This module writes the append-only activity log. Every entry embeds a
snapshot of the acting user and of the target record, so the log stays
readable after the target is deleted and is never rewritten when a user's
role changes later. Entries are flushed into the caller's unit of work; a
failure here (e.g. unknown actor) fails the whole mutation.
"""

from typing import Any, Dict, List, Optional, Sequence, Tuple, Union
import uuid

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import NotFoundError, PreconditionFailedError
from app.core.logging import logger
from app.models.activity import ActivityAction, ActivityLog, ActivitySource, TargetType
from app.models.base import utcnow
from app.models.user import User
from app.utils.diff import compute_changes, evaluate_flag
from app.utils.serialization import make_json_serializable

UNKNOWN_NAMES = {
    TargetType.BUDGET_ITEM: "Unknown Budget Item",
    TargetType.PROJECT: "Unknown Project",
    TargetType.BREAKDOWN: "Unknown Project",
    TargetType.REMARK: "Unknown Project",
}


class ActorSnapshot(BaseModel):
    """Identity of the acting user captured at action time."""

    id: uuid.UUID
    name: str
    email: str
    role: str


class ActivityConfig(BaseModel):
    """
    What to record for one action.

    snapshot is used for viewed/created/deleted records; previous_values and
    new_values for updates. identity overrides the denormalized search fields
    (target_name, implementing_office, ...) when the record itself does not
    carry them, e.g. a breakdown logged with its project's name.
    """

    action: ActivityAction
    target_id: Optional[Union[uuid.UUID, str]] = None
    snapshot: Optional[Dict[str, Any]] = None
    previous_values: Optional[Dict[str, Any]] = None
    new_values: Optional[Dict[str, Any]] = None
    identity: Optional[Dict[str, Any]] = None
    reason: Optional[str] = None
    batch_id: Optional[str] = None
    source: ActivitySource = ActivitySource.WEB_UI
    affected_aggregation_ids: Optional[List[Union[uuid.UUID, str]]] = None


class BulkRecord(BaseModel):
    """Per-record result of a bulk operation, logged as its own entry."""

    target_id: Optional[Union[uuid.UUID, str]] = None
    snapshot: Optional[Dict[str, Any]] = None
    previous_values: Optional[Dict[str, Any]] = None
    new_values: Optional[Dict[str, Any]] = None
    identity: Optional[Dict[str, Any]] = None
    affected_aggregation_ids: Optional[List[Union[uuid.UUID, str]]] = None


def serialize_for_json(obj: Any) -> Any:
    """
    Convert a snapshot to a JSON-serializable format.

    Args:
        obj: Object to serialize

    Returns:
        JSON-serializable representation of the object, or None
    """
    if obj is None:
        return None
    return make_json_serializable(obj)


def _str_or_none(value: Any) -> Optional[str]:
    return str(value) if value is not None else None


async def resolve_actor(db: AsyncSession, actor_id: uuid.UUID) -> ActorSnapshot:
    """
    Resolve the acting user's current display identity.

    Raises:
        NotFoundError: If the user does not exist
    """
    user = await db.get(User, actor_id)
    if user is None:
        logger.error(f"Actor {actor_id} not found, refusing to write audit entry")
        raise NotFoundError("User", actor_id, message="User not found for logging")
    return ActorSnapshot(
        id=user.id,
        name=user.full_name or "Unknown",
        email=user.email or "",
        role=user.role or "user",
    )


def _identity(
    target_type: TargetType,
    target_id: Optional[Union[uuid.UUID, str]],
    data: Dict[str, Any],
    overrides: Optional[Dict[str, Any]],
) -> Dict[str, Any]:
    identity = {
        "target_name": data.get("particulars") or UNKNOWN_NAMES[target_type],
        "implementing_office": data.get("implementing_office") or "Unknown Office",
        "budget_item_id": _str_or_none(data.get("budget_item_id")),
        "project_id": _str_or_none(data.get("project_id")),
        "district": data.get("district"),
        "municipality": data.get("municipality"),
        "barangay": data.get("barangay"),
    }
    if target_type == TargetType.BUDGET_ITEM:
        identity["budget_item_id"] = _str_or_none(target_id) or identity["budget_item_id"]
        identity["implementing_office"] = None
    elif target_type == TargetType.PROJECT:
        identity["project_id"] = _str_or_none(target_id) or identity["project_id"]
    if overrides:
        identity.update({key: make_json_serializable(value) for key, value in overrides.items()})
    return identity


def _build_entry(
    actor: ActorSnapshot,
    target_type: TargetType,
    config: ActivityConfig,
) -> ActivityLog:
    data = config.snapshot or config.new_values or config.previous_values or {}

    changed_fields: List[str] = []
    change_summary: Optional[Dict[str, Any]] = None
    flag_reason: Optional[str] = None
    if config.previous_values is not None and config.new_values is not None:
        change_set = compute_changes(config.previous_values, config.new_values)
        changed_fields = change_set.changed_fields
        if not change_set.change_summary.is_empty():
            change_summary = change_set.change_summary.model_dump(exclude_none=True)
        flag_reason = evaluate_flag(change_set, settings.aggregation.flag_budget_change_threshold)

    previous_values = config.previous_values
    new_values = config.new_values
    if config.snapshot is not None:
        if config.action in (ActivityAction.DELETED, ActivityAction.BULK_DELETED) and previous_values is None:
            previous_values = config.snapshot
        elif new_values is None and previous_values is None:
            new_values = config.snapshot

    affected = [str(i) for i in config.affected_aggregation_ids or []]

    return ActivityLog(
        target_type=target_type.value,
        action=config.action.value,
        target_id=_str_or_none(config.target_id),
        **_identity(target_type, config.target_id, data, config.identity),
        previous_values=serialize_for_json(previous_values),
        new_values=serialize_for_json(new_values),
        changed_fields=changed_fields or None,
        change_summary=change_summary,
        performed_by=actor.id,
        performed_by_name=actor.name,
        performed_by_email=actor.email,
        performed_by_role=actor.role,
        reason=config.reason,
        source=config.source.value,
        batch_id=config.batch_id,
        timestamp=utcnow(),
        is_flagged=flag_reason is not None,
        flag_reason=flag_reason,
        is_reviewed=False,
        triggered_aggregation_update=bool(affected),
        affected_aggregation_ids=affected or None,
    )


async def log_activity(
    db: AsyncSession,
    actor_id: uuid.UUID,
    target_type: TargetType,
    config: ActivityConfig,
) -> ActivityLog:
    """
    Append one activity entry.

    Args:
        db: Database session (the caller's unit of work)
        actor_id: UUID of the user performing the action
        target_type: Kind of record the action applies to
        config: What to record

    Returns:
        Created activity entry

    Raises:
        NotFoundError: If the actor does not exist
    """
    actor = await resolve_actor(db, actor_id)
    entry = _build_entry(actor, target_type, config)
    logger.debug(
        f"Creating activity log: {entry.action} on {entry.target_type} "
        f"{entry.target_id} by user {actor_id}"
    )
    db.add(entry)
    await db.flush()
    return entry


async def log_bulk(
    db: AsyncSession,
    actor_id: uuid.UUID,
    target_type: TargetType,
    action: ActivityAction,
    records: Sequence[BulkRecord],
    source: ActivitySource = ActivitySource.BULK_IMPORT,
    reason: Optional[str] = None,
    batch_id: Optional[str] = None,
) -> Tuple[str, List[ActivityLog]]:
    """
    Append one entry per record of a bulk operation, all sharing one batch id.

    Args:
        db: Database session
        actor_id: UUID of the user performing the action
        target_type: Kind of record
        action: One of the bulk_* actions
        records: Ordered per-record results (skipped records excluded)
        source: Origin of the batch
        reason: Free-text reason applied to every entry
        batch_id: Reuse an existing batch id instead of generating one

    Returns:
        The batch id and the created entries, in record order
    """
    actor = await resolve_actor(db, actor_id)
    batch_id = batch_id or uuid.uuid4().hex
    entries = []
    for record in records:
        config = ActivityConfig(
            action=action,
            target_id=record.target_id,
            snapshot=record.snapshot,
            previous_values=record.previous_values,
            new_values=record.new_values,
            identity=record.identity,
            reason=reason,
            batch_id=batch_id,
            source=source,
            affected_aggregation_ids=record.affected_aggregation_ids,
        )
        entry = _build_entry(actor, target_type, config)
        db.add(entry)
        entries.append(entry)
    await db.flush()
    logger.info(f"Logged {len(entries)} {action.value} entries for batch {batch_id}")
    return batch_id, entries


async def mark_reviewed(
    db: AsyncSession,
    activity_id: int,
    reviewer_id: uuid.UUID,
    review_notes: Optional[str] = None,
) -> ActivityLog:
    """
    Annotate an entry as reviewed. Only the review columns are touched.

    Raises:
        NotFoundError: If the entry or reviewer does not exist
        PreconditionFailedError: If the reviewer is not an administrator
    """
    entry = await db.get(ActivityLog, activity_id)
    if entry is None:
        raise NotFoundError("Activity", activity_id)
    reviewer = await db.get(User, reviewer_id)
    if reviewer is None:
        raise NotFoundError("User", reviewer_id)
    if not reviewer.is_admin:
        logger.warning(f"User {reviewer_id} attempted to review activity {activity_id} without admin role")
        raise PreconditionFailedError("Not authorized - administrator access required")

    entry.is_reviewed = True
    entry.reviewed_by = reviewer.id
    entry.reviewed_at = utcnow()
    entry.review_notes = review_notes
    await db.flush()
    logger.info(f"Activity {activity_id} reviewed by {reviewer_id}")
    return entry
