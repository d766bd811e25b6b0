"""
Breakdown status vocabulary.

Reports arrive with legacy spellings ("Completed", "On-Going", "On-Hold");
everything stored or counted goes through normalize_status() first.
"""

import re
from typing import Optional, Union

from app.core.logging import logger
from app.models.breakdown import BreakdownStatus

_STATUS_ALIASES = {
    "completed": BreakdownStatus.COMPLETED,
    "complete": BreakdownStatus.COMPLETED,
    "delayed": BreakdownStatus.DELAYED,
    "ongoing": BreakdownStatus.ONGOING,
    "on_going": BreakdownStatus.ONGOING,
    "on_hold": BreakdownStatus.ON_HOLD,
    "onhold": BreakdownStatus.ON_HOLD,
    "cancelled": BreakdownStatus.CANCELLED,
    "canceled": BreakdownStatus.CANCELLED,
}


def normalize_status(raw: Optional[Union[str, BreakdownStatus]]) -> Optional[BreakdownStatus]:
    """
    Map a breakdown status to the canonical vocabulary.

    Accepts the canonical lowercase values and the legacy report spellings.
    Unknown or empty values map to None and are not counted.
    """
    if raw is None:
        return None
    if isinstance(raw, BreakdownStatus):
        return raw
    key = re.sub(r"[\s\-]+", "_", raw.strip().lower())
    status = _STATUS_ALIASES.get(key)
    if status is None and key:
        logger.debug(f"Unrecognized breakdown status '{raw}', not counted")
    return status
