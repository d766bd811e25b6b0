import json
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from uuid import UUID
from typing import Any

def make_json_serializable(data: Any) -> Any:
    """
    Recursively convert non-serializable values (UUID, Decimal, datetime, Enum) to JSON-serializable formats.
    """
    if isinstance(data, dict):
        return {str(k): make_json_serializable(v) for k, v in data.items()}
    elif isinstance(data, (list, tuple, set)):
        return [make_json_serializable(v) for v in data]
    elif isinstance(data, Enum):
        return data.value
    elif isinstance(data, UUID):
        return str(data)
    elif isinstance(data, Decimal):
        return float(data)
    elif isinstance(data, (datetime, date)):
        return data.isoformat()
    return data


def canonical_json(data: Any) -> str:
    """Serialize a value deterministically so equal structures give equal strings."""
    return json.dumps(make_json_serializable(data), sort_keys=True, separators=(",", ":"))
