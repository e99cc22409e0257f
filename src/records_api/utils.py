from __future__ import annotations

from typing import Any, Dict, Optional

from .models import is_storable_id

INVALID_ID_MESSAGE = "Invalid record ID. Please provide a valid number."
NOT_FOUND_MESSAGE = "Record not found"


# PUBLIC_INTERFACE
def parse_record_id(raw: str) -> Optional[int]:
    """
    Parse a record id taken from the URL path.

    Only the canonical decimal form of an integer is accepted: "7" and "-1"
    parse, while "07", " 7", "7a", "1.0" and "1_000" do not. Values outside
    the signed 64-bit id range are rejected as well.

    Returns:
        The integer id, or None when the value is not a valid id.
    """
    try:
        parsed = int(raw)
    except ValueError:
        return None
    if str(parsed) != raw or not is_storable_id(parsed):
        return None
    return parsed


# PUBLIC_INTERFACE
def update_envelope(record: Any, message: str = "Record updated successfully") -> Dict[str, Any]:
    """
    Build the success envelope returned by the update endpoint.

    Args:
        record: The updated record (model or mapping).
        message: Human-readable outcome.

    Returns:
        Dict with keys: success, message, data.
    """
    return {"success": True, "message": message, "data": record}
