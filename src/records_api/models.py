from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import TypedDict

# Ids are stored as signed 64-bit integers
RECORD_ID_MIN = -(2**63)
RECORD_ID_MAX = 2**63 - 1


# PUBLIC_INTERFACE
def is_storable_id(record_id: int) -> bool:
    return RECORD_ID_MIN <= record_id <= RECORD_ID_MAX


# PUBLIC_INTERFACE
class RecordStatus(str, Enum):
    """Workflow state of a record."""

    TODO = "todo"
    IN_PROGRESS = "in_progress"
    DONE = "done"


# PUBLIC_INTERFACE
class RecordPriority(str, Enum):
    """Relative importance of a record."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# PUBLIC_INTERFACE
class RecordEntity(TypedDict):
    """
    A lightweight domain model representing a Record as held by the storage
    backends.

    Fields:
    - id: Unique integer identifier, never reused
    - title: Short title (1..100 chars, trimmed on input via schemas)
    - description: Detailed description (1..500 chars)
    - status: One of RecordStatus values
    - priority: One of RecordPriority values
    - created_at: Creation timestamp, immutable
    """

    id: int
    title: str
    description: str
    status: str
    priority: str
    created_at: datetime
