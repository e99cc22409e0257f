from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .models import RecordPriority, RecordStatus

TITLE_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 500


def _require_text(value: str, label: str, max_length: int) -> str:
    """
    Strip surrounding whitespace and enforce 1..max_length characters.
    """
    s = value.strip()
    if not s:
        raise ValueError(f"{label} is required")
    if len(s) > max_length:
        raise ValueError(f"{label} must be at most {max_length} characters")
    return s


# PUBLIC_INTERFACE
class RecordCreate(BaseModel):
    """
    Schema for the mutable fields of a Record.

    Used both for creation and for full updates: an update replaces every
    field, so omitted status/priority fall back to their defaults.
    """

    model_config = ConfigDict(
        use_enum_values=True,
        validate_default=True,
        json_schema_extra={
            "example": {
                "title": "Buy milk",
                "description": "Two litres, semi-skimmed",
                "status": "todo",
                "priority": "medium",
            }
        },
    )

    title: str = Field(..., description="Short title for the record")
    description: str = Field(..., description="Detailed description of the record")
    status: RecordStatus = Field(default=RecordStatus.TODO, description="Workflow state")
    priority: RecordPriority = Field(default=RecordPriority.MEDIUM, description="Priority level")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        return _require_text(v, "Title", TITLE_MAX_LENGTH)

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: str) -> str:
        return _require_text(v, "Description", DESCRIPTION_MAX_LENGTH)


# PUBLIC_INTERFACE
class RecordOut(BaseModel):
    """
    Schema returned by the API for a Record.

    Timestamps are serialized under the camelCase key ``createdAt`` that the
    browser client reads.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "id": 1,
                "title": "Buy milk",
                "description": "Two litres, semi-skimmed",
                "status": "todo",
                "priority": "medium",
                "createdAt": "2025-01-25T10:15:30.123456",
            }
        },
    )

    id: int = Field(..., description="Unique identifier of the record")
    title: str = Field(..., description="Short title for the record")
    description: str = Field(..., description="Detailed description of the record")
    status: RecordStatus = Field(..., description="Workflow state")
    priority: RecordPriority = Field(..., description="Priority level")
    created_at: datetime = Field(..., alias="createdAt", description="Creation timestamp")


# PUBLIC_INTERFACE
class RecordUpdateEnvelope(BaseModel):
    """
    Envelope returned by a successful PATCH.
    """

    success: bool = Field(True, description="Always true for a successful update")
    message: str = Field("Record updated successfully", description="Human-readable outcome")
    data: RecordOut = Field(..., description="The record after the update")


# PUBLIC_INTERFACE
class ErrorMessage(BaseModel):
    """
    Body of 400/404/500 responses.
    """

    message: str = Field(..., description="Human-readable error message")
