from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .models import DEFAULT_PRIORITY, TITLE_MAX_LENGTH, Priority

# Shared type for incoming dueDate which can be a date, datetime, or ISO8601 string
DueDateInput = Union[date, datetime, str]


def _parse_due_date(value: Optional[DueDateInput]) -> Optional[datetime]:
    """
    Internal helper to normalize dueDate input into a datetime.
    - If value is a string, attempt to parse via datetime.fromisoformat; if time is missing, set to 00:00.
    - If value is a date (not datetime), convert to datetime at 00:00.
    - If value is a datetime, return as-is.
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        return value

    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, 0, 0, 0)

    if isinstance(value, str):
        s = value.strip()
        # JavaScript clients send a trailing 'Z'
        if s.endswith("Z"):
            s = s[:-1] + "+00:00"
        try:
            return datetime.fromisoformat(s)
        except ValueError:
            try:
                d = date.fromisoformat(s)
                return datetime(d.year, d.month, d.day, 0, 0, 0)
            except ValueError as e:
                raise ValueError(
                    "Invalid dueDate format. Use ISO8601 date or datetime string (e.g., '2025-01-31' or '2025-01-31T13:45:00')."
                ) from e

    raise ValueError("Invalid type for dueDate; expected date, datetime, or ISO8601 string.")


def _clean_title(v: str) -> str:
    s = v.strip()
    if not (1 <= len(s) <= TITLE_MAX_LENGTH):
        raise ValueError(f"title length must be between 1 and {TITLE_MAX_LENGTH} characters")
    return s


# Wire names are camelCase; snake_case names are accepted on input as well.
_WIRE_CONFIG = dict(alias_generator=to_camel, populate_by_name=True)

STORE_OWNED_FIELDS = frozenset({"id", "created_at", "updated_at"})


class _StoreOwnedFields(BaseModel):
    """
    Fields assigned by the store. Clients may echo them back with a Task they
    received; they are accepted and never written.
    """

    model_config = ConfigDict(**_WIRE_CONFIG, extra="forbid")

    id: Optional[str] = Field(default=None, exclude=True, description="Ignored; assigned by the store")
    created_at: Optional[datetime] = Field(default=None, exclude=True, description="Ignored; set by the store")
    updated_at: Optional[datetime] = Field(default=None, exclude=True, description="Ignored; set by the store")


# PUBLIC_INTERFACE
class TaskCreate(_StoreOwnedFields):
    """
    Schema for creating a new Task. Only ``title`` is required; store-owned
    fields are ignored and unknown fields are rejected.
    """

    model_config = ConfigDict(
        **_WIRE_CONFIG,
        extra="forbid",
        json_schema_extra={
            "example": {
                "title": "Buy milk",
                "description": "2 litres, semi-skimmed",
                "category": "Groceries",
                "priority": "Medium",
                "isCompleted": False,
                "dueDate": "2025-02-01",
            }
        },
    )

    title: str = Field(..., description="Short title for the task (1..200 chars after trimming)")
    description: Optional[str] = Field(default=None, description="Optional detailed description")
    category: Optional[str] = Field(default=None, description="Optional category label")
    priority: Priority = Field(default=DEFAULT_PRIORITY, description="High, Medium or Low")
    is_completed: bool = Field(default=False, description="Completion status flag")
    due_date: Optional[datetime] = Field(
        default=None,
        description="Due date/time of the task. Accepts ISO8601 date or datetime; dates are set to 00:00",
    )

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        """
        Strip whitespace and enforce 1..200 length.
        """
        return _clean_title(v)

    @field_validator("due_date", mode="before")
    @classmethod
    def parse_due_date(cls, v: Optional[DueDateInput]) -> Optional[datetime]:
        return _parse_due_date(v)


# PUBLIC_INTERFACE
class TaskUpdate(_StoreOwnedFields):
    """
    Schema for updating an existing Task.
    All fields are optional; only provided fields are written. Sending null
    clears description, category and dueDate; title, priority and isCompleted
    cannot be null.
    """

    model_config = ConfigDict(
        **_WIRE_CONFIG,
        extra="forbid",
        json_schema_extra={"example": {"isCompleted": True, "priority": "High"}},
    )

    title: Optional[str] = Field(default=None, description="Short title for the task (1..200 chars after trimming)")
    description: Optional[str] = Field(default=None, description="Optional detailed description")
    category: Optional[str] = Field(default=None, description="Optional category label")
    priority: Optional[Priority] = Field(default=None, description="High, Medium or Low")
    is_completed: Optional[bool] = Field(default=None, description="Completion status flag")
    due_date: Optional[datetime] = Field(
        default=None,
        description="Due date/time of the task. Accepts ISO8601 date or datetime; dates are set to 00:00",
    )

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: Optional[str]) -> str:
        if v is None:
            raise ValueError("title cannot be null")
        return _clean_title(v)

    @field_validator("priority", "is_completed")
    @classmethod
    def reject_null(cls, v):
        if v is None:
            raise ValueError("field cannot be null")
        return v

    @field_validator("due_date", mode="before")
    @classmethod
    def parse_due_date(cls, v: Optional[DueDateInput]) -> Optional[datetime]:
        return _parse_due_date(v)

    def changes(self) -> dict:
        """Return the fields the client actually sent, keyed by field name, minus store-owned ones."""
        return {name: getattr(self, name) for name in self.model_fields_set - STORE_OWNED_FIELDS}


# PUBLIC_INTERFACE
class TaskOut(BaseModel):
    """
    Schema returned by the API for a Task.
    """

    model_config = ConfigDict(
        **_WIRE_CONFIG,
        json_schema_extra={
            "example": {
                "id": "65a1f0c2e4b0a1b2c3d4e5f6",
                "title": "Buy milk",
                "description": None,
                "category": None,
                "priority": "Low",
                "isCompleted": False,
                "dueDate": None,
                "createdAt": "2025-01-25T10:15:30.123456Z",
                "updatedAt": "2025-01-25T10:15:30.123456Z",
            }
        },
    )

    id: str = Field(..., description="Unique identifier of the task")
    title: str = Field(..., description="Short title for the task")
    description: Optional[str] = Field(default=None, description="Optional detailed description")
    category: Optional[str] = Field(default=None, description="Optional category label")
    priority: Priority = Field(..., description="High, Medium or Low")
    is_completed: bool = Field(..., description="Completion status flag")
    due_date: Optional[datetime] = Field(default=None, description="Due date/time as an ISO8601 datetime")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")


# PUBLIC_INTERFACE
class MessageOut(BaseModel):
    """Plain acknowledgement body."""

    message: str = Field(..., description="Human readable status message")
