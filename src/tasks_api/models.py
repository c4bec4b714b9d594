from __future__ import annotations

import re
import secrets
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Mapping, Optional, TypedDict

from .errors import TaskValidationError

TITLE_MAX_LENGTH = 200

_TASK_ID_RE = re.compile(r"^[0-9a-f]{24}$")


# PUBLIC_INTERFACE
class Priority(str, Enum):
    """Allowed task priorities."""

    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


DEFAULT_PRIORITY = Priority.LOW


# PUBLIC_INTERFACE
class TaskEntity(TypedDict):
    """
    A lightweight domain model representing a Task record as held by the
    repositories.

    Fields:
    - id: 24 lowercase hex chars assigned by the store
    - title: Short title (1..200 chars, trimmed on input via schemas)
    - description: Optional detailed description
    - category: Optional free-form category
    - priority: One of High, Medium, Low
    - is_completed: Boolean completion flag
    - due_date: Optional due datetime
    - created_at: UTC creation timestamp
    - updated_at: UTC last update timestamp
    """

    id: str
    title: str
    description: Optional[str]
    category: Optional[str]
    priority: str
    is_completed: bool
    due_date: Optional[datetime]
    created_at: datetime
    updated_at: datetime


def new_task_id() -> str:
    return secrets.token_hex(12)


def is_valid_task_id(task_id: Any) -> bool:
    return isinstance(task_id, str) and bool(_TASK_ID_RE.match(task_id))


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def next_timestamp(previous: datetime) -> datetime:
    """
    Return the current UTC time, bumped past ``previous`` when the clock has
    not advanced (coarse clocks, back-to-back updates).
    """
    now = utc_now()
    if now <= previous:
        now = previous + timedelta(microseconds=1)
    return now


# PUBLIC_INTERFACE
def validate_entity(entity: Mapping[str, Any]) -> None:
    """
    Check the store constraints of a task record before it is written.

    Raises:
        TaskValidationError: title missing or empty, priority outside the
        enumeration, or created_at later than updated_at.
    """
    title = entity.get("title")
    if not isinstance(title, str) or not title.strip():
        raise TaskValidationError("title is required")
    if len(title) > TITLE_MAX_LENGTH:
        raise TaskValidationError(f"title must be at most {TITLE_MAX_LENGTH} characters")

    priority = entity.get("priority")
    if isinstance(priority, Priority):
        priority = priority.value
    if priority not in {p.value for p in Priority}:
        raise TaskValidationError(f"invalid priority: {priority!r}")

    if not isinstance(entity.get("is_completed"), bool):
        raise TaskValidationError("is_completed must be a boolean")

    created_at = entity.get("created_at")
    updated_at = entity.get("updated_at")
    if created_at is None or updated_at is None:
        raise TaskValidationError("created_at and updated_at are required")
    if created_at > updated_at:
        raise TaskValidationError("created_at must not be later than updated_at")
