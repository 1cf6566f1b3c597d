# src/taskdeck/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Any

from ..errors import ValidationError


class TaskStatus(StrEnum):
    """
    Persisted task status.

    Notes:
    - Only these two values are ever stored. "overdue" / "dueToday" are derived
      display buckets (see buckets.py) and must never be written back.
    """

    PENDING = "pending"
    COMPLETED = "completed"

    @classmethod
    def parse(cls, raw: Any) -> TaskStatus:
        try:
            return cls(str(raw))
        except ValueError:
            raise ValidationError(f"invalid task status: {raw!r}") from None


class TaskPriority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def parse(cls, raw: Any) -> TaskPriority:
        try:
            return cls(str(raw))
        except ValueError:
            raise ValidationError(f"invalid task priority: {raw!r}") from None


class Bucket(StrEnum):
    """View-only classification; recomputed on every render, never persisted."""

    DUE_TODAY = "dueToday"
    PENDING = "pending"
    COMPLETED = "completed"
    OVERDUE = "overdue"


@dataclass(slots=True, frozen=True)
class Task:
    id: str
    title: str
    priority: TaskPriority
    due_date: datetime
    status: TaskStatus

    description: str | None = None
    ai_suggestions: tuple[str, ...] = ()


def parse_datetime(raw: Any) -> datetime:
    """
    Parse an ISO 8601 instant as sent by the backend ("...Z" included).

    The result is always aware: a value without an offset is read as local
    time of this host (the viewer), so decoded tasks and notifications can be
    compared and sorted against each other.
    """
    if isinstance(raw, datetime):
        value = raw
    else:
        if not isinstance(raw, str) or not raw.strip():
            raise ValidationError(f"invalid datetime: {raw!r}")
        s = raw.strip()
        if s.endswith("Z"):
            s = s[:-1] + "+00:00"
        try:
            value = datetime.fromisoformat(s)
        except ValueError:
            raise ValidationError(f"invalid datetime: {raw!r}") from None

    if value.tzinfo is None:
        value = value.astimezone()
    return value


def format_datetime(value: datetime) -> str:
    return value.isoformat()


def task_from_json(data: Any) -> Task:
    """Decode a task object from the REST API."""
    if not isinstance(data, dict):
        raise ValidationError("task payload must be an object")

    task_id = data.get("_id", data.get("id"))
    if task_id is None or str(task_id).strip() == "":
        raise ValidationError("task payload is missing an id")

    title = data.get("title")
    if not isinstance(title, str):
        raise ValidationError(f"task {task_id}: title must be a string")

    description = data.get("description")
    suggestions = data.get("aiSuggestions") or []
    if not isinstance(suggestions, list):
        suggestions = []

    return Task(
        id=str(task_id),
        title=title,
        priority=TaskPriority.parse(data.get("priority", TaskPriority.MEDIUM.value)),
        due_date=parse_datetime(data.get("dueDate")),
        status=TaskStatus.parse(data.get("status", TaskStatus.PENDING.value)),
        description=str(description) if description is not None else None,
        ai_suggestions=tuple(str(s) for s in suggestions),
    )


# Fields a client may send on create/update. "status" is validated separately.
_WRITABLE_FIELDS = {"title", "description", "priority", "dueDate", "status"}


def task_fields_to_json(fields: dict[str, Any]) -> dict[str, Any]:
    """
    Validate and encode create/update fields for the REST API.

    Accepts API names (dueDate) or attribute names (due_date).
    Raises ValidationError for unknown fields or a derived status like "overdue".
    """
    out: dict[str, Any] = {}
    for key, value in fields.items():
        name = "dueDate" if key == "due_date" else key
        if name not in _WRITABLE_FIELDS:
            raise ValidationError(f"unknown task field: {key}")

        if name == "status":
            out[name] = TaskStatus.parse(value).value
        elif name == "priority":
            out[name] = TaskPriority.parse(value).value
        elif name == "dueDate":
            out[name] = format_datetime(parse_datetime(value))
        elif name == "title":
            if not isinstance(value, str) or not value.strip():
                raise ValidationError("title is required")
            out[name] = value.strip()
        else:
            out[name] = value
    return out
