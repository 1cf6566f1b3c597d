# src/taskdeck/notifications/models.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Any

from ..errors import ValidationError
from ..tasks.task_models import parse_datetime


class NotificationType(StrEnum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"
    OVERDUE = "overdue"


@dataclass(slots=True, frozen=True)
class Notification:
    id: str
    message: str
    type: NotificationType
    read: bool
    created_at: datetime
    related_tasks: tuple[str, ...] = ()


def _related_ids(raw: Any) -> tuple[str, ...]:
    if not isinstance(raw, list):
        return ()
    out: list[str] = []
    for item in raw:
        # References come either as bare ids or as populated task objects.
        if isinstance(item, dict):
            ref = item.get("_id", item.get("id"))
            if ref is not None:
                out.append(str(ref))
        elif item is not None:
            out.append(str(item))
    return tuple(out)


def notification_from_json(data: Any) -> Notification:
    if not isinstance(data, dict):
        raise ValidationError("notification payload must be an object")

    nid = data.get("_id", data.get("id"))
    if nid is None or str(nid).strip() == "":
        raise ValidationError("notification payload is missing an id")

    raw_type = data.get("type", NotificationType.INFO.value)
    try:
        ntype = NotificationType(str(raw_type))
    except ValueError:
        raise ValidationError(f"notification {nid}: invalid type {raw_type!r}") from None

    return Notification(
        id=str(nid),
        message=str(data.get("message") or ""),
        type=ntype,
        read=bool(data.get("read", False)),
        created_at=parse_datetime(data.get("createdAt")),
        related_tasks=_related_ids(data.get("relatedTasks")),
    )
