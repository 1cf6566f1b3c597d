# src/taskdeck/tasks/buckets.py

"""
Bucket classification.

Pure functions over (task, now). Called by the view on every render pass;
no side effects, identical inputs give identical outputs.

Rules, in order:
1. completed status        -> COMPLETED (due date ignored)
2. due day before today    -> OVERDUE
3. due day is today        -> DUE_TODAY
4. anything else           -> PENDING

"Day" is the calendar date in the viewer's local time: `now`'s timezone when
`now` is aware, the host's local zone when it is naive. Overdue needs a day
boundary to be crossed; an earlier clock time today is still DUE_TODAY.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime

from .task_models import Bucket, Task, TaskStatus

# Board column order.
BUCKET_ORDER: tuple[Bucket, ...] = (
    Bucket.DUE_TODAY,
    Bucket.PENDING,
    Bucket.COMPLETED,
    Bucket.OVERDUE,
)

BUCKET_TITLES: dict[Bucket, str] = {
    Bucket.DUE_TODAY: "Due Today",
    Bucket.PENDING: "Pending",
    Bucket.COMPLETED: "Completed",
    Bucket.OVERDUE: "Overdue",
}

_BUCKET_STATUS: dict[Bucket, TaskStatus] = {
    Bucket.COMPLETED: TaskStatus.COMPLETED,
    Bucket.DUE_TODAY: TaskStatus.PENDING,
    Bucket.PENDING: TaskStatus.PENDING,
    Bucket.OVERDUE: TaskStatus.PENDING,
}


def viewer_now(now: datetime) -> datetime:
    return now if now.tzinfo is not None else now.astimezone()


def in_viewer_frame(value: datetime, now: datetime) -> datetime:
    """`value` as an aware datetime in the viewer's zone; naive values are taken to be in that frame already."""
    tz = viewer_now(now).tzinfo
    if value.tzinfo is None:
        return value.replace(tzinfo=tz)
    return value.astimezone(tz)


def _viewer_dates(due: datetime, now: datetime) -> tuple[date, date]:
    return in_viewer_frame(due, now).date(), viewer_now(now).date()


def classify(task: Task, now: datetime) -> Bucket:
    if task.status == TaskStatus.COMPLETED:
        return Bucket.COMPLETED

    due_day, today = _viewer_dates(task.due_date, now)
    if due_day < today:
        return Bucket.OVERDUE
    if due_day == today:
        return Bucket.DUE_TODAY
    return Bucket.PENDING


def bucket_to_status(bucket: Bucket) -> TaskStatus:
    """Dropping into any non-completed bucket means "pending"; the bucket itself is a due-date artifact."""
    return _BUCKET_STATUS[Bucket(bucket)]


def group_by_bucket(tasks: Iterable[Task], now: datetime) -> dict[Bucket, list[Task]]:
    """All four buckets in column order, each with its tasks in input order."""
    out: dict[Bucket, list[Task]] = {b: [] for b in BUCKET_ORDER}
    for task in tasks:
        out[classify(task, now)].append(task)
    return out
