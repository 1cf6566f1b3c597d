# src/taskdeck/tasks/reminders.py

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timedelta

from ..config import NotificationPreferences
from .buckets import classify, in_viewer_frame, viewer_now
from .task_models import Bucket, Task, TaskStatus


def upcoming_reminders(
    tasks: Iterable[Task],
    now: datetime,
    prefs: NotificationPreferences,
) -> list[Task]:
    """
    Pending tasks worth a reminder right now, soonest due first.

    - due within prefs.reminder_hours from now, with an enabled priority
    - plus overdue tasks (any priority enabled) when prefs.overdue_reminders is set
    """
    if not prefs.enabled:
        return []

    horizon = viewer_now(now) + timedelta(hours=prefs.reminder_hours)
    out: list[Task] = []

    for task in tasks:
        if task.status != TaskStatus.PENDING or task.priority not in prefs.priorities:
            continue

        if classify(task, now) == Bucket.OVERDUE:
            if prefs.overdue_reminders:
                out.append(task)
            continue

        if in_viewer_frame(task.due_date, now) <= horizon:
            out.append(task)

    out.sort(key=lambda t: in_viewer_frame(t.due_date, now))
    return out
