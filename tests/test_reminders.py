# tests/test_reminders.py

from __future__ import annotations

from datetime import datetime, timedelta

from taskdeck.config import NotificationPreferences
from taskdeck.tasks.reminders import upcoming_reminders
from taskdeck.tasks.task_models import TaskPriority, TaskStatus, task_from_json

from .conftest import make_task


def test_reminders_pick_enabled_priorities_within_horizon(now) -> None:
    tasks = [
        make_task("soon-high", due=now + timedelta(hours=3), priority=TaskPriority.HIGH),
        make_task("soon-low", due=now + timedelta(hours=2), priority=TaskPriority.LOW),
        make_task("later", due=now + timedelta(hours=30), priority=TaskPriority.HIGH),
        make_task("sooner-med", due=now + timedelta(hours=1), priority=TaskPriority.MEDIUM),
        make_task("done", due=now + timedelta(hours=1), status=TaskStatus.COMPLETED),
    ]

    out = upcoming_reminders(tasks, now, NotificationPreferences())

    assert [t.id for t in out] == ["sooner-med", "soon-high"]


def test_overdue_tasks_follow_preference(now) -> None:
    late = make_task("late", due=now - timedelta(days=2), priority=TaskPriority.HIGH)

    assert [t.id for t in upcoming_reminders([late], now, NotificationPreferences())] == ["late"]
    assert upcoming_reminders([late], now, NotificationPreferences(overdue_reminders=False)) == []


def test_disabled_preferences_return_nothing(now) -> None:
    task = make_task(due=now + timedelta(hours=1), priority=TaskPriority.HIGH)
    assert upcoming_reminders([task], now, NotificationPreferences(enabled=False)) == []


def test_custom_horizon_and_priorities(now) -> None:
    prefs = NotificationPreferences(priorities=frozenset({TaskPriority.LOW}), reminder_hours=48)
    tasks = [
        make_task("low", due=now + timedelta(hours=40), priority=TaskPriority.LOW),
        make_task("high", due=now + timedelta(hours=1), priority=TaskPriority.HIGH),
    ]
    assert [t.id for t in upcoming_reminders(tasks, now, prefs)] == ["low"]


def test_offsetless_due_date_mixes_with_aware_ones(now) -> None:
    decoded = task_from_json(
        {"_id": "x", "title": "No offset", "priority": "high", "status": "pending", "dueDate": "2024-05-15T12:00:00"}
    )
    aware = make_task("aware", due=now + timedelta(hours=1), priority=TaskPriority.HIGH)

    out = upcoming_reminders([decoded, aware], now, NotificationPreferences())

    assert decoded.due_date.tzinfo is not None
    assert {t.id for t in out} == {"x", "aware"}


def test_naive_due_date_sorts_in_viewer_frame(now) -> None:
    naive = make_task("naive", due=datetime(2024, 5, 15, 20, 0), priority=TaskPriority.HIGH)
    aware = make_task("aware", due=now + timedelta(hours=1), priority=TaskPriority.HIGH)

    out = upcoming_reminders([naive, aware], now, NotificationPreferences())

    assert [t.id for t in out] == ["aware", "naive"]
