# tests/test_config.py

from __future__ import annotations

from pathlib import Path

from taskdeck.config import ReconnectPolicy, RetryPolicy, Settings
from taskdeck.tasks.task_models import TaskPriority


def test_settings_defaults(monkeypatch) -> None:
    for key in ("TASKDECK_API_BASE_URL", "TASKDECK_API_TOKEN", "TASKDECK_RECONNECT_ATTEMPTS", "TASKDECK_NOTIFY_PRIORITIES"):
        monkeypatch.delenv(key, raising=False)

    s = Settings.from_env()

    assert s.api_base_url == "http://localhost:5000"
    assert s.api_token is None
    assert s.reconnect_policy() == ReconnectPolicy()
    assert s.notification_preferences().priorities == frozenset({TaskPriority.HIGH, TaskPriority.MEDIUM})


def test_settings_from_env(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("TASKDECK_API_BASE_URL", "https://tasks.example.com/")
    monkeypatch.setenv("TASKDECK_API_TOKEN", "  secret  ")
    monkeypatch.setenv("TASKDECK_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("TASKDECK_RECONNECT_ATTEMPTS", "not-a-number")
    monkeypatch.setenv("TASKDECK_RECONNECT_BASE_DELAY", "0.25")
    monkeypatch.setenv("TASKDECK_NOTIFY_PRIORITIES", "high, bogus")
    monkeypatch.setenv("TASKDECK_OVERDUE_REMINDERS", "no")

    s = Settings.from_env()

    assert s.api_base_url == "https://tasks.example.com"
    assert s.api_token == "secret"
    assert s.data_dir == Path(tmp_path)
    assert s.reconnect_policy().max_attempts == 5
    assert s.reconnect_policy().base_delay == 0.25

    prefs = s.notification_preferences()
    assert prefs.priorities == frozenset({TaskPriority.HIGH})
    assert prefs.overdue_reminders is False


def test_backoff_doubles_and_caps() -> None:
    policy = ReconnectPolicy(base_delay=1.0, max_delay=5.0)
    assert [policy.delay_for(n) for n in range(1, 6)] == [1.0, 2.0, 4.0, 5.0, 5.0]
    assert RetryPolicy(base_delay=0.5).delay_for(3) == 2.0
