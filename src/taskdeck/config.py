# src/taskdeck/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object built by the composition root (cli/bootstrap.py).
- No secrets required at import time.
- Components never read settings themselves; they receive the small policy
  structs below (ReconnectPolicy, RetryPolicy, NotificationPreferences).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from .tasks.task_models import TaskPriority

ENV_PREFIX = "TASKDECK"

load_dotenv(override=False)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_optional(name: str) -> str | None:
    v = os.getenv(name)
    if v is None or v.strip() == "":
        return None
    return v.strip()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_list(name: str, default: list[str]) -> list[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    return [p.strip() for p in raw.replace(",", " ").split() if p.strip()]


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class ReconnectPolicy:
    """
    Realtime reconnect budget.

    Defaults: 5 consecutive attempts, 1s base delay doubling per attempt,
    capped at 30s; 10s to answer the credential handshake.
    """

    max_attempts: int = 5
    base_delay: float = 1.0
    max_delay: float = 30.0
    handshake_timeout: float = 10.0

    def delay_for(self, attempt: int) -> float:
        """Delay before reconnect `attempt` (1-based)."""
        n = max(1, int(attempt))
        return min(self.max_delay, self.base_delay * (2 ** (n - 1)))


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Retry budget for idempotent HTTP reads. Defaults: 3 attempts, 0.5s doubling."""

    attempts: int = 3
    base_delay: float = 0.5

    def delay_for(self, attempt: int) -> float:
        n = max(1, int(attempt))
        return self.base_delay * (2 ** (n - 1))


@dataclass(frozen=True, slots=True)
class NotificationPreferences:
    """
    Reminder preferences.

    Defaults follow the dashboard's: enabled, high+medium priority only,
    24h look-ahead, overdue reminders on.
    """

    enabled: bool = True
    priorities: frozenset[TaskPriority] = field(
        default_factory=lambda: frozenset({TaskPriority.HIGH, TaskPriority.MEDIUM})
    )
    reminder_hours: int = 24
    overdue_reminders: bool = True


def _parse_priorities(raw: list[str]) -> frozenset[TaskPriority]:
    out: set[TaskPriority] = set()
    for item in raw:
        try:
            out.add(TaskPriority(item.strip().lower()))
        except ValueError:
            continue
    return frozenset(out)


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str
    data_dir: Path

    # ---- Backend ----
    api_base_url: str
    realtime_url: str
    api_token: str | None

    # ---- HTTP ----
    http_timeout_seconds: float
    http_retry_attempts: int
    http_retry_base_delay: float

    # ---- Realtime ----
    reconnect_attempts: int
    reconnect_base_delay: float
    reconnect_max_delay: float
    handshake_timeout: float

    # ---- Reminders ----
    notify_enabled: bool
    notify_priorities: list[str]
    reminder_hours: int
    overdue_reminders: bool

    @staticmethod
    def from_env() -> "Settings":
        return Settings(
            app_name=_env(_k("APP_NAME"), "taskdeck"),
            log_level=_env(_k("LOG_LEVEL"), "INFO"),
            data_dir=_env_path(_k("DATA_DIR"), Path(".local/taskdeck")),
            api_base_url=_env(_k("API_BASE_URL"), "http://localhost:5000").rstrip("/"),
            realtime_url=_env(_k("REALTIME_URL"), "ws://localhost:5000/ws"),
            api_token=_env_optional(_k("API_TOKEN")),
            http_timeout_seconds=_env_float(_k("HTTP_TIMEOUT_SECONDS"), 10.0),
            http_retry_attempts=_env_int(_k("HTTP_RETRY_ATTEMPTS"), 3),
            http_retry_base_delay=_env_float(_k("HTTP_RETRY_BASE_DELAY"), 0.5),
            reconnect_attempts=_env_int(_k("RECONNECT_ATTEMPTS"), 5),
            reconnect_base_delay=_env_float(_k("RECONNECT_BASE_DELAY"), 1.0),
            reconnect_max_delay=_env_float(_k("RECONNECT_MAX_DELAY"), 30.0),
            handshake_timeout=_env_float(_k("HANDSHAKE_TIMEOUT"), 10.0),
            notify_enabled=_env_bool(_k("NOTIFY_ENABLED"), True),
            notify_priorities=_env_list(_k("NOTIFY_PRIORITIES"), ["high", "medium"]),
            reminder_hours=_env_int(_k("REMINDER_HOURS"), 24),
            overdue_reminders=_env_bool(_k("OVERDUE_REMINDERS"), True),
        )

    def reconnect_policy(self) -> ReconnectPolicy:
        return ReconnectPolicy(
            max_attempts=max(0, self.reconnect_attempts),
            base_delay=max(0.0, self.reconnect_base_delay),
            max_delay=max(0.0, self.reconnect_max_delay),
            handshake_timeout=max(0.1, self.handshake_timeout),
        )

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            attempts=max(1, self.http_retry_attempts),
            base_delay=max(0.0, self.http_retry_base_delay),
        )

    def notification_preferences(self) -> NotificationPreferences:
        return NotificationPreferences(
            enabled=self.notify_enabled,
            priorities=_parse_priorities(self.notify_priorities),
            reminder_hours=max(0, self.reminder_hours),
            overdue_reminders=self.overdue_reminders,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
