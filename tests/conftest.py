# tests/conftest.py

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from taskdeck.config import ReconnectPolicy
from taskdeck.core.auth import TokenCredentials
from taskdeck.core.session import Session
from taskdeck.notifications.models import Notification, NotificationType
from taskdeck.notifications.sync import NotificationSynchronizer
from taskdeck.realtime.channel import ChannelManager
from taskdeck.tasks.coordinator import MutationCoordinator
from taskdeck.tasks.task_models import Task, TaskPriority, TaskStatus

from .fakes import FakeConnector, FakeNotificationStore, FakeTaskStore, RecordingSleep

# A fixed viewer zone keeps calendar-day tests independent of the host TZ.
VIEWER_TZ = timezone(timedelta(hours=2))


@pytest.fixture()
def now() -> datetime:
    return datetime(2024, 5, 15, 8, 0, tzinfo=VIEWER_TZ)


def make_task(
    task_id: str = "t1",
    *,
    due: datetime,
    status: TaskStatus = TaskStatus.PENDING,
    priority: TaskPriority = TaskPriority.MEDIUM,
    title: str | None = None,
) -> Task:
    return Task(
        id=task_id,
        title=title or f"Task {task_id}",
        priority=priority,
        due_date=due,
        status=status,
    )


def make_notification(
    nid: str,
    *,
    read: bool = False,
    created_at: datetime | None = None,
    message: str | None = None,
) -> Notification:
    return Notification(
        id=nid,
        message=message or f"notification {nid}",
        type=NotificationType.INFO,
        read=read,
        created_at=created_at or datetime(2024, 5, 15, 7, 0, tzinfo=VIEWER_TZ),
    )


@pytest.fixture()
def task_store(now: datetime) -> FakeTaskStore:
    return FakeTaskStore(
        [
            make_task("a", due=now + timedelta(days=2)),
            make_task("b", due=now.replace(hour=23, minute=59)),
            make_task("c", due=now - timedelta(days=1), status=TaskStatus.COMPLETED),
        ]
    )


@pytest.fixture()
def coordinator(task_store: FakeTaskStore, now: datetime) -> MutationCoordinator:
    return MutationCoordinator(task_store, clock=lambda: now)


@pytest.fixture()
def note_store() -> FakeNotificationStore:
    return FakeNotificationStore([make_notification("n1"), make_notification("n2", read=True)])


@pytest.fixture()
def credentials() -> TokenCredentials:
    return TokenCredentials("tok")


@pytest.fixture()
def connector() -> FakeConnector:
    return FakeConnector()


@pytest.fixture()
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture()
def channel(connector: FakeConnector, credentials: TokenCredentials, recording_sleep: RecordingSleep) -> ChannelManager:
    return ChannelManager(
        connector,
        credentials,
        url="ws://test/ws",
        policy=ReconnectPolicy(max_attempts=3, base_delay=1.0, max_delay=4.0, handshake_timeout=0.2),
        sleep=recording_sleep,
    )


@pytest.fixture()
def session(
    coordinator: MutationCoordinator,
    note_store: FakeNotificationStore,
    channel: ChannelManager,
    credentials: TokenCredentials,
) -> Session:
    return Session(
        coordinator=coordinator,
        notifications=NotificationSynchronizer(note_store, broadcaster=channel),
        channel=channel,
        credentials=credentials,
    )
