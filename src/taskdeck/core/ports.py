# src/taskdeck/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
This keeps the REST backend, the realtime transport and the auth provider
swappable and makes testing easier.
"""

from typing import Any, Protocol

from ..notifications.models import Notification
from ..tasks.task_models import Task, TaskStatus


class TaskRepo(Protocol):
    """Authoritative task storage (the backend). Failures raise taskdeck.errors types."""

    async def list(self) -> list[Task]: ...
    async def create(self, fields: dict[str, Any]) -> Task: ...
    async def update(self, task_id: str, fields: dict[str, Any]) -> Task: ...
    async def patch_status(self, task_id: str, status: TaskStatus) -> Task: ...
    async def delete(self, task_id: str) -> None: ...


class NotificationRepo(Protocol):
    async def list(self) -> list[Notification]: ...
    async def mark_read(self, notification_id: str) -> None: ...


class CredentialProvider(Protocol):
    """
    Auth collaborator.

    The core never issues or refreshes credentials; it only reads the current one,
    reports a rejection, and reacts when the provider invalidates it.
    """

    def current_credential(self) -> str | None: ...
    def report_rejected(self, error: Exception) -> None: ...
    async def wait_invalidated(self) -> None: ...


class TransportConnection(Protocol):
    """
    One open realtime connection carrying text frames.

    recv() raises TransportClosed when the peer closes and NetworkError on failure.
    """

    async def send(self, text: str) -> None: ...
    async def recv(self) -> str: ...
    async def close(self) -> None: ...


class TransportConnector(Protocol):
    async def connect(self, url: str) -> TransportConnection: ...


class ReadBroadcaster(Protocol):
    """Where the notification synchronizer announces reads to the account's other clients."""

    async def send_notification_read(self, notification_id: str) -> bool: ...
