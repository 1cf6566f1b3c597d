# src/taskdeck/core/session.py

"""
One authenticated session.

Owns the realtime channel for its lifetime (start() .. close()) and routes
channel events into the two caches:
- task created/updated/deleted -> full task refetch (invalidation, never a patch),
- notification                 -> NotificationSynchronizer.ingest_push,
- reconnected                  -> full task + notification refetch, so nothing
                                  pushed while the channel was down is lost.

Credential invalidation forces the channel closed.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from typing import assert_never

from ..errors import AuthError, NetworkError, TaskdeckError
from ..notifications.models import Notification
from ..notifications.sync import NotificationSynchronizer
from ..realtime.channel import ChannelManager, EventStream
from ..realtime.events import (
    ChannelEvent,
    ChannelFailed,
    ChannelStreaming,
    NotificationReceived,
    TaskCreated,
    TaskDeleted,
    TaskUpdated,
)
from ..tasks.coordinator import MutationCoordinator
from .ports import CredentialProvider

logger = logging.getLogger(__name__)

NotificationCallback = Callable[[Notification], None]


class Session:
    def __init__(
        self,
        *,
        coordinator: MutationCoordinator,
        notifications: NotificationSynchronizer,
        channel: ChannelManager,
        credentials: CredentialProvider,
        on_notification: NotificationCallback | None = None,
        on_close: Callable[[], object] | None = None,
    ) -> None:
        self.coordinator = coordinator
        self.notifications = notifications
        self.channel = channel
        self.credentials = credentials
        self.on_notification = on_notification
        self._on_close = on_close

        self._stream: EventStream | None = None
        self._consumer: asyncio.Task | None = None
        self._auth_watch: asyncio.Task | None = None
        self.last_error: TaskdeckError | None = None

    async def sync(self) -> None:
        """Refetch both snapshots."""
        await self.coordinator.refresh()
        await self.notifications.refresh()

    async def start(self) -> None:
        await self.sync()

        # Subscribe before the channel can publish anything.
        self._stream = self.channel.events()
        self._consumer = asyncio.create_task(self._consume(self._stream), name="taskdeck-session-events")
        self._auth_watch = asyncio.create_task(self._watch_credentials(), name="taskdeck-session-auth")

        try:
            await self.channel.start()
        except BaseException:
            await self._cancel_background()
            raise
        logger.info("Session started: %d tasks, %d unread", len(self.coordinator.tasks()), self.notifications.unread_count)

    async def close(self) -> None:
        await self.channel.close()

        if self._auth_watch is not None:
            self._auth_watch.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._auth_watch
            self._auth_watch = None

        if self._consumer is not None:
            # channel.close() ends the stream; the consumer drains and exits.
            with contextlib.suppress(asyncio.CancelledError):
                await self._consumer
            self._consumer = None

        if self._on_close is not None:
            result = self._on_close()
            if asyncio.iscoroutine(result):
                await result
        logger.info("Session closed")

    async def _cancel_background(self) -> None:
        tasks = [t for t in (self._auth_watch, self._consumer) if t is not None]
        self._auth_watch = self._consumer = None
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        if self._stream is not None:
            self._stream.close()
            self._stream = None

    async def _watch_credentials(self) -> None:
        await self.credentials.wait_invalidated()
        logger.warning("Credential invalidated; closing realtime channel")
        self.last_error = AuthError("credential invalidated")
        await self.channel.close()

    async def _consume(self, stream: EventStream) -> None:
        async with stream:
            async for event in stream:
                try:
                    await self.handle_event(event)
                except NetworkError:
                    # Transient; the next invalidation or reconnect refetches again.
                    logger.warning("Refetch after %s failed", type(event).__name__, exc_info=True)
                except TaskdeckError as e:
                    self.last_error = e
                    logger.exception("Realtime event handling failed: %s", type(event).__name__)
                except Exception:
                    # A broken callback must not stop the only event consumer.
                    logger.exception("Unexpected error while handling %s", type(event).__name__)

    async def handle_event(self, event: ChannelEvent) -> None:
        if isinstance(event, NotificationReceived):
            if self.notifications.ingest_push(event.notification) and self.on_notification is not None:
                self.on_notification(event.notification)
        elif isinstance(event, (TaskCreated, TaskUpdated, TaskDeleted)):
            logger.debug("%s %s -> refetch", type(event).__name__, event.task_id)
            await self.coordinator.refresh()
        elif isinstance(event, ChannelStreaming):
            if event.reconnected:
                logger.info("Realtime reconnected; resyncing")
                await self.sync()
        elif isinstance(event, ChannelFailed):
            self.last_error = event.error
            logger.error("Realtime channel failed: %s", event.error)
        else:
            assert_never(event)
