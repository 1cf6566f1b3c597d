# src/taskdeck/realtime/channel.py

from __future__ import annotations

"""
Realtime channel manager.

One persistent connection per authenticated session:

    disconnected -> connecting -> awaiting_auth -> streaming
                        ^                              |
                        +------- reconnecting <--------+  (drop / server-ended session)

- close() is terminal from any state: no further reconnection.
- A transport drop or a server-initiated session end reconnects after
  ReconnectPolicy.delay_for(n), for at most max_attempts consecutive failures.
- A rejected or missing credential is fatal: the channel tears down, reports to
  the CredentialProvider and publishes ChannelFailed.

Consumers read typed events through `events()`; leaving the stream (end of
`async with`, cancellation, or channel close) unsubscribes it.
"""

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable
from enum import StrEnum
from typing import assert_never

from ..config import ReconnectPolicy
from ..core.ports import CredentialProvider, TransportConnection, TransportConnector
from ..errors import AuthError, NetworkError, ProtocolError, TaskdeckError, TransportClosed
from .events import (
    AuthAccepted,
    AuthRejected,
    ChannelEvent,
    ChannelFailed,
    ChannelStreaming,
    NotificationReceived,
    ServerMessage,
    SessionTerminated,
    TaskCreated,
    TaskDeleted,
    TaskUpdated,
    decode_server_message,
    encode_authenticate,
    encode_notification_read,
)

logger = logging.getLogger(__name__)


class ChannelState(StrEnum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    AWAITING_AUTH = "awaiting_auth"
    STREAMING = "streaming"
    RECONNECTING = "reconnecting"


_END = object()


class EventStream:
    """
    One subscriber's view of the channel's events.

    Registered on creation; unregistered when iteration ends, when the
    awaiting task is cancelled, or on leaving `async with`.
    """

    def __init__(self, subscribers: set[asyncio.Queue]) -> None:
        self._subscribers = subscribers
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False
        subscribers.add(self._queue)

    def close(self) -> None:
        self._closed = True
        self._subscribers.discard(self._queue)

    @property
    def closed(self) -> bool:
        return self._closed

    def __aiter__(self) -> EventStream:
        return self

    async def __anext__(self) -> ChannelEvent:
        if self._closed and self._queue.empty():
            raise StopAsyncIteration
        try:
            item = await self._queue.get()
        except asyncio.CancelledError:
            self.close()
            raise
        if item is _END:
            self.close()
            raise StopAsyncIteration
        return item

    async def __aenter__(self) -> EventStream:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.close()


class ChannelManager:
    def __init__(
        self,
        connector: TransportConnector,
        credentials: CredentialProvider,
        *,
        url: str,
        policy: ReconnectPolicy | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._connector = connector
        self._credentials = credentials
        self._url = url
        self._policy = policy or ReconnectPolicy()
        self._sleep = sleep

        self._state = ChannelState.DISCONNECTED
        self._state_changed = asyncio.Event()
        self._closed = False

        self._conn: TransportConnection | None = None
        self._runner: asyncio.Task | None = None
        self._subscribers: set[asyncio.Queue] = set()

        self._streamed_once = False
        self._reached_streaming = False
        self.last_error: TaskdeckError | None = None

    # ---- public API ----

    @property
    def state(self) -> ChannelState:
        return self._state

    @property
    def closed(self) -> bool:
        return self._closed

    def events(self) -> EventStream:
        stream = EventStream(self._subscribers)
        if self._closed:
            # Nothing will ever be published again; the stream ends immediately.
            stream.close()
        return stream

    async def wait_for_state(self, *states: ChannelState) -> ChannelState:
        while self._state not in states:
            changed = self._state_changed
            await changed.wait()
        return self._state

    async def start(self) -> None:
        """Open the channel. An already active connection is torn down first."""
        if self._closed:
            raise TaskdeckError("realtime channel is closed")

        if self._runner is not None and not self._runner.done():
            logger.info("Realtime channel restart: tearing down the active connection")
        await self._stop_runner()

        self.last_error = None
        self._set_state(ChannelState.CONNECTING)
        self._runner = asyncio.create_task(self._run(), name="taskdeck-realtime")

    async def close(self) -> None:
        """Client-initiated close. Terminal."""
        if self._closed:
            return
        self._closed = True

        await self._stop_runner()
        self._set_state(ChannelState.DISCONNECTED)

        for queue in list(self._subscribers):
            queue.put_nowait(_END)
        logger.info("Realtime channel closed")

    async def send_notification_read(self, notification_id: str) -> bool:
        """Tell the account's other clients a notification was read. False when not streaming."""
        conn = self._conn
        if self._state != ChannelState.STREAMING or conn is None:
            logger.debug("Not streaming; notificationRead %s not sent", notification_id)
            return False
        await conn.send(encode_notification_read(notification_id))
        return True

    # ---- internals ----

    def _set_state(self, state: ChannelState) -> None:
        if state == self._state:
            return
        logger.debug("Realtime state %s -> %s", self._state.value, state.value)
        self._state = state
        self._state_changed.set()
        self._state_changed = asyncio.Event()

    def _publish(self, event: ChannelEvent) -> None:
        for queue in list(self._subscribers):
            queue.put_nowait(event)

    async def _stop_runner(self) -> None:
        runner, self._runner = self._runner, None
        if runner is not None and not runner.done():
            runner.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await runner
        await self._drop_connection()

    async def _drop_connection(self) -> None:
        conn, self._conn = self._conn, None
        if conn is None:
            return
        with contextlib.suppress(Exception):
            await conn.close()

    def _fail(self, error: TaskdeckError) -> None:
        self.last_error = error
        self._set_state(ChannelState.DISCONNECTED)
        if isinstance(error, AuthError):
            self._credentials.report_rejected(error)
        logger.error("Realtime channel stopped: %s", error)
        self._publish(ChannelFailed(error))

    async def _run(self) -> None:
        failures = 0

        while True:
            self._set_state(ChannelState.CONNECTING)
            self._reached_streaming = False

            try:
                await self._session_once()
            except AuthError as e:
                await self._drop_connection()
                self._fail(e)
                return
            except NetworkError as e:
                await self._drop_connection()
                if isinstance(e, TransportClosed) and e.by_server:
                    logger.info("Server closed the realtime session; reconnecting")
                else:
                    logger.warning("Realtime transport failed: %s", e)
            else:
                await self._drop_connection()
                logger.info("Server terminated the realtime session; reconnecting")

            if self._reached_streaming:
                failures = 0
            failures += 1

            if failures > self._policy.max_attempts:
                self._fail(NetworkError(f"realtime reconnect gave up after {self._policy.max_attempts} attempts"))
                return

            self._set_state(ChannelState.RECONNECTING)
            delay = self._policy.delay_for(failures)
            logger.info("Realtime reconnect %d/%d in %.1fs", failures, self._policy.max_attempts, delay)
            await self._sleep(delay)

    def _decode(self, raw: str) -> ServerMessage | None:
        try:
            return decode_server_message(raw)
        except ProtocolError as e:
            logger.warning("Dropping realtime frame: %s", e)
            return None

    async def _await_auth_ack(self, conn: TransportConnection) -> None:
        while True:
            msg = self._decode(await conn.recv())
            if isinstance(msg, AuthAccepted):
                return
            if isinstance(msg, AuthRejected):
                raise AuthError(f"realtime credential rejected: {msg.message}")
            if isinstance(msg, SessionTerminated):
                raise TransportClosed(f"session ended during handshake: {msg.reason}", by_server=True)
            if msg is not None:
                logger.debug("Ignoring %s before authentication", type(msg).__name__)

    async def _session_once(self) -> None:
        """
        One connection lifetime. Returns when the server ends the session;
        raises NetworkError on transport failure, AuthError on credential problems.
        """
        conn = await self._connector.connect(self._url)
        self._conn = conn
        self._set_state(ChannelState.AWAITING_AUTH)

        credential = self._credentials.current_credential()
        if not credential:
            raise AuthError("no credential available for the realtime channel")
        await conn.send(encode_authenticate(credential))

        try:
            await asyncio.wait_for(self._await_auth_ack(conn), timeout=self._policy.handshake_timeout)
        except TimeoutError:
            raise NetworkError("realtime handshake timed out") from None

        reconnected = self._streamed_once
        self._streamed_once = True
        self._reached_streaming = True
        self._set_state(ChannelState.STREAMING)
        logger.info("Realtime channel streaming (reconnected=%s)", reconnected)
        self._publish(ChannelStreaming(reconnected=reconnected))

        while True:
            msg = self._decode(await conn.recv())
            if msg is None:
                continue

            if isinstance(msg, SessionTerminated):
                logger.info("Server ended the realtime session: %s", msg.reason or "(no reason)")
                return
            if isinstance(msg, AuthRejected):
                raise AuthError(f"realtime credential revoked: {msg.message}")
            if isinstance(msg, AuthAccepted):
                continue
            if isinstance(msg, (NotificationReceived, TaskCreated, TaskUpdated, TaskDeleted)):
                self._publish(msg)
            else:
                assert_never(msg)
