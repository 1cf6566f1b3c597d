# tests/fakes.py

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field, replace
from typing import Any

from taskdeck.errors import ConflictError, NetworkError, TaskdeckError, TransportClosed
from taskdeck.notifications.models import Notification
from taskdeck.tasks.task_models import Task, TaskPriority, TaskStatus, parse_datetime, task_fields_to_json


async def settle(rounds: int = 10) -> None:
    """Let every ready task run until it blocks again."""
    for _ in range(rounds):
        await asyncio.sleep(0)


async def eventually(predicate, timeout: float = 1.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.005)


@dataclass(slots=True)
class HeldCall:
    """A store call parked until the test releases or fails it."""

    name: str
    args: tuple[Any, ...]
    future: asyncio.Future

    def release(self) -> None:
        self.future.set_result(None)

    def fail(self, exc: Exception) -> None:
        self.future.set_exception(exc)


class _Gated:
    """
    Shared call recording for fake repos.

    - hold: method names whose calls park in `pending` until released,
    - fail: method name -> exception raised by the next call of that method.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[Any, ...]] = []
        self.hold: set[str] = set()
        self.pending: list[HeldCall] = []
        self.fail: dict[str, TaskdeckError] = {}

    async def _gate(self, name: str, *args: Any) -> None:
        self.calls.append((name, *args))
        if name in self.hold:
            call = HeldCall(name, args, asyncio.get_running_loop().create_future())
            self.pending.append(call)
            await call.future
        exc = self.fail.pop(name, None)
        if exc is not None:
            raise exc

    def count(self, name: str) -> int:
        return sum(1 for c in self.calls if c[0] == name)


class FakeTaskStore(_Gated):
    """In-memory TaskRepo; `server` is the authoritative state."""

    def __init__(self, tasks: list[Task] | None = None) -> None:
        super().__init__()
        self.server: dict[str, Task] = {t.id: t for t in (tasks or [])}
        self._next_id = 1000

    def _get(self, task_id: str) -> Task:
        task = self.server.get(task_id)
        if task is None:
            raise ConflictError(f"task {task_id} not found")
        return task

    async def list(self) -> list[Task]:
        # Snapshot taken when the request "reaches the server", not when it is released.
        snapshot = list(self.server.values())
        await self._gate("list")
        return snapshot

    async def create(self, fields: dict[str, Any]) -> Task:
        payload = task_fields_to_json(fields)
        await self._gate("create", payload)
        self._next_id += 1
        task = Task(
            id=str(self._next_id),
            title=payload["title"],
            priority=TaskPriority(payload.get("priority", "medium")),
            due_date=parse_datetime(payload["dueDate"]),
            status=TaskStatus(payload.get("status", "pending")),
            description=payload.get("description"),
        )
        self.server[task.id] = task
        return task

    async def update(self, task_id: str, fields: dict[str, Any]) -> Task:
        payload = task_fields_to_json(fields)
        await self._gate("update", task_id, payload)
        task = self._get(task_id)
        changes: dict[str, Any] = {}
        if "title" in payload:
            changes["title"] = payload["title"]
        if "dueDate" in payload:
            changes["due_date"] = parse_datetime(payload["dueDate"])
        if "priority" in payload:
            changes["priority"] = TaskPriority(payload["priority"])
        if "status" in payload:
            changes["status"] = TaskStatus(payload["status"])
        if "description" in payload:
            changes["description"] = payload["description"]
        self.server[task_id] = replace(task, **changes)
        return self.server[task_id]

    async def patch_status(self, task_id: str, status: TaskStatus) -> Task:
        await self._gate("patch_status", task_id, TaskStatus(status))
        self.server[task_id] = replace(self._get(task_id), status=TaskStatus(status))
        return self.server[task_id]

    async def delete(self, task_id: str) -> None:
        await self._gate("delete", task_id)
        self._get(task_id)
        del self.server[task_id]


class FakeNotificationStore(_Gated):
    def __init__(self, items: list[Notification] | None = None) -> None:
        super().__init__()
        self.server: dict[str, Notification] = {n.id: n for n in (items or [])}

    async def list(self) -> list[Notification]:
        snapshot = list(self.server.values())
        await self._gate("list")
        return snapshot

    async def mark_read(self, notification_id: str) -> None:
        await self._gate("mark_read", notification_id)
        n = self.server.get(notification_id)
        if n is not None:
            self.server[notification_id] = replace(n, read=True)


@dataclass(slots=True)
class FakeBroadcaster:
    sent: list[str] = field(default_factory=list)
    fail: bool = False

    async def send_notification_read(self, notification_id: str) -> bool:
        if self.fail:
            raise NetworkError("socket gone")
        self.sent.append(notification_id)
        return True


class FakeConnection:
    """
    Scripted TransportConnection.

    Frames pushed by the test are returned by recv(); exceptions pushed are raised.
    Everything the client sends is decoded into `sent`.
    """

    def __init__(self) -> None:
        self.incoming: asyncio.Queue = asyncio.Queue()
        self.sent: list[dict[str, Any]] = []
        self.closed = False

    def push(self, message: dict[str, Any]) -> None:
        self.incoming.put_nowait(json.dumps(message))

    def push_raw(self, frame: str) -> None:
        self.incoming.put_nowait(frame)

    def drop(self) -> None:
        self.incoming.put_nowait(NetworkError("connection reset by peer"))

    def server_close(self) -> None:
        self.incoming.put_nowait(TransportClosed("going away", by_server=True))

    async def send(self, text: str) -> None:
        if self.closed:
            raise TransportClosed("send on closed connection")
        self.sent.append(json.loads(text))

    async def recv(self) -> str:
        item = await self.incoming.get()
        if isinstance(item, Exception):
            raise item
        return item

    async def close(self) -> None:
        self.closed = True


class FakeConnector:
    """
    TransportConnector handing out FakeConnections.

    - auto_ack: queue {"authenticated": true} on every new connection,
    - failures: exceptions raised by the next connect() calls, in order.
    """

    def __init__(self, *, auto_ack: bool = True) -> None:
        self.auto_ack = auto_ack
        self.connections: list[FakeConnection] = []
        self.failures: list[Exception] = []
        self.urls: list[str] = []

    @property
    def current(self) -> FakeConnection:
        return self.connections[-1]

    async def connect(self, url: str) -> FakeConnection:
        self.urls.append(url)
        if self.failures:
            raise self.failures.pop(0)
        conn = FakeConnection()
        if self.auto_ack:
            conn.push({"authenticated": True})
        self.connections.append(conn)
        return conn


class RecordingSleep:
    """Injected into ChannelManager instead of asyncio.sleep: records delays, yields once."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await asyncio.sleep(0)
