# src/taskdeck/tasks/coordinator.py

from __future__ import annotations

"""
Optimistic mutation coordinator.

Owns the task cache the view renders from, plus the last store-confirmed copy
of every task. A user move is applied to the cache first, then written to the
store; the outcome is reconciled per task using sequence numbers:

- every mutation of a task takes the next per-task seq,
- only the response of the latest seq may touch the cache (older responses,
  success or failure, are discarded),
- on failure the cache entry reverts to the last confirmed value,
- on success the whole list is refetched to pick up changes from other clients.

Cross-task ordering is not tracked. Nothing here runs in parallel: all state
changes happen between awaits on the single event loop.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any

from ..core.ports import TaskRepo
from ..errors import ConflictError, MutationError, TaskdeckError, ValidationError
from .buckets import bucket_to_status, group_by_bucket
from .task_models import (
    Bucket,
    Task,
    TaskPriority,
    TaskStatus,
    parse_datetime,
    task_fields_to_json,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class MutationRequest:
    task_id: str
    seq: int
    label: str


def _local_now() -> datetime:
    return datetime.now().astimezone()


def _apply_fields(task: Task, payload: dict[str, Any]) -> Task:
    """Local image of a validated update payload (API field names)."""
    changes: dict[str, Any] = {}
    if "title" in payload:
        changes["title"] = payload["title"]
    if "description" in payload:
        desc = payload["description"]
        changes["description"] = None if desc is None else str(desc)
    if "priority" in payload:
        changes["priority"] = TaskPriority(payload["priority"])
    if "dueDate" in payload:
        changes["due_date"] = parse_datetime(payload["dueDate"])
    if "status" in payload:
        changes["status"] = TaskStatus(payload["status"])
    return replace(task, **changes)


class MutationCoordinator:
    def __init__(self, store: TaskRepo, *, clock: Callable[[], datetime] | None = None) -> None:
        self._store = store
        self._clock = clock or _local_now

        # Insertion order follows the store's list order.
        self._cache: dict[str, Task] = {}
        self._confirmed: dict[str, Task] = {}

        self._seq: dict[str, int] = {}
        # task_id -> optimistic value of its latest unresolved mutation
        self._inflight: dict[str, Task] = {}

        self._refresh_gen = 0

    # ---- read side (view) ----

    def tasks(self) -> list[Task]:
        return list(self._cache.values())

    def get(self, task_id: str) -> Task | None:
        return self._cache.get(task_id)

    def confirmed(self, task_id: str) -> Task | None:
        return self._confirmed.get(task_id)

    def board(self, now: datetime | None = None) -> dict[Bucket, list[Task]]:
        return group_by_bucket(self.tasks(), now or self._clock())

    def latest_seq(self, task_id: str) -> int:
        return self._seq.get(task_id, 0)

    def has_pending(self, task_id: str) -> bool:
        return task_id in self._inflight

    # ---- snapshot reconciliation ----

    async def refresh(self) -> list[Task]:
        """
        Replace the confirmed baseline with a fresh store snapshot.

        Tasks with an unresolved mutation keep their optimistic value on top of
        the snapshot. If another refresh starts before this one returns, this
        snapshot is discarded.
        """
        self._refresh_gen += 1
        gen = self._refresh_gen

        snapshot = await self._store.list()

        if gen != self._refresh_gen:
            logger.debug("Discarding stale task snapshot gen=%d (latest=%d)", gen, self._refresh_gen)
            return self.tasks()

        self._confirmed = {t.id: t for t in snapshot}
        self._cache = {t.id: self._inflight.get(t.id, t) for t in snapshot}

        # In-flight entries for tasks the server no longer has are dropped.
        for task_id in [tid for tid in self._inflight if tid not in self._confirmed]:
            logger.info("Task %s vanished from the store while a mutation was in flight", task_id)
            del self._inflight[task_id]

        logger.debug("Task snapshot applied: %d tasks", len(snapshot))
        return self.tasks()

    async def _reconcile(self) -> None:
        """
        Refetch after a mutation outcome. Never raises: the caller reports the
        mutation's own result (confirmed task or MutationError), not the refetch.
        An AuthError here has already been reported to the CredentialProvider
        by the API client, which ends the session.
        """
        try:
            await self.refresh()
        except TaskdeckError:
            logger.warning("Post-mutation refresh failed; keeping current state", exc_info=True)

    # ---- mutations ----

    def _require(self, task_id: str) -> Task:
        task = self._cache.get(task_id)
        if task is None:
            raise MutationError(task_id, ValidationError(f"unknown task: {task_id}"))
        return task

    def _next_request(self, task_id: str, label: str) -> MutationRequest:
        seq = self._seq.get(task_id, 0) + 1
        self._seq[task_id] = seq
        return MutationRequest(task_id=task_id, seq=seq, label=label)

    def _is_latest(self, req: MutationRequest) -> bool:
        return self._seq.get(req.task_id, 0) == req.seq

    def _revert(self, task_id: str) -> None:
        confirmed = self._confirmed.get(task_id)
        if confirmed is None:
            self._cache.pop(task_id, None)
        else:
            self._cache[task_id] = confirmed

    async def _run_optimistic(
        self,
        req: MutationRequest,
        optimistic: Task,
        call: Callable[[], Awaitable[Task]],
    ) -> Task:
        task_id = req.task_id
        self._cache[task_id] = optimistic
        self._inflight[task_id] = optimistic
        logger.debug("Task %s: optimistic %s seq=%d", task_id, req.label, req.seq)

        try:
            result = await call()
        except TaskdeckError as e:
            if not self._is_latest(req):
                logger.info(
                    "Task %s: discarding stale failure of %s seq=%d (latest=%d): %s",
                    task_id, req.label, req.seq, self.latest_seq(task_id), e,
                )
                return self._cache.get(task_id, optimistic)

            self._inflight.pop(task_id, None)
            self._revert(task_id)
            logger.warning("Task %s: %s seq=%d failed, reverted: %s", task_id, req.label, req.seq, e)

            if isinstance(e, ConflictError):
                await self._reconcile()
            raise MutationError(task_id, e) from e

        if not self._is_latest(req):
            logger.info(
                "Task %s: discarding stale response of %s seq=%d (latest=%d)",
                task_id, req.label, req.seq, self.latest_seq(task_id),
            )
            return self._cache.get(task_id, result)

        self._inflight.pop(task_id, None)
        self._confirmed[task_id] = result
        self._cache[task_id] = result
        logger.info("Task %s: %s confirmed seq=%d", task_id, req.label, req.seq)

        await self._reconcile()
        return self._cache.get(task_id, result)

    async def set_status(self, task_id: str, status: TaskStatus | str) -> Task:
        """
        Status-button path. A status equal to the current (possibly optimistic)
        one is a no-op, so a repeated click while a request is pending sends nothing.
        """
        target = TaskStatus.parse(status)
        task = self._require(task_id)

        if task.status == target:
            logger.debug("Task %s: already %s, no-op", task_id, target.value)
            return task

        req = self._next_request(task_id, f"status={target.value}")
        return await self._run_optimistic(
            req,
            replace(task, status=target),
            lambda: self._store.patch_status(task_id, target),
        )

    async def move(self, task_id: str, bucket: Bucket | str) -> Task:
        """Drag-and-drop path: map the destination bucket to a status and apply it."""
        try:
            target = bucket_to_status(Bucket(bucket))
        except ValueError:
            raise MutationError(task_id, ValidationError(f"unknown bucket: {bucket!r}")) from None
        return await self.set_status(task_id, target)

    async def update(self, task_id: str, fields: dict[str, Any]) -> Task:
        """Full edit. The cached status is preserved unless the fields name one."""
        task = self._require(task_id)

        payload = task_fields_to_json(fields)
        payload.setdefault("status", task.status.value)

        optimistic = _apply_fields(task, payload)
        if optimistic == task:
            return task

        req = self._next_request(task_id, "update")
        return await self._run_optimistic(
            req,
            optimistic,
            lambda: self._store.update(task_id, payload),
        )

    async def reschedule(self, task_id: str, due_date: datetime) -> Task:
        """Calendar drag: move the due date, keep everything else."""
        task = self._require(task_id)
        if task.due_date == due_date:
            return task

        payload = task_fields_to_json({"dueDate": due_date})
        req = self._next_request(task_id, "reschedule")
        return await self._run_optimistic(
            req,
            replace(task, due_date=due_date),
            lambda: self._store.update(task_id, payload),
        )

    async def create(self, fields: dict[str, Any]) -> Task:
        task = await self._store.create(fields)
        self._confirmed[task.id] = task
        self._cache[task.id] = task
        await self._reconcile()
        return self._cache.get(task.id, task)

    async def delete(self, task_id: str) -> None:
        self._require(task_id)
        await self._store.delete(task_id)

        # Any response still in flight for this task is now stale.
        self._next_request(task_id, "delete")
        self._inflight.pop(task_id, None)
        self._cache.pop(task_id, None)
        self._confirmed.pop(task_id, None)
        logger.info("Task %s deleted", task_id)

        await self._reconcile()
