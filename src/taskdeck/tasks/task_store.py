# src/taskdeck/tasks/task_store.py

from __future__ import annotations

import logging
from typing import Any

from ..errors import NetworkError, ValidationError
from ..http import ApiClient
from .task_models import Task, TaskStatus, task_fields_to_json, task_from_json

logger = logging.getLogger(__name__)


class HttpTaskStore:
    """
    REST task store (the backend is authoritative).

    Endpoints:
    - GET    /api/tasks
    - POST   /api/tasks
    - PUT    /api/tasks/{id}
    - PATCH  /api/tasks/{id}/status
    - DELETE /api/tasks/{id}

    Only persisted statuses (pending/completed) ever reach the wire; derived
    buckets are rejected by task_fields_to_json before any request is sent.
    """

    def __init__(self, api: ApiClient) -> None:
        self._api = api

    @staticmethod
    def _one(data: Any, what: str) -> Task:
        if data is None:
            raise NetworkError(f"{what}: empty response")
        return task_from_json(data)

    async def list(self) -> list[Task]:
        data = await self._api.get("/api/tasks")
        if not isinstance(data, list):
            raise NetworkError("GET /api/tasks: expected a list")

        out: list[Task] = []
        for item in data:
            try:
                out.append(task_from_json(item))
            except ValidationError:
                # One malformed row must not hide the rest of the board.
                logger.warning("Skipping malformed task payload: %r", item)
        return out

    async def create(self, fields: dict[str, Any]) -> Task:
        payload = task_fields_to_json(fields)
        for required in ("title", "dueDate"):
            if required not in payload:
                raise ValidationError(f"{required} is required")
        payload.setdefault("status", TaskStatus.PENDING.value)

        data = await self._api.request("POST", "/api/tasks", json=payload)
        task = self._one(data, "create task")
        logger.info("Task created id=%s", task.id)
        return task

    async def update(self, task_id: str, fields: dict[str, Any]) -> Task:
        payload = task_fields_to_json(fields)
        data = await self._api.request("PUT", f"/api/tasks/{task_id}", json=payload)
        return self._one(data, f"update task {task_id}")

    async def patch_status(self, task_id: str, status: TaskStatus) -> Task:
        value = TaskStatus.parse(status).value
        data = await self._api.request("PATCH", f"/api/tasks/{task_id}/status", json={"status": value})
        return self._one(data, f"patch status {task_id}")

    async def delete(self, task_id: str) -> None:
        await self._api.request("DELETE", f"/api/tasks/{task_id}")
        logger.info("Task deleted id=%s", task_id)
