# src/taskdeck/notifications/store.py

from __future__ import annotations

import logging

from ..errors import NetworkError, ValidationError
from ..http import ApiClient
from .models import Notification, notification_from_json

logger = logging.getLogger(__name__)


class HttpNotificationStore:
    """REST notification store: GET /api/notifications, PATCH /api/notifications/{id}/read."""

    def __init__(self, api: ApiClient) -> None:
        self._api = api

    async def list(self) -> list[Notification]:
        data = await self._api.get("/api/notifications")
        if not isinstance(data, list):
            raise NetworkError("GET /api/notifications: expected a list")

        out: list[Notification] = []
        for item in data:
            try:
                out.append(notification_from_json(item))
            except ValidationError:
                logger.warning("Skipping malformed notification payload: %r", item)
        return out

    async def mark_read(self, notification_id: str) -> None:
        await self._api.request("PATCH", f"/api/notifications/{notification_id}/read")
