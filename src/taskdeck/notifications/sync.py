# src/taskdeck/notifications/sync.py

from __future__ import annotations

"""
Notification synchronizer.

Keeps the account's notifications most-recent-first and deduplicated by id,
merging two sources:
- snapshots fetched from the NotificationRepo (authoritative, replace the baseline),
- realtime pushes (prepended when the id is new, ignored otherwise).

Read state:
- mark_read flips the entry locally first, then confirms with the store,
- while that request is pending, a snapshot that still says read=False does not
  flip the entry back (the snapshot may predate the server applying the read),
- every other local state loses to a fresh snapshot.

unread_count is derived from the entries on every access, never kept as a counter.
"""

import logging
from collections.abc import Iterable
from dataclasses import replace
from datetime import datetime

from ..core.ports import NotificationRepo, ReadBroadcaster
from ..errors import NetworkError, TaskdeckError
from .models import Notification

logger = logging.getLogger(__name__)


def _created_key(n: Notification) -> datetime:
    # Naive timestamps are host-local; compare everything as aware instants.
    ts = n.created_at
    return ts if ts.tzinfo is not None else ts.astimezone()


class NotificationSynchronizer:
    def __init__(self, store: NotificationRepo, *, broadcaster: ReadBroadcaster | None = None) -> None:
        self._store = store
        self._broadcaster = broadcaster

        self._items: list[Notification] = []
        # Last read state the server reported (snapshot, push or confirmed mark_read).
        self._server_read: dict[str, bool] = {}
        # id -> token of the mark_read request still waiting for the store
        self._pending_reads: dict[str, int] = {}
        self._read_seq = 0
        self._refresh_gen = 0

    # ---- read side ----

    def notifications(self) -> list[Notification]:
        return list(self._items)

    def unread(self) -> list[Notification]:
        return [n for n in self._items if not n.read]

    @property
    def unread_count(self) -> int:
        return sum(1 for n in self._items if not n.read)

    def get(self, notification_id: str) -> Notification | None:
        for n in self._items:
            if n.id == notification_id:
                return n
        return None

    def _index(self, notification_id: str) -> int:
        for i, n in enumerate(self._items):
            if n.id == notification_id:
                return i
        raise KeyError(notification_id)

    # ---- ingest ----

    def ingest_snapshot(self, items: Iterable[Notification]) -> None:
        """Replace the baseline with a server snapshot."""
        unique: dict[str, Notification] = {}
        for n in items:
            if n.id not in unique:
                unique[n.id] = n

        ordered = sorted(unique.values(), key=_created_key, reverse=True)
        self._server_read = {n.id: n.read for n in ordered}

        merged: list[Notification] = []
        for n in ordered:
            if not n.read and n.id in self._pending_reads:
                n = replace(n, read=True)
            merged.append(n)

        self._items = merged
        logger.debug("Notification snapshot applied: %d items, %d unread", len(merged), self.unread_count)

    def ingest_push(self, notification: Notification) -> bool:
        """Prepend a pushed notification. Returns False for an id we already have."""
        if self.get(notification.id) is not None:
            logger.debug("Duplicate notification push ignored id=%s", notification.id)
            return False

        self._items.insert(0, notification)
        self._server_read[notification.id] = notification.read
        logger.info("Notification received id=%s type=%s", notification.id, notification.type.value)
        return True

    async def refresh(self) -> list[Notification]:
        """Fetch a snapshot and ingest it; a refresh overtaken by a newer one is dropped."""
        self._refresh_gen += 1
        gen = self._refresh_gen

        items = await self._store.list()

        if gen != self._refresh_gen:
            logger.debug("Discarding stale notification snapshot gen=%d", gen)
            return self.notifications()

        self.ingest_snapshot(items)
        return self.notifications()

    # ---- read acknowledgement ----

    async def mark_read(self, notification_id: str) -> bool:
        """
        Mark one notification read.

        Returns False (and sends nothing) if it is already read.
        Raises KeyError for an unknown id, and the store's error after reverting on failure.
        """
        idx = self._index(notification_id)
        current = self._items[idx]
        if current.read:
            return False

        self._items[idx] = replace(current, read=True)
        self._read_seq += 1
        token = self._read_seq
        self._pending_reads[notification_id] = token

        try:
            await self._store.mark_read(notification_id)
        except TaskdeckError:
            if self._pending_reads.get(notification_id) == token:
                del self._pending_reads[notification_id]

            server_read = self._server_read.get(notification_id, False)
            for i, n in enumerate(self._items):
                if n.id == notification_id:
                    self._items[i] = replace(n, read=server_read)
                    break
            logger.warning("mark_read failed id=%s; reverted to read=%s", notification_id, server_read)
            raise

        if self._pending_reads.get(notification_id) == token:
            del self._pending_reads[notification_id]
        self._server_read[notification_id] = True
        logger.debug("Notification %s read; unread=%d", notification_id, self.unread_count)

        if self._broadcaster is not None:
            try:
                await self._broadcaster.send_notification_read(notification_id)
            except NetworkError:
                # The store has the read; other clients catch up on their next snapshot.
                logger.warning("Failed to broadcast read of %s", notification_id, exc_info=True)

        return True
