# src/taskdeck/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures the local (gitignored) data directory exists,
- wires concrete implementations (REST stores, websocket transport, token
  credentials) into a Session, passing each component its own policy struct.
"""

from __future__ import annotations

import logging

from ..config import Settings, get_settings
from ..core.auth import TokenCredentials
from ..core.session import NotificationCallback, Session
from ..http import ApiClient
from ..notifications.store import HttpNotificationStore
from ..notifications.sync import NotificationSynchronizer
from ..realtime.channel import ChannelManager
from ..realtime.transport import WebSocketConnector
from ..tasks.coordinator import MutationCoordinator
from ..tasks.task_store import HttpTaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings: Settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)


def create_session(
    *,
    settings: Settings | None = None,
    credentials: TokenCredentials | None = None,
    on_notification: NotificationCallback | None = None,
) -> Session:
    """
    Build a Session from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    if credentials is None:
        credentials = TokenCredentials(settings.api_token)
    if credentials.current_credential() is None:
        logger.warning("No API token configured (TASKDECK_API_TOKEN); requests will be unauthenticated.")

    api = ApiClient(
        settings.api_base_url,
        credentials,
        timeout=settings.http_timeout_seconds,
        retry=settings.retry_policy(),
    )

    policy = settings.reconnect_policy()
    channel = ChannelManager(
        WebSocketConnector(open_timeout=policy.handshake_timeout),
        credentials,
        url=settings.realtime_url,
        policy=policy,
    )

    return Session(
        coordinator=MutationCoordinator(HttpTaskStore(api)),
        notifications=NotificationSynchronizer(HttpNotificationStore(api), broadcaster=channel),
        channel=channel,
        credentials=credentials,
        on_notification=on_notification,
        on_close=api.aclose,
    )
