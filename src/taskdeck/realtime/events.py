# src/taskdeck/realtime/events.py

"""
Realtime wire messages.

Every frame is a JSON object with exactly one key; the key picks the message
class from a closed table. Anything else (unknown key, several keys, bad
payload) is a ProtocolError: new server message kinds are rejected here
instead of falling through to a default branch downstream.

Server -> client:
    {"notification": {...}}                       NotificationReceived
    {"taskCreated" | "taskUpdated" | "taskDeleted": taskId}
    {"authenticated": true}                       AuthAccepted
    {"authError": "message"}                      AuthRejected
    {"disconnect": "reason"}                      SessionTerminated

Client -> server:
    {"authenticate": credential}
    {"notificationRead": id}
"""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from ..errors import ProtocolError, TaskdeckError, ValidationError
from ..notifications.models import Notification, notification_from_json


@dataclass(slots=True, frozen=True)
class NotificationReceived:
    notification: Notification


@dataclass(slots=True, frozen=True)
class TaskCreated:
    task_id: str


@dataclass(slots=True, frozen=True)
class TaskUpdated:
    task_id: str


@dataclass(slots=True, frozen=True)
class TaskDeleted:
    task_id: str


@dataclass(slots=True, frozen=True)
class AuthAccepted:
    pass


@dataclass(slots=True, frozen=True)
class AuthRejected:
    message: str


@dataclass(slots=True, frozen=True)
class SessionTerminated:
    reason: str


# Published by the ChannelManager itself, never decoded from the wire.
@dataclass(slots=True, frozen=True)
class ChannelStreaming:
    reconnected: bool


@dataclass(slots=True, frozen=True)
class ChannelFailed:
    error: TaskdeckError


TaskInvalidation = TaskCreated | TaskUpdated | TaskDeleted
ServerMessage = (
    NotificationReceived | TaskCreated | TaskUpdated | TaskDeleted | AuthAccepted | AuthRejected | SessionTerminated
)
ChannelEvent = NotificationReceived | TaskCreated | TaskUpdated | TaskDeleted | ChannelStreaming | ChannelFailed


def _task_id(payload: Any) -> str:
    # Servers send either the bare id or the whole task document.
    if isinstance(payload, dict):
        payload = payload.get("_id", payload.get("id"))
    if payload is None or isinstance(payload, (dict, list, bool)) or str(payload).strip() == "":
        raise ProtocolError(f"invalid task reference: {payload!r}")
    return str(payload)


def _authenticated(payload: Any) -> ServerMessage:
    if payload is False:
        return AuthRejected("credential rejected")
    return AuthAccepted()


_DECODERS: dict[str, Callable[[Any], ServerMessage]] = {
    "notification": lambda p: NotificationReceived(notification_from_json(p)),
    "taskCreated": lambda p: TaskCreated(_task_id(p)),
    "taskUpdated": lambda p: TaskUpdated(_task_id(p)),
    "taskDeleted": lambda p: TaskDeleted(_task_id(p)),
    "authenticated": _authenticated,
    "authError": lambda p: AuthRejected(str(p or "credential rejected")),
    "disconnect": lambda p: SessionTerminated(str(p or "")),
}


def decode_server_message(raw: str | bytes) -> ServerMessage:
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise ProtocolError(f"frame is not JSON: {e}") from e

    if not isinstance(data, dict) or len(data) != 1:
        raise ProtocolError("frame must be an object with exactly one key")

    ((kind, payload),) = data.items()
    decoder = _DECODERS.get(kind)
    if decoder is None:
        raise ProtocolError(f"unknown message kind: {kind!r}")

    try:
        return decoder(payload)
    except ValidationError as e:
        raise ProtocolError(f"bad {kind} payload: {e}") from e


def encode_authenticate(credential: str) -> str:
    return json.dumps({"authenticate": credential})


def encode_notification_read(notification_id: str) -> str:
    return json.dumps({"notificationRead": notification_id})
