# tests/test_events.py

from __future__ import annotations

import json

import pytest

from taskdeck.errors import ProtocolError
from taskdeck.notifications.models import NotificationType
from taskdeck.realtime.events import (
    AuthAccepted,
    AuthRejected,
    NotificationReceived,
    SessionTerminated,
    TaskCreated,
    TaskDeleted,
    TaskUpdated,
    decode_server_message,
    encode_authenticate,
    encode_notification_read,
)


def test_decode_notification() -> None:
    raw = json.dumps(
        {
            "notification": {
                "_id": "n9",
                "message": "Task overdue: taxes",
                "type": "overdue",
                "read": False,
                "createdAt": "2024-05-15T06:00:00.000Z",
                "relatedTasks": ["t1", {"_id": "t2", "title": "populated"}],
            }
        }
    )

    msg = decode_server_message(raw)

    assert isinstance(msg, NotificationReceived)
    assert msg.notification.id == "n9"
    assert msg.notification.type == NotificationType.OVERDUE
    assert msg.notification.related_tasks == ("t1", "t2")
    assert msg.notification.created_at.utcoffset().total_seconds() == 0


@pytest.mark.parametrize(
    ("kind", "cls"),
    [("taskCreated", TaskCreated), ("taskUpdated", TaskUpdated), ("taskDeleted", TaskDeleted)],
)
def test_decode_task_invalidations(kind, cls) -> None:
    assert decode_server_message(json.dumps({kind: "t1"})) == cls("t1")
    assert decode_server_message(json.dumps({kind: {"_id": "t2", "title": "x"}})) == cls("t2")


def test_decode_session_control() -> None:
    assert decode_server_message('{"authenticated": true}') == AuthAccepted()
    assert isinstance(decode_server_message('{"authenticated": false}'), AuthRejected)
    assert decode_server_message('{"authError": "token expired"}') == AuthRejected("token expired")
    assert decode_server_message('{"disconnect": "server restart"}') == SessionTerminated("server restart")
    assert decode_server_message(b'{"disconnect": null}') == SessionTerminated("")


@pytest.mark.parametrize(
    "raw",
    [
        "not json",
        "[]",
        "{}",
        '{"taskUpdated": "t1", "taskDeleted": "t2"}',
        '{"chatMessage": "hi"}',
        '{"taskUpdated": null}',
        '{"taskUpdated": ""}',
        '{"notification": {"message": "no id", "createdAt": "2024-05-15T06:00:00Z"}}',
        '{"notification": {"_id": "n1", "type": "shouting", "createdAt": "2024-05-15T06:00:00Z"}}',
    ],
)
def test_malformed_frames_are_protocol_errors(raw) -> None:
    with pytest.raises(ProtocolError):
        decode_server_message(raw)


def test_encode_client_messages() -> None:
    assert json.loads(encode_authenticate("tok")) == {"authenticate": "tok"}
    assert json.loads(encode_notification_read("n1")) == {"notificationRead": "n1"}
