# src/taskdeck/errors.py

"""
Error taxonomy shared by stores, the realtime channel and the coordinators.

- NetworkError: transient; retried by reads and by the channel's reconnect loop.
- AuthError: fatal for the current session.
- ValidationError: bad input; never retried.
- ConflictError: server state diverged from our assumption; resolve by refetching.
"""

from __future__ import annotations


class TaskdeckError(Exception):
    """Base class for every error raised by taskdeck."""


class NetworkError(TaskdeckError):
    pass


class TransportClosed(NetworkError):
    """The realtime transport went away. `by_server` is True for a clean server-side close."""

    def __init__(self, message: str = "transport closed", *, by_server: bool = False) -> None:
        super().__init__(message)
        self.by_server = by_server


class AuthError(TaskdeckError):
    pass


class ValidationError(TaskdeckError):
    pass


class ConflictError(TaskdeckError):
    pass


class ProtocolError(TaskdeckError):
    """A realtime wire message could not be decoded."""


class MutationError(TaskdeckError):
    """An optimistic task mutation failed and the cache was reverted."""

    def __init__(self, task_id: str, cause: TaskdeckError) -> None:
        super().__init__(f"mutation of task {task_id} failed: {cause}")
        self.task_id = task_id
        self.cause = cause
