# src/taskdeck/core/auth.py

from __future__ import annotations

import asyncio
import logging

logger = logging.getLogger(__name__)


class TokenCredentials:
    """
    CredentialProvider holding a bearer token obtained elsewhere (login flow, env).

    A rejection reported by the REST client or the realtime channel invalidates
    the token; whoever waits on wait_invalidated() (the session) then tears down.
    """

    def __init__(self, token: str | None = None) -> None:
        self._token = token
        self._invalidated = asyncio.Event()

    def current_credential(self) -> str | None:
        return self._token

    def set_token(self, token: str) -> None:
        self._token = token
        if self._invalidated.is_set():
            self._invalidated = asyncio.Event()

    def invalidate(self) -> None:
        if self._token is not None:
            logger.info("Credential invalidated")
        self._token = None
        self._invalidated.set()

    def report_rejected(self, error: Exception) -> None:
        logger.warning("Credential rejected: %s", error)
        self.invalidate()

    async def wait_invalidated(self) -> None:
        await self._invalidated.wait()
