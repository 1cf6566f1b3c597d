# src/taskdeck/http.py

"""
Thin async REST client shared by the task and notification stores.

Responsibilities:
- attach the bearer credential from the CredentialProvider on every request,
- map transport failures and HTTP status codes onto taskdeck.errors,
- retry idempotent reads on NetworkError according to a RetryPolicy.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from .config import RetryPolicy
from .core.ports import CredentialProvider
from .errors import AuthError, ConflictError, NetworkError, ValidationError

logger = logging.getLogger(__name__)


def _error_message(resp: httpx.Response) -> str:
    try:
        data = resp.json()
    except ValueError:
        return resp.text.strip() or resp.reason_phrase
    if isinstance(data, dict):
        msg = data.get("message") or data.get("error")
        if msg:
            return str(msg)
    return resp.reason_phrase


def raise_for_status(resp: httpx.Response) -> None:
    """Translate an error response into the taskdeck taxonomy."""
    code = resp.status_code
    if code < 400:
        return

    msg = f"{resp.request.method} {resp.request.url.path} -> {code}: {_error_message(resp)}"

    if code in (401, 403):
        raise AuthError(msg)
    if code in (400, 422):
        raise ValidationError(msg)
    if code in (404, 409, 412):
        raise ConflictError(msg)
    if code >= 500 or code in (408, 429):
        raise NetworkError(msg)
    raise ValidationError(msg)


class ApiClient:
    def __init__(
        self,
        base_url: str,
        credentials: CredentialProvider,
        *,
        timeout: float = 10.0,
        retry: RetryPolicy | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._credentials = credentials
        self._retry = retry or RetryPolicy()
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=httpx.Timeout(timeout),
            headers={"Content-Type": "application/json"},
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    def _headers(self) -> dict[str, str]:
        token = self._credentials.current_credential()
        if not token:
            return {}
        return {"Authorization": f"Bearer {token}"}

    async def request(self, method: str, path: str, *, json: Any = None) -> Any:
        """Send one request; return the decoded JSON body (None for empty bodies)."""
        try:
            resp = await self._client.request(method, path, json=json, headers=self._headers())
        except httpx.TimeoutException as e:
            raise NetworkError(f"{method} {path} timed out") from e
        except httpx.TransportError as e:
            raise NetworkError(f"{method} {path} failed: {e}") from e

        if resp.status_code in (401, 403):
            err = AuthError(f"{method} {path} -> {resp.status_code}: {_error_message(resp)}")
            self._credentials.report_rejected(err)
            raise err
        raise_for_status(resp)

        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise NetworkError(f"{method} {path}: response is not JSON") from e

    async def get(self, path: str) -> Any:
        """GET with retries on transient failures."""
        attempts = max(1, self._retry.attempts)
        attempt = 1
        while True:
            try:
                return await self.request("GET", path)
            except NetworkError:
                if attempt >= attempts:
                    raise
                delay = self._retry.delay_for(attempt)
                logger.warning("GET %s failed (attempt %d/%d); retrying in %.1fs", path, attempt, attempts, delay)
                await asyncio.sleep(delay)
                attempt += 1
