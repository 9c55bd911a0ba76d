"""Async HTTP client for the Eventide API.

Thin wrapper over ``httpx.AsyncClient`` that attaches the session token and
turns non-2xx responses into ``ApiError`` carrying the server's message.
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Raised for any non-2xx API response or transport failure."""

    def __init__(self, status_code: int, message: str, code: str | None = None) -> None:
        self.status_code = status_code
        self.message = message
        self.code = code
        super().__init__(message)


def _error_from_response(resp: httpx.Response) -> ApiError:
    message = f"HTTP {resp.status_code}"
    code = None
    try:
        body = resp.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        message = str(body.get("error") or body.get("detail") or message)
        code = body.get("code")
    return ApiError(resp.status_code, message, code)


class EventideClient:
    """Calls the Eventide API on behalf of one signed-in user.

    Usage::

        client = EventideClient("http://localhost:40300", token=session_token)
        events = await client.get("/api/events")
        await client.aclose()
    """

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        timeout_s: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._http = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout_s,
            transport=transport,
        )
        self._token = token

    @property
    def token(self) -> str | None:
        return self._token

    def set_token(self, token: str | None) -> None:
        """Switch the session token (``None`` after sign-out)."""
        self._token = token

    def _headers(self) -> dict[str, str]:
        if self._token is None:
            return {}
        return {"Authorization": f"Bearer {self._token}"}

    async def request(
        self,
        method: str,
        path: str,
        *,
        json_body: Any = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Send a request and return the decoded JSON body.

        Raises
        ------
        ApiError
            For non-2xx responses (status and server message) and for
            transport failures (status 0).
        """
        try:
            resp = await self._http.request(
                method,
                path,
                json=json_body,
                params=params,
                headers=self._headers(),
            )
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise ApiError(0, str(exc) or "Network error") from exc

        if resp.is_error:
            raise _error_from_response(resp)
        if not resp.content:
            return None
        return resp.json()

    async def get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, body: Any) -> Any:
        return await self.request("POST", path, json_body=body)

    async def patch(self, path: str, body: Any) -> Any:
        return await self.request("PATCH", path, json_body=body)

    async def delete(self, path: str) -> Any:
        return await self.request("DELETE", path)

    async def stream_events(self, path: str) -> AsyncIterator[tuple[str, Any]]:
        """Yield ``(event, data)`` pairs from a Server-Sent Events endpoint.

        Comment lines (keepalives) are skipped; ``data`` is decoded as JSON.
        """
        async with self._http.stream("GET", path, headers=self._headers(), timeout=None) as resp:
            if resp.is_error:
                await resp.aread()
                raise _error_from_response(resp)
            event = "message"
            data_lines: list[str] = []
            async for line in resp.aiter_lines():
                if not line:
                    if data_lines:
                        yield event, json.loads("\n".join(data_lines))
                    event, data_lines = "message", []
                elif line.startswith(":"):
                    continue
                elif line.startswith("event:"):
                    event = line[len("event:") :].strip()
                elif line.startswith("data:"):
                    data_lines.append(line[len("data:") :].strip())

    async def aclose(self) -> None:
        await self._http.aclose()
