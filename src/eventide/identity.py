"""Session verification against the external identity provider.

The provider issues an opaque user id, email, display name and avatar URL.
Every API request presents the provider's session token as a bearer token;
``IdentityClient.verify`` exchanges it for the user record. The verified
email is the only identity the API trusts for ownership checks.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from eventide.errors import AuthenticationError

logger = logging.getLogger(__name__)

_USER_PATH = "/auth/v1/user"


@dataclass(frozen=True)
class Identity:
    """A verified caller."""

    user_id: str
    email: str
    display_name: str | None = None
    avatar_url: str | None = None

    @classmethod
    def from_provider(cls, payload: dict[str, Any]) -> Identity:
        """Build an Identity from the provider's user payload.

        Display metadata lives under ``user_metadata`` with either
        ``full_name`` or ``name`` depending on the sign-in method.
        """
        email = payload.get("email")
        user_id = payload.get("id")
        if not email or not user_id:
            raise AuthenticationError("Identity provider returned a user without id or email")
        metadata = payload.get("user_metadata") or {}
        return cls(
            user_id=str(user_id),
            email=str(email).lower(),
            display_name=metadata.get("full_name") or metadata.get("name"),
            avatar_url=metadata.get("avatar_url"),
        )


class IdentityClient:
    """Verifies session tokens with the identity provider over HTTP.

    Usage::

        client = IdentityClient("https://auth.example.com", api_key="...")
        identity = await client.verify(token)
        await client.close()
    """

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        timeout_s: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        headers = {"apikey": api_key} if api_key else {}
        self._http = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout_s,
            transport=transport,
        )

    async def verify(self, token: str) -> Identity:
        """Return the identity behind *token*.

        Raises
        ------
        AuthenticationError
            If the token is empty, rejected, or the provider is unreachable.
        """
        if not token:
            raise AuthenticationError("Missing session token")

        try:
            resp = await self._http.get(
                _USER_PATH,
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.HTTPError as exc:
            logger.warning("Identity provider request failed: %s", exc)
            raise AuthenticationError("Identity provider is unavailable") from exc

        if resp.status_code in (401, 403):
            raise AuthenticationError("Invalid or expired session")
        if resp.status_code != 200:
            logger.warning("Identity provider returned HTTP %d", resp.status_code)
            raise AuthenticationError("Could not verify session")

        return Identity.from_provider(resp.json())

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._http.aclose()
