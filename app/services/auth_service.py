"""Verification of Supabase access tokens."""

from __future__ import annotations

import base64
import json
import logging
import time
from typing import Any, Dict, Optional

import httpx

from app.config.supabase_client import SUPABASE_ANON_KEY, SUPABASE_URL

logger = logging.getLogger(__name__)


class AuthenticationError(RuntimeError):
    """Base error raised when a caller identity cannot be established."""


class InvalidCredentials(AuthenticationError):
    """Raised when the token is malformed, expired or rejected by Supabase."""


def decode_access_token(access_token: str) -> Dict[str, Any]:
    """Return the decoded JWT payload without checking the signature."""

    if not access_token:
        raise InvalidCredentials("Authentication required.")

    try:
        payload_segment = access_token.split(".")[1]
        padding = "=" * (-len(payload_segment) % 4)
        decoded = base64.urlsafe_b64decode((payload_segment + padding).encode("ascii"))
        payload = json.loads(decoded.decode("utf-8"))
    except (IndexError, ValueError) as exc:
        raise InvalidCredentials("Malformed access token.") from exc
    if not isinstance(payload, dict):
        raise InvalidCredentials("Malformed access token.")
    return payload


def is_token_expired(claims: Dict[str, Any], *, now: Optional[float] = None) -> bool:
    raw_exp = claims.get("exp")
    if raw_exp is None:
        return False
    try:
        expires_at = float(raw_exp)
    except (TypeError, ValueError):
        return True
    return expires_at <= (now if now is not None else time.time())


class SupabaseIdentityVerifier:
    """Resolve a bearer token to a user id through Supabase Auth.

    Malformed or locally expired tokens are rejected before any network call.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 10.0,
    ) -> None:
        self.base_url = (base_url or SUPABASE_URL or "").rstrip("/")
        self.api_key = api_key or SUPABASE_ANON_KEY
        self._transport = transport
        self._timeout = timeout

    async def verify(self, access_token: str) -> str:
        claims = decode_access_token(access_token)
        if is_token_expired(claims):
            raise InvalidCredentials("Access token expired.")

        if not self.base_url or not self.api_key:
            raise AuthenticationError("Supabase is not configured on the server.")

        headers = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {access_token}",
        }
        url = f"{self.base_url}/auth/v1/user"

        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.get(url, headers=headers)
        except httpx.HTTPError as exc:
            logger.error("Supabase identity check unreachable: %s", exc)
            raise AuthenticationError("Unable to reach the authentication service.") from exc

        if response.status_code in (401, 403):
            raise InvalidCredentials("Access token rejected.")

        if not response.is_success:
            logger.error("Supabase identity check failed (%s)", response.status_code)
            raise AuthenticationError("Authentication service unavailable.")

        try:
            data = response.json()
        except ValueError:
            data = None

        user_id = data.get("id") if isinstance(data, dict) else None
        if not user_id:
            logger.error("Supabase identity response missing user id")
            raise AuthenticationError("Invalid authentication response.")
        return str(user_id)


__all__ = [
    "AuthenticationError",
    "InvalidCredentials",
    "SupabaseIdentityVerifier",
    "decode_access_token",
    "is_token_expired",
]
