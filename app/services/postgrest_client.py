"""Shared utilities for talking to Supabase/PostgREST."""

from __future__ import annotations

import logging
from typing import Dict, Optional

from fastapi import HTTPException
from postgrest import APIError as PostgrestAPIError
from postgrest import SyncPostgrestClient

from app.config.supabase_client import SUPABASE_ANON_KEY, SUPABASE_SERVICE_ROLE_KEY, SUPABASE_URL
from app.services.errors import UpstreamError

logger = logging.getLogger(__name__)


def extract_bearer_token(header_value: Optional[str]) -> str:
    """Return the Bearer token from an Authorization header."""

    if not header_value:
        raise HTTPException(status_code=401, detail="Authentication required.")
    parts = header_value.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(status_code=401, detail="Invalid bearer token.")
    token = parts[1].strip()
    if not token:
        raise HTTPException(status_code=401, detail="Missing bearer token.")
    return token


def create_postgrest_client(
    access_token: str,
    *,
    api_key: Optional[str] = None,
) -> SyncPostgrestClient:
    """Instantiate a PostgREST client authenticated with the provided token."""

    resolved_api_key = api_key or SUPABASE_ANON_KEY
    if not SUPABASE_URL or not resolved_api_key:
        raise UpstreamError("Supabase is not configured.")

    headers: Dict[str, str] = {
        "apikey": resolved_api_key,
        "Accept": "application/json",
    }

    client = SyncPostgrestClient(f"{SUPABASE_URL.rstrip('/')}/rest/v1", headers=headers)
    client.auth(access_token)
    return client


def resolve_postgrest_credentials(access_token: str) -> tuple[str, Optional[str]]:
    """Return the token/api key pair to use with PostgREST."""

    if SUPABASE_SERVICE_ROLE_KEY:
        return SUPABASE_SERVICE_ROLE_KEY, SUPABASE_SERVICE_ROLE_KEY
    return access_token, None


def upstream_error_from_postgrest(exc: PostgrestAPIError, *, context: str) -> UpstreamError:
    """Log a PostgREST failure and wrap it for the caller to raise."""

    status_code = postgrest_status(exc)
    detail = exc.message or "Supabase request failed."
    logger.error("%s failed (%s): %s", context, status_code, detail)
    return UpstreamError(f"{context} failed ({status_code})")


def postgrest_status(exc: PostgrestAPIError) -> int:
    """Best effort extraction of an HTTP status code from the API error."""

    try:
        return int(exc.code) if exc.code else 502
    except (TypeError, ValueError):
        return 502


__all__ = [
    "create_postgrest_client",
    "extract_bearer_token",
    "postgrest_status",
    "resolve_postgrest_credentials",
    "upstream_error_from_postgrest",
]
