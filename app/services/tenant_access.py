"""Tenant membership checks guarding every inventory read."""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Protocol

from app.config.supabase_client import USERS_TABLE
from app.services.auth_service import InvalidCredentials
from app.services.postgrest_client import create_postgrest_client

logger = logging.getLogger(__name__)


class AuthorizationError(RuntimeError):
    """Raised when a verified caller has no access to the requested tenant."""


class IdentityVerifier(Protocol):
    async def verify(self, access_token: str) -> str:
        ...


@dataclass(frozen=True)
class TenantAccessRecord:
    """Tenant memberships of one user, owned by the account subsystem."""

    user_id: str
    direct_tenant_id: Optional[str] = None
    role_map: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "TenantAccessRecord":
        direct = row.get("restaurant_id") or row.get("restaurantId")
        roles = row.get("roles")
        if isinstance(roles, str):
            try:
                roles = json.loads(roles)
            except json.JSONDecodeError:
                roles = None
        return cls(
            user_id=str(row.get("id") or ""),
            direct_tenant_id=str(direct) if direct else None,
            role_map=roles if isinstance(roles, dict) else {},
        )


def has_tenant_access(record: TenantAccessRecord, tenant_id: str) -> bool:
    """A user may act on a tenant it belongs to directly or holds a role in."""

    if not tenant_id:
        return False
    if record.direct_tenant_id is not None and record.direct_tenant_id == tenant_id:
        return True
    return bool(record.role_map.get(tenant_id))


class SupabaseAccessDAO:
    """Read-only access to the user records holding tenant memberships."""

    def __init__(self, access_token: str, *, api_key: Optional[str] = None):
        self.access_token = access_token
        self.api_key = api_key

    def _client(self):
        return create_postgrest_client(self.access_token, api_key=self.api_key)

    async def fetch_access_record(self, user_id: str) -> Optional[TenantAccessRecord]:
        def _request() -> List[Dict[str, Any]]:
            with self._client() as client:
                response = (
                    client.table(USERS_TABLE)
                    .select("id,restaurant_id,roles")
                    .eq("id", user_id)
                    .limit(1)
                    .execute()
                )
                return response.data or []

        rows = await asyncio.to_thread(_request)
        if not rows:
            return None
        return TenantAccessRecord.from_row(rows[0])


class TenantAccessGate:
    """Verify the caller, then check membership of the requested tenant.

    Verification failures raise ``AuthenticationError``. Everything that goes
    wrong after the caller is known is reported as a denial.
    """

    def __init__(self, verifier: IdentityVerifier, access_dao: SupabaseAccessDAO):
        self.verifier = verifier
        self.access_dao = access_dao

    async def identify(self, bearer_token: str) -> str:
        if not bearer_token:
            raise InvalidCredentials("Authentication required.")
        return await self.verifier.verify(bearer_token)

    async def allows(self, user_id: str, tenant_id: str) -> bool:
        if not tenant_id:
            return False

        try:
            record = await self.access_dao.fetch_access_record(user_id)
        except Exception:
            logger.exception("Tenant access lookup failed for tenant %s", tenant_id)
            return False

        if record is None:
            logger.info("No access record for user %s", user_id)
            return False

        allowed = has_tenant_access(record, tenant_id)
        if not allowed:
            logger.info("User %s denied access to tenant %s", user_id, tenant_id)
        return allowed

    async def authorize(self, bearer_token: str, tenant_id: str) -> bool:
        user_id = await self.identify(bearer_token)
        return await self.allows(user_id, tenant_id)

    async def require(self, user_id: str, tenant_id: str) -> None:
        if not await self.allows(user_id, tenant_id):
            raise AuthorizationError("Not authorized to access this restaurant data.")


__all__ = [
    "AuthorizationError",
    "SupabaseAccessDAO",
    "TenantAccessGate",
    "TenantAccessRecord",
    "has_tenant_access",
]
