"""AI-assisted inventory endpoints: baseline reorder list and streamed advice."""

from __future__ import annotations

import logging
from typing import Callable, List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from fastapi.responses import StreamingResponse
from openai import AsyncOpenAI
from pydantic import ValidationError

from app.schemas import InventoryAIRequest
from app.services.auth_service import AuthenticationError, SupabaseIdentityVerifier
from app.services.completion_relay import CompletionStreamRelay
from app.services.errors import UpstreamError
from app.services.inventory_prompts import build_brief, build_user_instruction
from app.services.inventory_snapshot import InventorySnapshot, SupabaseInventoryDAO
from app.services.postgrest_client import extract_bearer_token, resolve_postgrest_credentials
from app.services.reorder_forecast import BaselineSuggestion, forecast_reorders
from app.services.tenant_access import AuthorizationError, SupabaseAccessDAO, TenantAccessGate

router = APIRouter(prefix="/api/ai/inventory", tags=["inventory-ai"])
logger = logging.getLogger(__name__)

InventoryDAOFactory = Callable[[str], SupabaseInventoryDAO]

GENERIC_ERROR = "An error occurred processing your request."


async def get_access_token(
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> str:
    """Extract the Supabase bearer token from the Authorization header."""

    return extract_bearer_token(authorization)


def get_identity_verifier() -> SupabaseIdentityVerifier:
    return SupabaseIdentityVerifier()


async def get_tenant_gate(
    access_token: str = Depends(get_access_token),
    verifier: SupabaseIdentityVerifier = Depends(get_identity_verifier),
) -> TenantAccessGate:
    db_token, api_key = resolve_postgrest_credentials(access_token)
    return TenantAccessGate(verifier, SupabaseAccessDAO(db_token, api_key=api_key))


async def get_inventory_dao_factory(
    access_token: str = Depends(get_access_token),
) -> InventoryDAOFactory:
    db_token, api_key = resolve_postgrest_credentials(access_token)

    def _factory(tenant_id: str) -> SupabaseInventoryDAO:
        return SupabaseInventoryDAO(tenant_id, db_token, api_key=api_key)

    return _factory


def get_completion_client(request: Request) -> Optional[AsyncOpenAI]:
    """The client built by the application lifespan, if configured."""

    return getattr(request.app.state, "completion_client", None)


async def _read_payload(request: Request) -> Optional[InventoryAIRequest]:
    """Parse the JSON body; anything unreadable counts as missing parameters."""

    try:
        body = await request.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    try:
        return InventoryAIRequest.model_validate(body)
    except ValidationError:
        return None


async def _authorize_request(
    gate: TenantAccessGate,
    access_token: str,
    request: Request,
    *,
    require_request_type: bool,
) -> InventoryAIRequest:
    """Run the gate: 401 for the credential, then 400 for the body, then 403."""

    try:
        user_id = await gate.identify(access_token)
    except AuthenticationError as exc:
        raise HTTPException(status_code=401, detail="Invalid token.") from exc

    payload = await _read_payload(request)
    if payload is None or not payload.tenant_id or (require_request_type and not payload.request_type):
        raise HTTPException(status_code=400, detail="Missing required parameters.")

    try:
        await gate.require(user_id, payload.tenant_id)
    except AuthorizationError as exc:
        raise HTTPException(status_code=403, detail=str(exc)) from exc
    return payload


async def _load_snapshot(dao_factory: InventoryDAOFactory, tenant_id: str) -> InventorySnapshot:
    try:
        return await dao_factory(tenant_id).fetch_snapshot()
    except UpstreamError as exc:
        logger.error("Inventory snapshot failed for tenant %s: %s", tenant_id, exc)
        raise HTTPException(status_code=500, detail=GENERIC_ERROR) from exc
    except Exception as exc:
        logger.exception("Unexpected inventory snapshot failure for tenant %s", tenant_id)
        raise HTTPException(status_code=500, detail=GENERIC_ERROR) from exc


@router.post("/baseline", response_model=List[BaselineSuggestion])
async def baseline_reorders(
    request: Request,
    access_token: str = Depends(get_access_token),
    gate: TenantAccessGate = Depends(get_tenant_gate),
    dao_factory: InventoryDAOFactory = Depends(get_inventory_dao_factory),
) -> List[BaselineSuggestion]:
    """Return the deterministic reorder suggestions for the tenant.

    Body: ``{"tenantId": ...}``.
    """

    payload = await _authorize_request(gate, access_token, request, require_request_type=False)
    snapshot = await _load_snapshot(dao_factory, payload.tenant_id)
    return forecast_reorders(snapshot.items)


@router.post("")
async def stream_inventory_advice(
    request: Request,
    access_token: str = Depends(get_access_token),
    gate: TenantAccessGate = Depends(get_tenant_gate),
    dao_factory: InventoryDAOFactory = Depends(get_inventory_dao_factory),
    completion_client: Optional[AsyncOpenAI] = Depends(get_completion_client),
) -> StreamingResponse:
    """Stream the assistant's analysis of the tenant's inventory as plain text.

    Body: ``{"tenantId": ..., "requestType": ...}``.
    """

    payload = await _authorize_request(gate, access_token, request, require_request_type=True)
    if completion_client is None:
        logger.error("AI inventory request rejected: completion client not configured")
        raise HTTPException(status_code=500, detail=GENERIC_ERROR)

    snapshot = await _load_snapshot(dao_factory, payload.tenant_id)
    system_prompt = build_brief(snapshot, payload.request_type)
    relay = CompletionStreamRelay(completion_client)
    try:
        await relay.open(system_prompt, build_user_instruction(payload.request_type))
    except UpstreamError as exc:
        raise HTTPException(status_code=500, detail=GENERIC_ERROR) from exc
    except Exception as exc:
        logger.exception("Unexpected completion setup failure for tenant %s", payload.tenant_id)
        raise HTTPException(status_code=500, detail=GENERIC_ERROR) from exc

    return StreamingResponse(relay.chunks(), media_type="text/plain; charset=utf-8")
