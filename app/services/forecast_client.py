"""Caller-side helper consuming the AI inventory endpoints."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional

import httpx

from app.services.auth_service import InvalidCredentials
from app.services.errors import UpstreamError
from app.services.inventory_prompts import REORDER_FORECAST
from app.services.reorder_forecast import BaselineSuggestion
from app.services.suggestion_reconciler import reconcile
from app.services.tenant_access import AuthorizationError

logger = logging.getLogger(__name__)

ChunkCallback = Callable[[str], Any]


class ForecastStreamError(UpstreamError):
    """The advice stream failed; the baseline fetched beforehand is attached."""

    def __init__(self, message: str, baseline: List[BaselineSuggestion]):
        super().__init__(message)
        self.baseline = baseline


def _error_for(response: httpx.Response) -> Exception:
    try:
        detail = response.json().get("detail")
    except (ValueError, AttributeError):
        detail = None
    message = detail or f"AI inventory request failed ({response.status_code})."
    if response.status_code == 401:
        return InvalidCredentials(message)
    if response.status_code == 403:
        return AuthorizationError(message)
    if response.status_code == 400:
        return ValueError(message)
    return UpstreamError(message)


class InventoryAIClient:
    """Fetch the baseline, accumulate the streamed advice and reconcile both.

    A stream that closes abruptly is a failure even when text was received.
    """

    def __init__(
        self,
        base_url: str,
        access_token: str,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 60.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.access_token = access_token
        self._transport = transport
        self._timeout = timeout

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, timeout=self._timeout, transport=self._transport)

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.access_token}"}

    async def fetch_baseline(self, tenant_id: str) -> List[BaselineSuggestion]:
        try:
            async with self._client() as client:
                response = await client.post(
                    "/api/ai/inventory/baseline",
                    json={"tenantId": tenant_id},
                    headers=self._headers(),
                )
        except httpx.HTTPError as exc:
            logger.error("Baseline request unreachable: %s", exc)
            raise UpstreamError("AI inventory service unreachable.") from exc

        if response.status_code != 200:
            raise _error_for(response)
        return [BaselineSuggestion.model_validate(entry) for entry in response.json()]

    async def stream_advice(
        self,
        tenant_id: str,
        request_type: str,
        on_chunk: Optional[ChunkCallback] = None,
    ) -> str:
        """Return the complete advice text, handing each chunk to ``on_chunk`` first."""

        parts: List[str] = []
        try:
            async with self._client() as client:
                async with client.stream(
                    "POST",
                    "/api/ai/inventory",
                    json={"tenantId": tenant_id, "requestType": request_type},
                    headers=self._headers(),
                ) as response:
                    if response.status_code != 200:
                        await response.aread()
                        raise _error_for(response)
                    async for text in response.aiter_text():
                        if not text:
                            continue
                        parts.append(text)
                        if on_chunk is not None:
                            on_chunk(text)
        except httpx.HTTPError as exc:
            logger.error("AI inventory stream interrupted after %d chunk(s): %s", len(parts), exc)
            raise UpstreamError("AI inventory stream ended abruptly.") from exc
        return "".join(parts)

    async def reorder_forecast(
        self,
        tenant_id: str,
        on_chunk: Optional[ChunkCallback] = None,
    ) -> List[BaselineSuggestion]:
        baseline = await self.fetch_baseline(tenant_id)
        try:
            text = await self.stream_advice(tenant_id, REORDER_FORECAST, on_chunk)
        except UpstreamError as exc:
            raise ForecastStreamError(str(exc), baseline) from exc
        return reconcile(baseline, text)


__all__ = ["ForecastStreamError", "InventoryAIClient"]
