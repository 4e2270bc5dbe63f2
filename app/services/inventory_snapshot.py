"""Tenant-scoped reads feeding the reorder forecast."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Iterable, List, Optional

from httpx import HTTPError as HttpxError
from postgrest import APIError as PostgrestAPIError
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from app.config.supabase_client import (
    INGREDIENTS_TABLE,
    PURCHASE_ORDERS_TABLE,
    STOCK_TRANSACTIONS_TABLE,
    WASTE_LOG_TABLE,
)
from app.services.errors import UpstreamError
from app.services.postgrest_client import create_postgrest_client, upstream_error_from_postgrest

logger = logging.getLogger(__name__)

STOCK_EVENTS_LIMIT = 100
PURCHASE_ORDERS_LIMIT = 50
WASTE_ENTRIES_LIMIT = 50


class InventoryItem(BaseModel):
    """One stocked ingredient as stored by the inventory screens."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str
    name: str
    quantity: Optional[float] = Field(
        default=None, validation_alias=AliasChoices("quantity", "currentStock", "current_stock")
    )
    unit: str = ""
    par: float = Field(default=0.0, validation_alias=AliasChoices("par", "parLevel", "par_level"))
    reorder_point: Optional[float] = Field(
        default=None,
        validation_alias=AliasChoices("reorder_point", "reorderPoint", "minStockLevel", "min_stock_level"),
    )
    category: str = ""
    usage_rate: Optional[float] = Field(default=None, validation_alias=AliasChoices("usage_rate", "usageRate"))
    cost: Optional[float] = Field(
        default=None, validation_alias=AliasChoices("cost", "costPerUnit", "cost_per_unit")
    )
    supplier: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value: Any) -> Any:
        return str(value) if value is not None else value

    @field_validator("unit", "category", mode="before")
    @classmethod
    def _blank_if_missing(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("par", mode="before")
    @classmethod
    def _zero_if_missing(cls, value: Any) -> Any:
        return 0.0 if value is None else value


class InventorySnapshot(BaseModel):
    items: List[InventoryItem] = Field(default_factory=list)
    recent_stock_events: List[Dict[str, Any]] = Field(default_factory=list)
    recent_purchase_orders: List[Dict[str, Any]] = Field(default_factory=list)
    recent_waste_entries: List[Dict[str, Any]] = Field(default_factory=list)


def parse_inventory_items(rows: Iterable[Dict[str, Any]]) -> List[InventoryItem]:
    """Validate raw ingredient rows, skipping the ones that cannot be used."""

    items: List[InventoryItem] = []
    for row in rows:
        try:
            items.append(InventoryItem.model_validate(row))
        except ValidationError as exc:
            logger.warning(
                "Skipping ingredient %s: %d invalid field(s)",
                row.get("id", "<unknown>"),
                exc.error_count(),
            )
    return items


class SupabaseInventoryDAO:
    """DAO reading one restaurant's inventory collections from PostgREST."""

    def __init__(
        self,
        restaurant_id: str,
        access_token: str,
        *,
        api_key: Optional[str] = None,
    ):
        self.restaurant_id = str(restaurant_id)
        self.access_token = access_token
        self.api_key = api_key

    def _client(self):
        return create_postgrest_client(self.access_token, api_key=self.api_key)

    def _select(
        self,
        client,
        table: str,
        *,
        order_by: str,
        descending: bool = True,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        query = (
            client.table(table)
            .select("*")
            .eq("restaurant_id", self.restaurant_id)
            .order(order_by, desc=descending)
        )
        if limit is not None:
            query = query.limit(limit)
        return query.execute().data or []

    async def fetch_snapshot(self) -> InventorySnapshot:
        """Read ingredients plus the most recent stock, order and waste records."""

        def _request() -> Dict[str, List[Dict[str, Any]]]:
            with self._client() as client:
                return {
                    "ingredients": self._select(client, INGREDIENTS_TABLE, order_by="name", descending=False),
                    "stock_events": self._select(
                        client, STOCK_TRANSACTIONS_TABLE, order_by="timestamp", limit=STOCK_EVENTS_LIMIT
                    ),
                    "purchase_orders": self._select(
                        client, PURCHASE_ORDERS_TABLE, order_by="created_at", limit=PURCHASE_ORDERS_LIMIT
                    ),
                    "waste": self._select(client, WASTE_LOG_TABLE, order_by="timestamp", limit=WASTE_ENTRIES_LIMIT),
                }

        try:
            dataset = await asyncio.to_thread(_request)
        except PostgrestAPIError as exc:
            raise upstream_error_from_postgrest(exc, context="inventory snapshot") from exc
        except HttpxError as exc:
            logger.error("Supabase inventory snapshot unreachable: %s", exc)
            raise UpstreamError("Supabase is temporarily unreachable.") from exc

        return InventorySnapshot(
            items=parse_inventory_items(dataset["ingredients"]),
            recent_stock_events=dataset["stock_events"],
            recent_purchase_orders=dataset["purchase_orders"],
            recent_waste_entries=dataset["waste"],
        )


__all__ = [
    "InventoryItem",
    "InventorySnapshot",
    "SupabaseInventoryDAO",
    "parse_inventory_items",
]
