"""Deterministic reorder suggestions computed from the current stock levels."""

from __future__ import annotations

import math
from enum import Enum
from typing import Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.services.inventory_snapshot import InventoryItem

DEFAULT_DAYS_WITH_STOCK = 14
HIGH_PRIORITY_MAX_DAYS = 2
MEDIUM_PRIORITY_MAX_DAYS = 5


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {Priority.HIGH: 0, Priority.MEDIUM: 1, Priority.LOW: 2}

REASONING_BY_PRIORITY = {
    Priority.HIGH: "Critically low stock",
    Priority.MEDIUM: "Approaching stockout based on usage patterns",
    Priority.LOW: "Below reorder threshold",
}


class SuggestionOverride(BaseModel):
    """Fields recovered from the assistant's answer for one suggestion."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    days_until_stockout: Optional[int] = Field(default=None, ge=0)
    priority: Optional[Priority] = None
    reasoning: Optional[str] = None

    def is_empty(self) -> bool:
        return self.days_until_stockout is None and self.priority is None and not self.reasoning


class BaselineSuggestion(BaseModel):
    """Reorder recommendation for a single ingredient."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    name: str
    current_stock: float
    reorder_amount: float = Field(ge=0)
    unit: str
    priority: Priority
    days_until_stockout: int = Field(ge=0)
    reasoning: str
    ai_enhanced: bool = False
    override: Optional[SuggestionOverride] = None

    def with_override(self, override: SuggestionOverride) -> "BaselineSuggestion":
        """Return a copy carrying the override; unchanged when it holds nothing."""

        if override.is_empty():
            return self
        update = {"ai_enhanced": True, "override": override}
        if override.days_until_stockout is not None:
            update["days_until_stockout"] = override.days_until_stockout
        if override.priority is not None:
            update["priority"] = override.priority
        if override.reasoning:
            update["reasoning"] = override.reasoning
        return self.model_copy(update=update)


def days_until_stockout(item: InventoryItem) -> int:
    """Calendar days left at the item's weekly usage rate."""

    quantity = item.quantity or 0.0
    if item.usage_rate is not None and item.usage_rate > 0:
        # Rounded first so float noise never pushes an exact day count up by one.
        days = round(quantity * 7 / item.usage_rate, 9)
        return max(0, math.ceil(days))
    return DEFAULT_DAYS_WITH_STOCK if quantity > 0 else 0


def priority_for(days: int) -> Priority:
    if days <= HIGH_PRIORITY_MAX_DAYS:
        return Priority.HIGH
    if days <= MEDIUM_PRIORITY_MAX_DAYS:
        return Priority.MEDIUM
    return Priority.LOW


def forecast_reorders(items: Iterable[InventoryItem]) -> List[BaselineSuggestion]:
    """Suggest reorders for every item at or below its reorder point.

    Items missing a stock level or a reorder point are never eligible.

    The result is ordered by priority (high first), then by the number of
    days left before stockout.
    """

    suggestions: List[BaselineSuggestion] = []
    for item in items:
        if item.quantity is None or item.reorder_point is None:
            continue
        if item.quantity > item.reorder_point:
            continue

        days = days_until_stockout(item)
        priority = priority_for(days)
        suggestions.append(
            BaselineSuggestion(
                id=item.id,
                name=item.name,
                current_stock=item.quantity,
                reorder_amount=max(0.0, item.par - item.quantity),
                unit=item.unit,
                priority=priority,
                days_until_stockout=days,
                reasoning=REASONING_BY_PRIORITY[priority],
            )
        )

    suggestions.sort(key=lambda entry: (entry.priority.rank, entry.days_until_stockout))
    return suggestions


__all__ = [
    "BaselineSuggestion",
    "Priority",
    "SuggestionOverride",
    "days_until_stockout",
    "forecast_reorders",
    "priority_for",
]
