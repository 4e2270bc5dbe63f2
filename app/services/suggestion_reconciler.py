"""Merge the assistant's free-text answer back into the baseline suggestions."""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, List, Optional

from pydantic import ValidationError, field_validator

from app.services.reorder_forecast import BaselineSuggestion, Priority, SuggestionOverride

logger = logging.getLogger(__name__)

_FENCED_BLOCK = re.compile(r"```(?:json)?\s*(.+?)```", re.IGNORECASE | re.DOTALL)
_DAYS = re.compile(r"days until stockout[\s:*~-]*(\d+)", re.IGNORECASE)
_PRIORITY = re.compile(r"priority(?: level)?[\s:*-]*(high|medium|low)", re.IGNORECASE)
_REASONING = (
    re.compile(r"reasoning[\s:*-]*([^\n]+)", re.IGNORECASE),
    re.compile(r"because[\s:]*([^\n]+)", re.IGNORECASE),
)


class ExtractionFailure(ValueError):
    """Nothing usable was found for one suggestion."""


class _StructuredOverride(SuggestionOverride):
    @field_validator("priority", mode="before")
    @classmethod
    def _lowercase(cls, value: Any) -> Any:
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator("reasoning", mode="before")
    @classmethod
    def _strip(cls, value: Any) -> Any:
        return (value.strip() or None) if isinstance(value, str) else value


def _entry_override(entry: Dict[str, Any]) -> SuggestionOverride:
    """Validate each field of a structured entry on its own, dropping bad ones."""

    fields: Dict[str, Any] = {}
    for key, value in entry.items():
        if key == "name" or value is None:
            continue
        try:
            parsed = _StructuredOverride.model_validate({key: value})
        except ValidationError:
            logger.debug("Ignoring invalid %s for %s", key, entry.get("name"))
            continue
        fields.update(parsed.model_dump(exclude_none=True))
    return SuggestionOverride(**fields)


def _structured_overrides(text: str) -> Dict[str, SuggestionOverride]:
    """Read overrides from the first fenced JSON block listing suggestions."""

    for candidate in _FENCED_BLOCK.findall(text):
        try:
            payload = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        entries = payload.get("suggestions") if isinstance(payload, dict) else payload
        if not isinstance(entries, list):
            continue

        overrides: Dict[str, SuggestionOverride] = {}
        for entry in entries:
            if not isinstance(entry, dict) or not entry.get("name"):
                continue
            override = _entry_override(entry)
            if not override.is_empty():
                overrides[str(entry["name"]).strip().lower()] = override
        if overrides:
            return overrides
    return {}


def _item_block(text: str, name: str) -> Optional[str]:
    match = re.search(rf"{re.escape(name)}[\s\S]*?(?=\n\n|$)", text, re.IGNORECASE)
    return match.group(0) if match else None


def _clean_reasoning(value: str) -> str:
    return value.strip().strip("*_").strip()


def extract_override(text: str, name: str) -> SuggestionOverride:
    """Best-effort search of the paragraph about ``name``.

    Raises ``ExtractionFailure`` when there is no paragraph or no field in it.
    """

    block = _item_block(text, name) if name else None
    if block is None:
        raise ExtractionFailure(f"no block for {name!r}")

    days: Optional[int] = None
    days_match = _DAYS.search(block)
    if days_match:
        days = int(days_match.group(1))

    priority: Optional[Priority] = None
    priority_match = _PRIORITY.search(block)
    if priority_match:
        priority = Priority(priority_match.group(1).lower())

    reasoning: Optional[str] = None
    for pattern in _REASONING:
        reasoning_match = pattern.search(block)
        if reasoning_match:
            reasoning = _clean_reasoning(reasoning_match.group(1)) or None
            break

    override = SuggestionOverride(days_until_stockout=days, priority=priority, reasoning=reasoning)
    if override.is_empty():
        raise ExtractionFailure(f"no fields for {name!r}")
    return override


def reconcile(baseline: List[BaselineSuggestion], full_text: str) -> List[BaselineSuggestion]:
    """Apply overrides found in ``full_text``; order and membership never change."""

    structured = _structured_overrides(full_text) if full_text else {}
    prose = _FENCED_BLOCK.sub("", full_text or "")
    reconciled: List[BaselineSuggestion] = []
    for suggestion in baseline:
        override = structured.get(suggestion.name.strip().lower())
        if override is None:
            try:
                override = extract_override(prose, suggestion.name)
            except ExtractionFailure as exc:
                logger.debug("Keeping baseline for %s: %s", suggestion.id, exc)
                reconciled.append(suggestion)
                continue
        reconciled.append(suggestion.with_override(override))
    return reconciled


__all__ = ["ExtractionFailure", "extract_override", "reconcile"]
