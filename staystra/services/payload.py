"""Shape checks and extraction for the provider's rentalizer payload."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from ..core.errors import MalformedProviderPayload, MissingProviderSections
from ..core.utils import truncate
from ..data.base import ComparableProperty, MarketStatistics

REQUIRED_SECTIONS = ("property_details", "property_statistics", "combined_market_info")


@dataclass
class ProviderData:
    details: dict
    statistics: dict
    comps: list
    market_info: dict

    @property
    def market_statistics(self) -> MarketStatistics:
        return MarketStatistics.from_payload(self.statistics)

    @property
    def comparables(self) -> list[ComparableProperty]:
        return [ComparableProperty.from_payload(c) for c in self.comps]


def excerpt(payload: Any, limit: int = 1000) -> str:
    try:
        text = json.dumps(payload, indent=2, default=str)
    except (TypeError, ValueError):
        text = repr(payload)
    return truncate(text, limit)


def validate_payload(payload: Any) -> dict:
    """Return ``payload["data"]`` or raise if the structure is unusable."""
    data = payload.get("data") if isinstance(payload, dict) else None
    if not isinstance(data, dict):
        raise MalformedProviderPayload(
            f"Provider payload missing main data key. Raw: {excerpt(payload)}"
        )
    # Present but empty (e.g. combined_market_info: {}) is acceptable
    missing = [key for key in REQUIRED_SECTIONS if data.get(key) is None]
    if missing:
        raise MissingProviderSections(
            f"Provider payload missing required sections {missing}. Raw: {excerpt(payload)}"
        )
    return data


def extract(payload: Any) -> ProviderData:
    data = validate_payload(payload)
    comps = data.get("comps")
    return ProviderData(
        details=data["property_details"],
        statistics=data["property_statistics"],
        comps=comps if isinstance(comps, list) else [],
        market_info=data["combined_market_info"],
    )
