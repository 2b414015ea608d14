"""Validated restaurant search request built from HTTP query parameters."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from discovery.models import GeoPoint

DEFAULT_TARGET_COUNT = 120
MAX_TARGET_COUNT = 200
MAX_PRIMARY_RADIUS_MILES = 25.0


class InvalidSearchRequest(ValueError):
    """Raised when a request cannot be searched (e.g. no location at all)."""

    def __init__(self, code: str) -> None:
        super().__init__(code)
        self.code = code


def _parse_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return None
    return parsed if math.isfinite(parsed) else None


def _parse_target_count(value: Any) -> int:
    if value is None or isinstance(value, bool):
        return DEFAULT_TARGET_COUNT
    try:
        count = int(str(value).strip())
    except (TypeError, ValueError):
        return DEFAULT_TARGET_COUNT
    return min(max(count, 1), MAX_TARGET_COUNT)


def _strip_or_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    value_str = str(value).strip()
    return value_str or None


@dataclass(frozen=True)
class RestaurantSearchRequest:
    city: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    cuisine: Optional[str] = None
    target_count: int = DEFAULT_TARGET_COUNT
    radius_miles: Optional[float] = None

    def __post_init__(self) -> None:
        if not self.city and not self.has_coords:
            raise InvalidSearchRequest("missing_location")

    @property
    def has_coords(self) -> bool:
        return (
            self.latitude is not None
            and self.longitude is not None
            and math.isfinite(self.latitude)
            and math.isfinite(self.longitude)
        )

    @property
    def origin(self) -> Optional[GeoPoint]:
        if not self.has_coords:
            return None
        return GeoPoint(latitude=self.latitude, longitude=self.longitude)

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> "RestaurantSearchRequest":
        """Build a request from query-string style parameters.

        ``limit`` (or ``maxResults``) is clamped to [1, 200]; ``radius`` is in
        miles and clamped to 25. Coordinates are only kept as a pair.
        """
        latitude = _parse_float(params.get("latitude"))
        longitude = _parse_float(params.get("longitude"))
        if latitude is None or longitude is None:
            latitude = longitude = None

        raw_limit = params.get("limit") or params.get("maxResults")
        radius = _parse_float(params.get("radius"))
        radius_miles = min(radius, MAX_PRIMARY_RADIUS_MILES) if radius is not None and radius > 0 else None

        return cls(
            city=_strip_or_none(params.get("city")),
            latitude=latitude,
            longitude=longitude,
            cuisine=_strip_or_none(params.get("cuisine")),
            target_count=_parse_target_count(raw_limit),
            radius_miles=radius_miles,
        )
