"""Core data models shared by the restaurant search pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True, slots=True)
class GeoPoint:
    """A WGS84 coordinate pair in degrees."""

    latitude: float
    longitude: float

    def rounded_key(self, digits: int = 4) -> str:
        return f"{self.latitude:.{digits}f},{self.longitude:.{digits}f}"


@dataclass(slots=True)
class BusinessDetails:
    """Subset of the per-business detail payload used for service inference."""

    attributes: Optional[Dict[str, Any]] = None
    transactions: Optional[List[Any]] = None
    service_options: Optional[Dict[str, Any]] = None

    @classmethod
    def from_payload(cls, data: Any) -> Optional["BusinessDetails"]:
        """Pick the usable fields out of a raw detail response, or ``None``."""
        if not isinstance(data, dict):
            return None
        attributes = data.get("attributes")
        transactions = data.get("transactions")
        service_options = data.get("service_options")
        details = cls(
            attributes=attributes if isinstance(attributes, dict) else None,
            transactions=transactions if isinstance(transactions, list) else None,
            service_options=service_options if isinstance(service_options, dict) else None,
        )
        if details.attributes is None and details.transactions is None and details.service_options is None:
            return None
        return details


@dataclass(slots=True)
class ServiceOptions:
    """Tri-state takeout / dine-in flags. ``True`` is sticky once set."""

    takeout: Optional[bool] = None
    sit_down: Optional[bool] = None

    def set(self, name: str, value: Optional[bool]) -> None:
        if not isinstance(value, bool):
            return
        if value:
            setattr(self, name, True)
        elif getattr(self, name) is not True:
            setattr(self, name, False)

    def has_info(self) -> bool:
        return self.takeout is not None or self.sit_down is not None

    def to_dict(self) -> Dict[str, Optional[bool]]:
        return {"takeout": self.takeout, "sitDown": self.sit_down}


@dataclass(slots=True)
class CacheEntry:
    """A cached HTTP response body plus the metadata recorded when it was built."""

    status: int
    content_type: str
    body: str
    metadata: Optional[Dict[str, Any]] = field(default=None, repr=False)
