"""Utilities for transforming Yelp business records into client payloads."""

import logging
from typing import Any, Dict, Iterable, List, Optional

from discovery.models import BusinessDetails, ServiceOptions

logger = logging.getLogger(__name__)

_TAKEOUT_TRANSACTIONS = {"pickup", "delivery", "takeout"}
_DINE_IN_TRANSACTIONS = {"dine-in", "dinein", "dine_in", "restaurant_reservation"}
_TRUE_STRINGS = {"1", "true", "yes", "y"}
_FALSE_STRINGS = {"0", "false", "no", "n"}


def parse_loose_boolean(value: Any) -> Optional[bool]:
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        if value == 1:
            return True
        if value == 0:
            return False
        return None
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in _TRUE_STRINGS:
            return True
        if normalized in _FALSE_STRINGS:
            return False
    return None


def _apply_transactions(options: ServiceOptions, transactions: Any) -> None:
    if not isinstance(transactions, list):
        return
    normalized = {item.strip().lower() for item in transactions if isinstance(item, str) and item.strip()}
    if normalized & _TAKEOUT_TRANSACTIONS:
        options.set("takeout", True)
    if normalized & _DINE_IN_TRANSACTIONS:
        options.set("sit_down", True)


def derive_service_options(
    search_business: Optional[Dict[str, Any]] = None,
    details: Optional[BusinessDetails] = None,
) -> ServiceOptions:
    """Reconcile takeout / dine-in availability from every signal Yelp exposes.

    Signals are applied from weakest to strongest: transaction tags from the
    search result and the detail lookup, then attribute flags (detail first,
    else search), then the detail ``service_options`` block. A later signal
    can set ``False`` only where no earlier signal said ``True``.
    """
    options = ServiceOptions()
    search_business = search_business if isinstance(search_business, dict) else {}

    _apply_transactions(options, search_business.get("transactions"))
    if details is not None:
        _apply_transactions(options, details.transactions)

    attributes = None
    if details is not None and isinstance(details.attributes, dict):
        attributes = details.attributes
    elif isinstance(search_business.get("attributes"), dict):
        attributes = search_business["attributes"]
    attributes = attributes or {}

    options.set("takeout", parse_loose_boolean(attributes.get("RestaurantsTakeOut")))
    options.set("takeout", parse_loose_boolean(attributes.get("RestaurantsDelivery")))
    options.set("sit_down", parse_loose_boolean(attributes.get("RestaurantsTableService")))
    options.set("sit_down", parse_loose_boolean(attributes.get("RestaurantsReservations")))

    service_options = details.service_options if details is not None else None
    if isinstance(service_options, dict):
        options.set("takeout", parse_loose_boolean(service_options.get("takeout")))
        dine_in = service_options.get("dine_in")
        if dine_in is None:
            dine_in = service_options.get("dineIn")
        options.set("sit_down", parse_loose_boolean(dine_in))

    return options


def _number_or_none(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


def _format_address(location: Dict[str, Any]) -> str:
    display_address = location.get("display_address")
    if isinstance(display_address, list):
        return ", ".join(str(line) for line in display_address)
    return location.get("address1") or ""


def _category_titles(categories: Any) -> List[str]:
    if not isinstance(categories, list):
        return []
    return [category.get("title") for category in categories if isinstance(category, dict) and category.get("title")]


def simplify_business(business: Any, details: Optional[BusinessDetails] = None) -> Optional[Dict[str, Any]]:
    """Map a raw search record (plus optional details) to the client-facing shape."""
    if not isinstance(business, dict) or not business.get("id"):
        return None

    location = business.get("location") if isinstance(business.get("location"), dict) else {}
    coordinates = business.get("coordinates") if isinstance(business.get("coordinates"), dict) else {}
    options = derive_service_options(business, details)

    simplified = {
        "id": business.get("id"),
        "name": business.get("name"),
        "address": _format_address(location),
        "city": location.get("city") or "",
        "state": location.get("state") or "",
        "zip": location.get("zip_code") or "",
        "phone": business.get("display_phone") or business.get("phone") or "",
        "rating": business.get("rating"),
        "reviewCount": business.get("review_count"),
        "price": business.get("price") or "",
        "categories": _category_titles(business.get("categories")),
        "latitude": _number_or_none(coordinates.get("latitude")),
        "longitude": _number_or_none(coordinates.get("longitude")),
        "url": business.get("url") or "",
        "distance": _number_or_none(business.get("distance")),
    }
    if options.has_info():
        simplified["serviceOptions"] = options.to_dict()
    return simplified


def simplify_businesses(
    businesses: Iterable[Any],
    details_by_id: Dict[str, BusinessDetails],
) -> List[Dict[str, Any]]:
    results = []
    for business in businesses:
        business_id = business.get("id") if isinstance(business, dict) else None
        simplified = simplify_business(business, details_by_id.get(business_id) if business_id else None)
        if simplified is None:
            logger.debug("Dropping malformed business record: %s", business)
            continue
        results.append(simplified)
    return results
