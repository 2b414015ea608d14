"""Assemble a target number of unique restaurants from origin, rings and city fallback."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from discovery.search.fetcher import SearchAccumulator, SearchFn, fetch_paged
from discovery.search.geo import generate_rings
from discovery.search.request import RestaurantSearchRequest
from discovery.vendors import yelp

logger = logging.getLogger(__name__)

SEARCH_CATEGORY = "restaurants"
MAX_RINGS = 8
BASE_RINGS = 3
RESULTS_PER_EXTRA_RING = 40
RING_STEP_MILES = 14.0
DEFAULT_RING_START_MILES = 16.0
MIN_RING_START_MILES = 12.0
MAX_RING_START_MILES = 28.0


@dataclass
class FetchOutcome:
    """Result of one recoverable fetch step."""

    label: str
    added: int = 0
    total_available: Optional[int] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def build_base_params(request: RestaurantSearchRequest) -> Dict[str, Any]:
    """Parameters for the primary call: distance-sorted around coordinates, else by city."""
    params: Dict[str, Any] = {"categories": SEARCH_CATEGORY}
    if request.has_coords:
        params["latitude"] = request.latitude
        params["longitude"] = request.longitude
        params["sort_by"] = "distance"
        if request.radius_miles:
            params["radius"] = yelp.miles_to_meters(request.radius_miles)
    elif request.city:
        params["location"] = request.city
    if request.cuisine:
        params["term"] = request.cuisine
    return params


def city_fallback_params(base_params: Mapping[str, Any], city: str) -> Dict[str, Any]:
    params = {
        key: value
        for key, value in base_params.items()
        if key not in {"latitude", "longitude", "radius", "sort_by"}
    }
    params["location"] = city
    return params


def rings_needed(remaining: int) -> int:
    return min(MAX_RINGS, BASE_RINGS + math.ceil(remaining / RESULTS_PER_EXTRA_RING))


def ring_start_distance(radius_miles: Optional[float]) -> float:
    if radius_miles:
        return min(max(radius_miles, MIN_RING_START_MILES), MAX_RING_START_MILES)
    return DEFAULT_RING_START_MILES


def _attempt(
    label: str,
    params: Mapping[str, Any],
    accumulator: SearchAccumulator,
    *,
    api_key: str,
    search: Optional[SearchFn],
) -> FetchOutcome:
    before = len(accumulator.businesses)
    try:
        total = fetch_paged(params, accumulator, api_key=api_key, search=search)
    except yelp.YelpAPIError as exc:
        return FetchOutcome(label=label, added=len(accumulator.businesses) - before, error=exc)
    return FetchOutcome(label=label, added=len(accumulator.businesses) - before, total_available=total)


def _expand_rings(
    request: RestaurantSearchRequest,
    base_params: Mapping[str, Any],
    accumulator: SearchAccumulator,
    *,
    api_key: str,
    search: Optional[SearchFn],
) -> List[FetchOutcome]:
    ring_count = rings_needed(accumulator.remaining)
    centers = generate_rings(
        request.origin,
        ring_count,
        ring_start_distance(request.radius_miles),
        RING_STEP_MILES,
    )
    logger.info(
        "Expanding search: %d results short, %d rings, %d centers",
        accumulator.remaining,
        ring_count,
        len(centers),
    )

    outcomes: List[FetchOutcome] = []
    for center in centers:
        if accumulator.is_full:
            break
        params = dict(base_params)
        params["latitude"] = center.latitude
        params["longitude"] = center.longitude
        params["radius"] = yelp.MAX_RADIUS_METERS
        outcome = _attempt(f"ring {center.rounded_key()}", params, accumulator, api_key=api_key, search=search)
        if not outcome.ok:
            logger.warning("Ring fetch failed for %s: %s", center.rounded_key(), outcome.error)
        outcomes.append(outcome)
    return outcomes


def aggregate_businesses(
    request: RestaurantSearchRequest,
    *,
    api_key: str,
    search: Optional[SearchFn] = None,
) -> List[Dict[str, Any]]:
    """Collect up to ``request.target_count`` unique businesses.

    The primary call is fatal on failure. Ring expansion runs only with
    coordinates, the city fallback only when both coordinates and a city were
    given, and both only while the target is unmet; their failures are logged and skipped.
    """
    accumulator = SearchAccumulator(target=request.target_count)
    base_params = build_base_params(request)

    total = fetch_paged(base_params, accumulator, api_key=api_key, search=search)
    logger.info(
        "Primary search returned %d of %d (total=%s)", len(accumulator.businesses), request.target_count, total
    )

    if request.has_coords and not accumulator.is_full:
        outcomes = _expand_rings(request, base_params, accumulator, api_key=api_key, search=search)
        logger.info(
            "Ring expansion finished: centers=%d failed=%d collected=%d",
            len(outcomes),
            sum(1 for outcome in outcomes if not outcome.ok),
            len(accumulator.businesses),
        )

    if request.has_coords and request.city and not accumulator.is_full:
        outcome = _attempt(
            "city fallback",
            city_fallback_params(base_params, request.city),
            accumulator,
            api_key=api_key,
            search=search,
        )
        if outcome.ok:
            logger.info("City fallback added %d results", outcome.added)
        else:
            logger.warning("City fallback failed for %s: %s", request.city, outcome.error)

    return accumulator.businesses
