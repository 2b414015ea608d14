"""Cached restaurant search: the unit of work behind ``GET /api/restaurants``."""

from __future__ import annotations

import json
import logging
from typing import List, NamedTuple, Optional

from discovery.core.cache import ResponseCache
from discovery.core.config import Settings, get_settings
from discovery.etl.transform import simplify_businesses
from discovery.models import CacheEntry
from discovery.search.aggregator import aggregate_businesses
from discovery.search.enricher import fetch_business_details
from discovery.search.request import RestaurantSearchRequest

logger = logging.getLogger(__name__)

CACHE_COLLECTION = "yelpCache"
JSON_CONTENT_TYPE = "application/json"


class SearchResponse(NamedTuple):
    status: int
    content_type: str
    body: str
    cached: bool = False


def cache_key_parts(request: RestaurantSearchRequest) -> List[str]:
    """Canonical key parts; logically identical requests produce identical parts."""
    parts = ["yelp"]
    if request.has_coords:
        parts.append("coords")
        parts.append(f"{request.latitude:.4f},{request.longitude:.4f}")
    else:
        parts.append("coords:none")
    city = (request.city or "").strip().lower()
    if city:
        parts.append(f"city:{city}")
    cuisine = (request.cuisine or "").strip().lower()
    if cuisine:
        parts.append(f"cuisine:{cuisine}")
    parts.append(f"limit:{request.target_count}")
    if request.radius_miles:
        parts.append(f"radius:{round(request.radius_miles, 1):g}")
    else:
        parts.append("radius:none")
    return parts


def search_restaurants(
    request: RestaurantSearchRequest,
    *,
    api_key: str,
    cache: ResponseCache,
    settings: Optional[Settings] = None,
) -> SearchResponse:
    settings = settings or get_settings()
    key_parts = cache_key_parts(request)

    cached = cache.read_cached(CACHE_COLLECTION, key_parts, settings.cache_ttl_seconds)
    if cached is not None:
        logger.info("Serving cached restaurants for %s", key_parts)
        return SearchResponse(cached.status, cached.content_type, cached.body, cached=True)

    businesses = aggregate_businesses(request, api_key=api_key)
    details_by_id = fetch_business_details(
        businesses,
        api_key=api_key,
        max_count=settings.details_max_enrich,
        concurrency=settings.details_concurrency,
    )
    simplified = simplify_businesses(businesses, details_by_id)
    body = json.dumps(simplified)

    cache.write_cached(
        CACHE_COLLECTION,
        key_parts,
        CacheEntry(
            status=200,
            content_type=JSON_CONTENT_TYPE,
            body=body,
            metadata={
                "city": request.city or "",
                "hasCoords": request.has_coords,
                "latitude": request.latitude if request.has_coords else None,
                "longitude": request.longitude if request.has_coords else None,
                "cuisine": request.cuisine or "",
                "requestedLimit": request.target_count,
                "returned": len(simplified),
                "radiusMiles": request.radius_miles,
            },
        ),
    )
    logger.info("Returning %d restaurants (requested %d)", len(simplified), request.target_count)
    return SearchResponse(200, JSON_CONTENT_TYPE, body)
