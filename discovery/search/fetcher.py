"""Paged business search against a single search center."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Set

from discovery.vendors import yelp

logger = logging.getLogger(__name__)

SearchFn = Callable[[Mapping[str, Any], str], Dict[str, Any]]


@dataclass
class SearchAccumulator:
    """Ordered, id-deduplicated collection bounded by ``target``."""

    target: int
    businesses: List[Dict[str, Any]] = field(default_factory=list)
    seen_ids: Set[str] = field(default_factory=set)

    @property
    def remaining(self) -> int:
        return max(0, self.target - len(self.businesses))

    @property
    def is_full(self) -> bool:
        return len(self.businesses) >= self.target

    def add(self, business: Any) -> bool:
        """Append ``business`` unless it is malformed, a duplicate, or the target is met."""
        if self.is_full or not isinstance(business, dict):
            return False
        business_id = business.get("id")
        if not business_id or not isinstance(business_id, str):
            logger.debug("Skipping business without id: %s", business)
            return False
        if business_id in self.seen_ids:
            return False
        self.seen_ids.add(business_id)
        self.businesses.append(business)
        return True


def fetch_paged(
    params: Mapping[str, Any],
    accumulator: SearchAccumulator,
    *,
    api_key: str,
    search: Optional[SearchFn] = None,
) -> Optional[int]:
    """Page through one search until the accumulator is full or results run out.

    Returns the upstream ``total`` when it was reported. Upstream failures
    propagate as ``YelpAPIError``.
    """
    search = search or yelp.business_search
    offset = 0
    total_available: Optional[int] = None
    exhausted = False

    while not exhausted and not accumulator.is_full:
        batch_limit = min(yelp.MAX_PAGE_LIMIT, accumulator.remaining)
        page_params = dict(params)
        page_params["limit"] = batch_limit
        if offset > 0:
            page_params["offset"] = offset

        data = search(page_params, api_key)
        results = data.get("businesses")
        if not isinstance(results, list):
            results = []
        total = data.get("total")
        if isinstance(total, int) and not isinstance(total, bool) and total >= 0:
            total_available = total

        offset += len(results)
        added = 0
        for business in results:
            if accumulator.is_full:
                break
            if accumulator.add(business):
                added += 1
        logger.debug(
            "Fetched page offset=%d size=%d added=%d total=%s", offset, len(results), added, total_available
        )

        if len(results) < batch_limit:
            exhausted = True
        elif total_available is not None and offset >= total_available:
            exhausted = True

    return total_available
