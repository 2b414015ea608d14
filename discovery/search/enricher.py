"""Bounded-concurrency detail lookups for aggregated businesses."""

from __future__ import annotations

import logging
import queue
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, Iterable, List, Optional

from discovery.models import BusinessDetails
from discovery.vendors import yelp

logger = logging.getLogger(__name__)

DEFAULT_MAX_ENRICH = 40
DEFAULT_CONCURRENCY = 5

DetailsFn = Callable[[str, str], Dict[str, Any]]


def select_ids(businesses: Iterable[Any], max_count: int) -> List[str]:
    """Unique business ids in first-seen order, at most ``max_count``."""
    ids: List[str] = []
    seen = set()
    if max_count <= 0:
        return ids
    for business in businesses:
        if not isinstance(business, dict):
            continue
        raw_id = business.get("id")
        business_id = raw_id if isinstance(raw_id, str) else ""
        if not business_id or business_id in seen:
            continue
        seen.add(business_id)
        ids.append(business_id)
        if len(ids) >= max_count:
            break
    return ids


def _drain(work: "queue.Queue[str]", api_key: str, details: DetailsFn) -> Dict[str, BusinessDetails]:
    results: Dict[str, BusinessDetails] = {}
    while True:
        try:
            business_id = work.get_nowait()
        except queue.Empty:
            return results
        try:
            subset = BusinessDetails.from_payload(details(business_id, api_key))
        except Exception as exc:  # noqa: BLE001
            logger.warning("Details fetch failed for %s: %s", business_id, exc)
            continue
        if subset is None:
            logger.debug("No usable details for %s", business_id)
            continue
        results[business_id] = subset


def fetch_business_details(
    businesses: Iterable[Any],
    *,
    api_key: str,
    max_count: int = DEFAULT_MAX_ENRICH,
    concurrency: int = DEFAULT_CONCURRENCY,
    details: Optional[DetailsFn] = None,
) -> Dict[str, BusinessDetails]:
    """Fetch detail subsets for up to ``max_count`` businesses.

    Workers pull ids from one shared queue until it is empty, so a slow lookup
    only holds up its own worker. Failed lookups are left out of the result.
    """
    details = details or yelp.business_details
    ids = select_ids(businesses, max_count)
    if not ids:
        return {}

    work: "queue.Queue[str]" = queue.Queue()
    for business_id in ids:
        work.put(business_id)

    worker_count = max(1, min(concurrency, len(ids)))
    merged: Dict[str, BusinessDetails] = {}
    with ThreadPoolExecutor(max_workers=worker_count, thread_name_prefix="yelp-details") as executor:
        futures = [executor.submit(_drain, work, api_key, details) for _ in range(worker_count)]
        for future in futures:
            merged.update(future.result())

    logger.info("Fetched details for %d of %d businesses", len(merged), len(ids))
    return merged
