"""Client utilities for the Yelp Fusion business endpoints."""

import logging
from typing import Any, Dict, Mapping, Optional
from urllib.parse import quote

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from discovery.core.config import get_settings

logger = logging.getLogger(__name__)

_BASE_URL = "https://api.yelp.com/v3/businesses"

MAX_PAGE_LIMIT = 50
MAX_RADIUS_METERS = 40000
METERS_PER_MILE = 1609.34


class YelpAPIError(RuntimeError):
    """Raised when Yelp answers with a non-successful response."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message


def _build_session() -> requests.Session:
    settings = get_settings()
    session = requests.Session()
    retries = Retry(
        total=settings.max_retries,
        backoff_factor=0.5,
        status_forcelist=(429, 500, 502, 503, 504),
        allowed_methods=("GET",),
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retries)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


_SESSION = _build_session()


def miles_to_meters(miles: float) -> int:
    """Convert miles to whole meters, capped at the upstream's radius limit."""
    return min(int(round(miles * METERS_PER_MILE)), MAX_RADIUS_METERS)


def extract_error_message(payload: Any) -> str:
    """Best-effort human message from an error body."""
    if not isinstance(payload, dict):
        return "failed"
    error = payload.get("error")
    if isinstance(error, dict):
        return str(error.get("description") or error.get("code") or "failed")
    if error:
        return str(error)
    return "failed"


def _get(url: str, api_key: str, params: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    headers = {"Authorization": f"Bearer {api_key}"}
    timeout = get_settings().request_timeout
    try:
        response = _SESSION.get(url, params=dict(params or {}), headers=headers, timeout=timeout)
    except requests.RequestException as exc:
        logger.error("Yelp request errored: url=%s error=%s", url, exc)
        raise YelpAPIError(502, str(exc)) from exc
    try:
        payload = response.json()
    except ValueError:
        payload = None

    if not response.ok or not isinstance(payload, dict):
        message = extract_error_message(payload)
        logger.error("Yelp request failed: url=%s status=%s message=%s", url, response.status_code, message)
        status = response.status_code if not response.ok else 502
        raise YelpAPIError(status, message)
    return payload


def business_search(params: Mapping[str, Any], api_key: str) -> Dict[str, Any]:
    """Call the business search endpoint; returns ``{"businesses": [...], "total": n}``."""
    return _get(f"{_BASE_URL}/search", api_key, params)


def business_details(business_id: str, api_key: str) -> Dict[str, Any]:
    """Fetch the full detail record for a single business id."""
    return _get(f"{_BASE_URL}/{quote(business_id, safe='')}", api_key)
