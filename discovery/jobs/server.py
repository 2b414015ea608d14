"""HTTP entrypoint for the restaurant search proxy (Cloud Run friendly)."""

from __future__ import annotations

import logging
import os
from typing import Any, Optional

from flask import Flask, Response, jsonify, request
from flask_cors import CORS

from discovery.core import db
from discovery.core.cache import ResponseCache
from discovery.core.config import get_settings
from discovery.search.request import InvalidSearchRequest, RestaurantSearchRequest
from discovery.search.service import search_restaurants
from discovery.vendors.yelp import YelpAPIError

# ---------- Logging ----------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)

# ---------- App & cache ----------
app = Flask(__name__)
CORS(app, resources={r"/api/*": {"origins": get_settings().cors_origins or "*"}})
_cache: Optional[ResponseCache] = None


def _get_cache() -> ResponseCache:
    global _cache
    if _cache is None:
        _cache = ResponseCache(get_settings().database_url)
    return _cache


def _resolve_api_key() -> Optional[str]:
    header_key = (request.headers.get("x-api-key") or "").strip()
    if header_key:
        return header_key
    query_key = (request.args.get("apiKey") or request.args.get("api_key") or "").strip()
    if query_key:
        return query_key
    return get_settings().yelp_api_key or None


# ---------- Routes ----------


@app.get("/")
def root() -> Any:
    """Simple root to avoid 404 on GET /"""
    return "ok", 200


@app.get("/healthz")
def healthcheck() -> Any:
    """Lightweight health endpoint; does not touch the database."""
    settings = get_settings()
    return (
        jsonify(
            {
                "status": "ok",
                "port_config": settings.port,
                "yelp_key_configured": bool(settings.yelp_api_key),
                "persistent_cache": bool(settings.database_url),
                "revision": os.getenv("K_REVISION", "unknown"),
            }
        ),
        200,
    )


@app.route("/api/restaurants", methods=["GET", "OPTIONS"])
def restaurants() -> Any:
    """
    Search restaurants around coordinates and/or a city.
    Query params: city, latitude, longitude, cuisine, limit|maxResults, radius (miles)
    """
    if request.method == "OPTIONS":
        return "", 204

    try:
        search_request = RestaurantSearchRequest.from_params(request.args)
    except InvalidSearchRequest as exc:
        return jsonify({"error": exc.code}), 400

    api_key = _resolve_api_key()
    if not api_key:
        return jsonify({"error": "missing_yelp_api_key"}), 500

    try:
        result = search_restaurants(search_request, api_key=api_key, cache=_get_cache())
    except YelpAPIError as exc:
        logger.warning("Primary restaurant search failed: status=%s message=%s", exc.status_code, exc.message)
        return jsonify({"error": exc.message}), exc.status_code
    except Exception as exc:  # noqa: BLE001
        logger.exception("Restaurants proxy failed: %s", exc)
        return jsonify({"error": "restaurants_proxy_failed"}), 500

    return Response(result.body, status=result.status, content_type=result.content_type)


def main() -> None:
    """Bind on 0.0.0.0:$PORT (Cloud Run injects PORT; 8080 locally)."""
    settings = get_settings()
    logger.info("[BOOT] ENV PORT=%s", os.getenv("PORT"))

    if settings.database_url:
        try:
            db.ensure_cache_table()
        except Exception as exc:  # noqa: BLE001
            logger.error("Unable to prepare response_cache table; continuing with memory cache: %s", exc)

    logger.info("[BOOT] Binding on 0.0.0.0:%d", settings.port)
    app.run(host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    main()
