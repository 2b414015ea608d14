"""CLI job to run one restaurant search and print the JSON result."""

import argparse
import logging
import sys
from typing import Optional, Sequence

from discovery.core.cache import ResponseCache
from discovery.core.config import ConfigError, get_settings
from discovery.search.request import DEFAULT_TARGET_COUNT, RestaurantSearchRequest
from discovery.search.service import search_restaurants

logger = logging.getLogger(__name__)


def run_search_job(
    *,
    city: Optional[str],
    latitude: Optional[float],
    longitude: Optional[float],
    cuisine: Optional[str],
    limit: int,
    radius: Optional[float],
) -> str:
    settings = get_settings()
    api_key = settings.yelp_api_key
    if not api_key:
        raise ConfigError("YELP_API_KEY is required")

    search_request = RestaurantSearchRequest.from_params(
        {
            "city": city,
            "latitude": latitude,
            "longitude": longitude,
            "cuisine": cuisine,
            "limit": limit,
            "radius": radius,
        }
    )
    logger.info("Running restaurant search: %s", search_request)

    result = search_restaurants(
        search_request,
        api_key=api_key,
        cache=ResponseCache(settings.database_url),
        settings=settings,
    )
    return result.body


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run a Yelp restaurant search")
    parser.add_argument("--city", dest="city", help="City name")
    parser.add_argument("--lat", dest="latitude", type=float, help="Origin latitude")
    parser.add_argument("--lng", dest="longitude", type=float, help="Origin longitude")
    parser.add_argument("--cuisine", dest="cuisine", help="Cuisine search term")
    parser.add_argument("--radius", dest="radius", type=float, help="Primary search radius in miles (max 25)")
    parser.add_argument(
        "--limit",
        dest="limit",
        type=int,
        default=DEFAULT_TARGET_COUNT,
        help="Number of unique restaurants to collect (1-200)",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.city and (args.latitude is None or args.longitude is None):
        parser.error("either --city or both --lat and --lng are required")

    try:
        body = run_search_job(
            city=args.city,
            latitude=args.latitude,
            longitude=args.longitude,
            cuisine=args.cuisine,
            limit=args.limit,
            radius=args.radius,
        )
    except ConfigError as exc:
        logger.error("Configuration error: %s", exc)
        raise SystemExit(2) from exc

    sys.stdout.write(body + "\n")


if __name__ == "__main__":
    main()
