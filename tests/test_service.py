import json

import pytest

from discovery.core.cache import ResponseCache
from discovery.core.config import Settings
from discovery.models import BusinessDetails, CacheEntry
from discovery.search import service
from discovery.search.request import RestaurantSearchRequest


@pytest.fixture
def settings():
    return Settings(yelp_api_key="key", database_url="", details_max_enrich=2, details_concurrency=2)


def test_cache_key_parts_full():
    request = RestaurantSearchRequest(
        city="Austin", latitude=30.26721, longitude=-97.74306, cuisine="Thai", target_count=60, radius_miles=5.0
    )

    assert service.cache_key_parts(request) == [
        "yelp",
        "coords",
        "30.2672,-97.7431",
        "city:austin",
        "cuisine:thai",
        "limit:60",
        "radius:5",
    ]


def test_cache_key_parts_city_only():
    assert service.cache_key_parts(RestaurantSearchRequest(city="Austin")) == [
        "yelp",
        "coords:none",
        "city:austin",
        "limit:120",
        "radius:none",
    ]


def test_equivalent_requests_share_cache_key():
    first = RestaurantSearchRequest.from_params(
        {"city": " AUSTIN", "cuisine": "thai ", "latitude": "30.26721", "longitude": "-97.74306", "radius": "12.54"}
    )
    second = RestaurantSearchRequest.from_params(
        {"radius": "12.5", "longitude": "-97.743061", "latitude": "30.267209", "cuisine": "Thai", "city": "austin "}
    )

    assert service.cache_key_parts(first) == service.cache_key_parts(second)


def test_cache_hit_skips_upstream(monkeypatch, settings):
    cache = ResponseCache()
    request = RestaurantSearchRequest(city="Austin")
    cache.write_cached(
        service.CACHE_COLLECTION,
        service.cache_key_parts(request),
        CacheEntry(status=200, content_type="application/json", body='[{"id": "cached"}]'),
    )

    def fail(*args, **kwargs):
        raise AssertionError("upstream should not be called")

    monkeypatch.setattr(service, "aggregate_businesses", fail)

    result = service.search_restaurants(request, api_key="key", cache=cache, settings=settings)

    assert result.cached is True
    assert json.loads(result.body) == [{"id": "cached"}]


def test_cache_miss_aggregates_enriches_and_writes(monkeypatch, settings):
    cache = ResponseCache()
    request = RestaurantSearchRequest(city="Austin", latitude=30.0, longitude=-97.0, target_count=3)
    captured = {}

    def fake_aggregate(req, *, api_key):
        captured["api_key"] = api_key
        return [{"id": "a", "name": "A"}, {"id": "b", "name": "B"}, {"name": "broken"}]

    def fake_details(businesses, *, api_key, max_count, concurrency):
        captured["max_count"] = max_count
        captured["concurrency"] = concurrency
        return {"a": BusinessDetails(transactions=["pickup"])}

    monkeypatch.setattr(service, "aggregate_businesses", fake_aggregate)
    monkeypatch.setattr(service, "fetch_business_details", fake_details)

    result = service.search_restaurants(request, api_key="key", cache=cache, settings=settings)

    payload = json.loads(result.body)
    assert result.status == 200
    assert result.cached is False
    assert [item["id"] for item in payload] == ["a", "b"]
    assert payload[0]["serviceOptions"] == {"takeout": True, "sitDown": None}
    assert captured == {"api_key": "key", "max_count": 2, "concurrency": 2}

    cached = cache.read_cached(service.CACHE_COLLECTION, service.cache_key_parts(request), 60)
    assert cached.body == result.body
    assert cached.metadata["returned"] == 2
    assert cached.metadata["hasCoords"] is True
    assert cached.metadata["requestedLimit"] == 3
