"""Keyed response cache with a TTL, kept in memory and optionally in Postgres."""

from __future__ import annotations

import base64
import logging
import threading
import time
from collections import OrderedDict
from typing import Any, Dict, Iterable, List, Optional, Tuple

import psycopg2

from discovery.core import db
from discovery.models import CacheEntry

logger = logging.getLogger(__name__)

MAX_IN_MEMORY_ENTRIES = 500


def serialize_part(part: Any) -> str:
    if part is None:
        return ""
    if isinstance(part, str):
        return part
    if isinstance(part, bool):
        return "true" if part else "false"
    if isinstance(part, (int, float)):
        return str(part)
    if isinstance(part, (list, tuple)):
        return "|".join(serialize_part(item) for item in part)
    if isinstance(part, dict):
        return ",".join(f"{key}:{serialize_part(part[key])}" for key in sorted(part))
    return str(part)


def build_cache_id(parts: Iterable[Any]) -> str:
    """Stable, URL-safe identifier for a list of key parts."""
    raw = "||".join(serialize_part(part) for part in parts)
    return base64.urlsafe_b64encode(raw.encode("utf-8")).decode("ascii").rstrip("=")


class ResponseCache:
    """Read-through cache for serialized HTTP responses.

    Entries always live in a bounded in-process LRU. When ``database_url`` is
    set they are also written to the ``response_cache`` table so other
    processes can reuse them; database failures fall back to memory.
    """

    def __init__(self, database_url: Optional[str] = None, max_memory_entries: int = MAX_IN_MEMORY_ENTRIES) -> None:
        self._use_database = bool(database_url)
        self._max_entries = max_memory_entries
        self._memory: "OrderedDict[str, Tuple[float, CacheEntry]]" = OrderedDict()
        self._lock = threading.Lock()

    def _remember(self, memory_key: str, entry: CacheEntry, fetched_at: Optional[float] = None) -> None:
        with self._lock:
            self._memory[memory_key] = (fetched_at if fetched_at is not None else time.time(), entry)
            self._memory.move_to_end(memory_key)
            while len(self._memory) > self._max_entries:
                self._memory.popitem(last=False)

    def _read_memory(self, memory_key: str, ttl_seconds: Optional[float]) -> Optional[CacheEntry]:
        with self._lock:
            cached = self._memory.get(memory_key)
            if cached is None:
                return None
            fetched_at, entry = cached
            if ttl_seconds and time.time() - fetched_at > ttl_seconds:
                del self._memory[memory_key]
                return None
            return entry

    def read_cached(self, collection: str, key_parts: List[Any], ttl_seconds: Optional[float]) -> Optional[CacheEntry]:
        cache_id = build_cache_id(key_parts)
        memory_key = f"{collection}/{cache_id}"
        entry = self._read_memory(memory_key, ttl_seconds)
        if entry is not None or not self._use_database:
            return entry

        try:
            row = db.fetch_cache_entry(collection, cache_id)
        except (psycopg2.Error, RuntimeError) as exc:
            logger.error("Failed to read cache entry %s: %s", memory_key, exc)
            return None
        if not row or not row.get("body"):
            return None

        fetched_at = float(row["fetched_at"]) if row.get("fetched_at") is not None else None
        if fetched_at is None:
            return None
        if ttl_seconds and time.time() - fetched_at > ttl_seconds:
            return None

        entry = CacheEntry(
            status=row.get("status") or 200,
            content_type=row.get("content_type") or "application/json",
            body=row["body"],
            metadata=row.get("metadata"),
        )
        self._remember(memory_key, entry, fetched_at)
        return entry

    def write_cached(self, collection: str, key_parts: List[Any], entry: CacheEntry) -> None:
        if not isinstance(entry.body, str) or not entry.body:
            return
        cache_id = build_cache_id(key_parts)
        memory_key = f"{collection}/{cache_id}"
        self._remember(memory_key, entry)
        if not self._use_database:
            return

        payload: Dict[str, Any] = {
            "status": entry.status,
            "content_type": entry.content_type,
            "body": entry.body,
            "metadata": entry.metadata,
        }
        try:
            db.upsert_cache_entry(collection, cache_id, [serialize_part(part) for part in key_parts], payload)
        except (psycopg2.Error, RuntimeError) as exc:
            logger.error("Failed to write cache entry %s: %s", memory_key, exc)

    def clear(self) -> None:
        with self._lock:
            self._memory.clear()
