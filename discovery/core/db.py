"""Database helpers for the response cache."""

import logging
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

from psycopg2 import extras, pool

from discovery.core.config import get_settings

logger = logging.getLogger(__name__)

_connection_pool: Optional[pool.SimpleConnectionPool] = None


def init_pool(minconn: int = 1, maxconn: int = 5) -> pool.SimpleConnectionPool:
    """Initialise and return the shared connection pool."""
    global _connection_pool
    if _connection_pool is None:
        settings = get_settings()
        if not settings.database_url:
            raise RuntimeError("DATABASE_URL is required for database connections")
        _connection_pool = pool.SimpleConnectionPool(
            minconn,
            maxconn,
            dsn=settings.database_url,
            connect_timeout=10,
        )
        logger.info("Database connection pool initialised")
    return _connection_pool


@contextmanager
def get_connection():
    """Context manager yielding a pooled connection."""
    pg_pool = init_pool()
    conn = pg_pool.getconn()
    try:
        yield conn
    finally:
        pg_pool.putconn(conn)


_CREATE_CACHE_TABLE = """
CREATE TABLE IF NOT EXISTS response_cache (
    collection TEXT NOT NULL,
    cache_id TEXT NOT NULL,
    key_parts JSONB NOT NULL,
    status INTEGER NOT NULL,
    content_type TEXT NOT NULL,
    body TEXT NOT NULL,
    metadata JSONB,
    fetched_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    PRIMARY KEY (collection, cache_id)
);
"""

_SELECT_CACHE_ENTRY = """
SELECT
    status,
    content_type,
    body,
    metadata,
    EXTRACT(EPOCH FROM fetched_at) AS fetched_at
FROM response_cache
WHERE collection = %(collection)s AND cache_id = %(cache_id)s;
"""

_UPSERT_CACHE_ENTRY = """
INSERT INTO response_cache (
    collection,
    cache_id,
    key_parts,
    status,
    content_type,
    body,
    metadata,
    fetched_at
) VALUES (
    %(collection)s,
    %(cache_id)s,
    %(key_parts)s,
    %(status)s,
    %(content_type)s,
    %(body)s,
    %(metadata)s,
    NOW()
)
ON CONFLICT (collection, cache_id) DO UPDATE SET
    key_parts = EXCLUDED.key_parts,
    status = EXCLUDED.status,
    content_type = EXCLUDED.content_type,
    body = EXCLUDED.body,
    metadata = EXCLUDED.metadata,
    fetched_at = NOW();
"""


def ensure_cache_table() -> None:
    with get_connection() as conn:
        with conn.cursor() as cur:
            cur.execute(_CREATE_CACHE_TABLE)
        conn.commit()
        logger.info("response_cache table is ready")


def _prepare_params(
    collection: str,
    cache_id: str,
    key_parts: List[str],
    entry: Dict[str, Any],
) -> Dict[str, Any]:
    return {
        "collection": collection,
        "cache_id": cache_id,
        "key_parts": extras.Json(list(key_parts)),
        "status": entry.get("status"),
        "content_type": entry.get("content_type"),
        "body": entry.get("body"),
        "metadata": extras.Json(entry.get("metadata")) if entry.get("metadata") is not None else None,
    }


def fetch_cache_entry(collection: str, cache_id: str) -> Optional[Dict[str, Any]]:
    """Return the stored row for ``cache_id`` or ``None`` when absent."""
    with get_connection() as conn:
        with conn.cursor(cursor_factory=extras.RealDictCursor) as cur:
            cur.execute(_SELECT_CACHE_ENTRY, {"collection": collection, "cache_id": cache_id})
            row = cur.fetchone()
    if not row:
        return None
    return dict(row)


def upsert_cache_entry(collection: str, cache_id: str, key_parts: List[str], entry: Dict[str, Any]) -> None:
    """Persist a cache entry, replacing any previous value for the same id."""
    params = _prepare_params(collection, cache_id, key_parts, entry)
    if not params["body"]:
        raise ValueError("body is required for cache upsert")

    with get_connection() as conn:
        with conn.cursor() as cur:
            cur.execute(_UPSERT_CACHE_ENTRY, params)
        conn.commit()
        logger.debug("Upserted cache entry %s/%s", collection, cache_id)
