from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from threading import Lock
from typing import Any, Protocol

import redis

from resource_browser.core.config import settings

_LOG = logging.getLogger("resource_browser.count_cache")

COUNT_KIND = "count"


class CountCache(Protocol):
    def get(self, entity_type: str, kind: str) -> Any | None:
        ...

    def put(self, entity_type: str, kind: str, value: int, ttl_seconds: int) -> None:
        ...


class CountExecutor(Protocol):
    def execute_scalar(self, stmt, options: dict[str, Any] | None = None) -> Any:
        ...


class InMemoryCountCache:
    def __init__(self):
        self._data: dict[tuple[str, str], tuple[int, datetime]] = {}
        self._lock = Lock()

    def get(self, entity_type: str, kind: str) -> int | None:
        now = datetime.now(timezone.utc)
        with self._lock:
            entry = self._data.get((entity_type, kind))
            if entry is None:
                return None
            value, expires_at = entry
            if expires_at <= now:
                del self._data[(entity_type, kind)]
                return None
        return value

    def put(self, entity_type: str, kind: str, value: int, ttl_seconds: int) -> None:
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=max(int(ttl_seconds), 1))
        with self._lock:
            self._data[(entity_type, kind)] = (int(value), expires_at)


class NullCountCache:
    def get(self, entity_type: str, kind: str) -> None:
        return None

    def put(self, entity_type: str, kind: str, value: int, ttl_seconds: int) -> None:
        return None


class RedisCountCache:
    def __init__(self, client: redis.Redis, prefix: str = settings.COUNT_CACHE_KEY_PREFIX):
        self.client = client
        self.prefix = prefix

    def _key(self, entity_type: str, kind: str) -> str:
        return f"{self.prefix}:{entity_type}:{kind}"

    def get(self, entity_type: str, kind: str) -> int | None:
        try:
            raw = self.client.get(self._key(entity_type, kind))
        except redis.RedisError:
            _LOG.warning("Count cache read failed for %s; counting live", entity_type, exc_info=True)
            return None
        if raw is None:
            return None
        try:
            return int(raw)
        except (TypeError, ValueError):
            return None

    def put(self, entity_type: str, kind: str, value: int, ttl_seconds: int) -> None:
        try:
            self.client.setex(self._key(entity_type, kind), int(max(ttl_seconds, 1)), int(value))
        except redis.RedisError:
            _LOG.warning("Count cache write failed for %s", entity_type, exc_info=True)


_cached_store: CountCache | None = None


def _build_count_cache() -> CountCache:
    if not settings.COUNT_CACHE_ENABLED:
        return NullCountCache()
    try:
        client = redis.Redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_timeout=settings.REDIS_SOCKET_TIMEOUT_SECONDS,
            socket_connect_timeout=settings.REDIS_SOCKET_TIMEOUT_SECONDS,
        )
        client.ping()
        return RedisCountCache(client)
    except Exception:
        _LOG.warning("Redis count cache unavailable; fallback to in-memory cache")
        return InMemoryCountCache()


def get_count_cache() -> CountCache:
    global _cached_store
    if _cached_store is None:
        _cached_store = _build_count_cache()
    return _cached_store


def reset_count_cache_for_tests() -> None:
    global _cached_store
    _cached_store = None


def total_count(
    entity_type: str,
    eligible: bool,
    query,
    options: dict[str, Any] | None,
    *,
    executor: CountExecutor,
    cache: CountCache,
) -> int:
    result = int(executor.execute_scalar(query.to_count_select(), options) or 0)
    if eligible and result > settings.COUNT_CACHE_THRESHOLD:
        cache.put(entity_type, COUNT_KIND, result, settings.COUNT_CACHE_TTL_SECONDS)
        _LOG.info("Cached count for %s: %s (ttl=%ss)", entity_type, result, settings.COUNT_CACHE_TTL_SECONDS)
    return result


def cached_total_count(
    entity_type: str,
    eligible: bool,
    query,
    options: dict[str, Any] | None = None,
    *,
    executor: CountExecutor,
    cache: CountCache,
) -> int:
    """Total rows of ``query``; the unfiltered view may be served from ``cache``.

    Only eligible calls read or write the cache, so narrowed views are always
    counted live.
    """
    if not eligible:
        return total_count(entity_type, False, query, options, executor=executor, cache=cache)
    cached = cache.get(entity_type, COUNT_KIND)
    if cached is not None:
        _LOG.debug("Count cache hit for %s: %s", entity_type, cached)
        return int(cached)
    return total_count(entity_type, True, query, options, executor=executor, cache=cache)
