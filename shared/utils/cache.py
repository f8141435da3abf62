"""
Read-through cache on top of the shared Redis store.

Values are stored as JSON snapshots and never invalidated on write; freshness
comes only from the short per-endpoint TTLs. Redis is an accelerator, never
the source of truth: any failure degrades to computing the value directly.
"""

import hashlib
import json
from typing import Any, Callable, Dict, Mapping, Optional

from shared.app_logging.logger import get_logger
from shared.config.settings import get_settings
from shared.utils.redis_client import RedisClient, get_redis_client

logger = get_logger(__name__)


def canonical_params(params: Mapping[str, Any]) -> Dict[str, Any]:
    """Drop empty values and sort list values so equivalent queries share a key."""
    canonical = {}
    for key, value in params.items():
        if value is None or value == "" or value == []:
            continue
        if isinstance(value, (list, tuple, set)):
            value = sorted(str(item) for item in value)
        canonical[str(key)] = value
    return canonical


def make_cache_key(prefix: str, params: Optional[Mapping[str, Any]] = None) -> str:
    """Deterministic key: ``<prefix>_<md5 of canonical JSON>``."""
    if not params:
        return prefix
    payload = json.dumps(canonical_params(params), sort_keys=True, separators=(",", ":"), default=str)
    return f"{prefix}_{hashlib.md5(payload.encode('utf-8')).hexdigest()}"


class ReadThroughCache:
    """``get_or_compute`` over a :class:`RedisClient`."""

    def __init__(self, redis_client: RedisClient, enabled: bool = True, namespace: str = "newshub"):
        self.redis = redis_client
        self.enabled = enabled
        self.namespace = namespace

    def _full_key(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    def get_or_compute(self, key: str, ttl_seconds: int, compute: Callable[[], Any]) -> Any:
        """Return the cached snapshot for ``key`` or compute, store and return it.

        ``compute`` must return JSON-serializable data. Hits and misses both
        return the decoded snapshot, so callers always see identical payloads.
        ``None`` is never cached.
        """
        if not self.enabled:
            return compute()

        full_key = self._full_key(key)
        cached = self.redis.get(full_key)
        if cached is not None:
            try:
                logger.debug(f"Cache hit: {key}")
                return json.loads(cached)
            except ValueError:
                logger.warning(f"Discarding undecodable cache entry: {key}")

        logger.debug(f"Cache miss: {key}")
        value = compute()
        if value is None:
            return None

        snapshot = json.dumps(value, default=str)
        if not self.redis.set(full_key, snapshot, ex=ttl_seconds):
            logger.warning(f"Could not store cache entry: {key}")
        return json.loads(snapshot)


_caches: Dict[str, ReadThroughCache] = {}


def get_cache(service_name: str) -> ReadThroughCache:
    """Get or create the read-through cache for a service."""
    if service_name not in _caches:
        settings = get_settings()
        _caches[service_name] = ReadThroughCache(
            get_redis_client(service_name),
            enabled=settings.cache.enabled,
            namespace=settings.service_name,
        )
    return _caches[service_name]
