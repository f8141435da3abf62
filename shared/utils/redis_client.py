"""
Standardized Redis client utilities for NewsHub services.
Provides connection pooling and consistent error handling. Callers treat
Redis as best-effort: failed reads come back as misses and failed writes
as ``False``.
"""

from typing import Dict, Optional

import redis

from shared.app_logging.logger import get_logger
from shared.config.settings import get_settings


class RedisClient:
    """Redis client wrapper with lazy connection and logged failures."""

    def __init__(self, service_name: str, client: Optional[redis.Redis] = None):
        self.service_name = service_name
        self.settings = get_settings()
        self._client: Optional[redis.Redis] = client
        self._logger = get_logger(f"{service_name}.redis")

    def _get_client(self) -> redis.Redis:
        """Get or create Redis client with connection pooling."""
        if self._client is None:
            try:
                self._client = redis.from_url(
                    self.settings.redis.redis_url,
                    decode_responses=True,
                    socket_timeout=self.settings.service.redis_timeout,
                    retry_on_timeout=True,
                    max_connections=20,
                    health_check_interval=30,
                )
                self._client.ping()
                self._logger.info("✅ Connected to Redis successfully")

            except Exception as e:
                self._client = None
                self._logger.error(f"❌ Failed to connect to Redis: {e}")
                raise

        return self._client

    def ping(self) -> bool:
        """Test Redis connection."""
        try:
            client = self._get_client()
            return bool(client.ping())
        except Exception as e:
            self._logger.error(f"Redis ping failed: {e}")
            return False

    def get(self, key: str) -> Optional[str]:
        """Get value by key; ``None`` on miss or error."""
        try:
            client = self._get_client()
            value = client.get(key)
            if isinstance(value, bytes):
                value = value.decode("utf-8")
            return value
        except Exception as e:
            self._logger.error(f"Failed to get key {key}: {e}")
            return None

    def set(self, key: str, value: str, ex: Optional[int] = None) -> bool:
        """Set key-value pair with optional expiration."""
        try:
            client = self._get_client()
            return bool(client.set(key, value, ex=ex))
        except Exception as e:
            self._logger.error(f"Failed to set key {key}: {e}")
            return False

    def close(self):
        """Close Redis connection."""
        if self._client:
            self._client.close()
            self._client = None
            self._logger.info("Redis connection closed")


# Global Redis client instances for each service
_redis_clients: Dict[str, RedisClient] = {}


def get_redis_client(service_name: str) -> RedisClient:
    """Get or create Redis client for a service."""
    if service_name not in _redis_clients:
        _redis_clients[service_name] = RedisClient(service_name)
    return _redis_clients[service_name]


def close_all_redis_clients():
    """Close all Redis client connections."""
    for client in _redis_clients.values():
        client.close()
    _redis_clients.clear()
