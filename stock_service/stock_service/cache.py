"""Redis-backed cache gateway for product snapshots."""

import redis
from logging_utils import get_logger

from .errors import CacheUnavailableError

logger = get_logger("stock-service")

PRODUCT_KEY_PREFIX = "product_"


def product_key(product_id: int) -> str:
    """Cache key under which a product snapshot is stored."""
    return f"{PRODUCT_KEY_PREFIX}{product_id}"


class CacheGateway:
    """Typed get/invalidate operations over a Redis client.

    The gateway never writes snapshots; entries are populated by whoever
    serves catalog reads and are removed here after every stock write.
    """

    def __init__(self, client: redis.Redis):
        self._client = client

    @classmethod
    def from_url(cls, url: str, timeout: float = 5.0) -> "CacheGateway":
        """Create a gateway with its own connection pool.

        Args:
            url: Redis URL, e.g. ``redis://localhost:6379/0``
            timeout: Socket connect and read timeout in seconds
        """
        client = redis.Redis.from_url(url, socket_timeout=timeout, socket_connect_timeout=timeout)
        logger.info(f"Redis cache gateway configured for {url}")
        return cls(client)

    def get(self, key: str) -> bytes | None:
        """Return the cached blob for ``key``, or ``None`` when absent.

        Raises:
            CacheUnavailableError: If Redis cannot be reached. Callers treat this
                as a miss and read from the catalog.
        """
        try:
            value = self._client.get(key)
        except redis.RedisError as e:
            raise CacheUnavailableError(f"Cache read failed for {key}: {e}") from e
        if isinstance(value, str):
            return value.encode("utf-8")
        return value

    def invalidate(self, key: str) -> bool:
        """Delete ``key``. Returns ``False`` (and logs) instead of raising on failure."""
        try:
            self._client.delete(key)
        except redis.RedisError as e:
            logger.warning(f"Cache invalidation failed for {key}, entry may be stale: {e}")
            return False
        logger.debug(f"Invalidated cache entry {key}")
        return True

    def ping(self) -> bool:
        try:
            return bool(self._client.ping())
        except redis.RedisError as e:
            logger.error(f"Redis ping failed: {e}")
            return False

    def close(self) -> None:
        self._client.close()
        logger.info("Redis cache gateway closed")
