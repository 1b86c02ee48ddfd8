"""
Cache Module

Namespaced key/value cache with TTLs, used for the GraphQL query cache and
the session store. Two backends:
- in-process memory (default; single worker, tests)
- Redis via redis.asyncio (shared between workers)

Values are JSON-serialized in both backends so behaviour does not depend on
which one is configured.
"""

import json
import time
from datetime import timedelta
from fnmatch import fnmatchcase
from typing import Any, Callable, Dict, Optional, Tuple, Union

import structlog
from redis.asyncio import ConnectionPool, Redis

from storefront.config import get_settings

logger = structlog.get_logger(__name__)


class CacheBackend:
    """Backend interface; stores serialized strings"""

    async def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        raise NotImplementedError

    async def delete(self, *keys: str) -> int:
        raise NotImplementedError

    async def keys(self, pattern: str) -> list:
        raise NotImplementedError

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        pass


class MemoryBackend(CacheBackend):
    """Process-local backend with lazy expiry"""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._data: Dict[str, Tuple[str, Optional[float]]] = {}
        self._clock = clock

    def _alive(self, key: str) -> bool:
        entry = self._data.get(key)
        if entry is None:
            return False
        expires_at = entry[1]
        if expires_at is not None and expires_at <= self._clock():
            del self._data[key]
            return False
        return True

    async def get(self, key: str) -> Optional[str]:
        if not self._alive(key):
            return None
        return self._data[key][0]

    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        expires_at = self._clock() + ttl if ttl else None
        self._data[key] = (value, expires_at)

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self._alive(key):
                del self._data[key]
                removed += 1
        return removed

    async def keys(self, pattern: str) -> list:
        return [k for k in list(self._data) if fnmatchcase(k, pattern) and self._alive(k)]


class RedisBackend(CacheBackend):
    """Redis backend with a shared connection pool"""

    def __init__(self, client: Redis, pool: Optional[ConnectionPool] = None):
        self._client = client
        self._pool = pool

    @classmethod
    def from_settings(cls) -> "RedisBackend":
        settings = get_settings()
        pool = ConnectionPool.from_url(
            settings.redis.get_url(),
            max_connections=settings.redis.max_connections,
            socket_timeout=settings.redis.socket_timeout,
            decode_responses=settings.redis.decode_responses,
        )
        return cls(Redis(connection_pool=pool), pool)

    async def get(self, key: str) -> Optional[str]:
        return await self._client.get(key)

    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        if ttl:
            await self._client.setex(key, ttl, value)
        else:
            await self._client.set(key, value)

    async def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        return await self._client.delete(*keys)

    async def keys(self, pattern: str) -> list:
        return [key async for key in self._client.scan_iter(match=pattern)]

    async def ping(self) -> bool:
        return bool(await self._client.ping())

    async def close(self) -> None:
        await self._client.aclose()
        if self._pool is not None:
            await self._pool.disconnect()


# Process-wide backend, set up in the application lifespan
_backend: Optional[CacheBackend] = None


async def init_cache(backend: Optional[CacheBackend] = None) -> CacheBackend:
    """Initialize the cache backend selected in settings"""
    global _backend

    if backend is not None:
        _backend = backend
        return _backend

    if _backend is not None:
        return _backend

    settings = get_settings()
    if settings.cache.backend == "redis":
        candidate = RedisBackend.from_settings()
        try:
            await candidate.ping()
            logger.info("Redis cache connection established")
        except Exception as e:
            logger.error(f"Redis connection failed: {e}")
            await candidate.close()
            raise
        _backend = candidate
    else:
        _backend = MemoryBackend()
        logger.info("Using in-memory cache backend")

    return _backend


async def close_cache() -> None:
    """Close the cache backend"""
    global _backend

    if _backend is not None:
        await _backend.close()
        _backend = None
        logger.info("Cache backend closed")


def get_cache_backend() -> CacheBackend:
    """Get the active cache backend"""
    if _backend is None:
        raise RuntimeError("Cache not initialized. Call init_cache() first.")
    return _backend


class CacheManager:
    """
    Cache manager with namespace support.

    Example:
        cache = CacheManager("graphql", default_ttl=300)
        await cache.set("orders:page=0", payload)
        payload = await cache.get("orders:page=0")
    """

    def __init__(
        self,
        namespace: str,
        default_ttl: Optional[int] = 3600,
        backend: Optional[CacheBackend] = None,
    ):
        self.namespace = namespace
        self.default_ttl = default_ttl
        self._backend = backend

    @property
    def backend(self) -> CacheBackend:
        return self._backend or get_cache_backend()

    def _key(self, key: str) -> str:
        """Generate namespaced key"""
        return f"{self.namespace}:{key}"

    async def get(self, key: str) -> Optional[Any]:
        """Get value from cache"""
        value = await self.backend.get(self._key(key))
        if value is None:
            return None
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return value

    async def set(
        self,
        key: str,
        value: Any,
        ttl: Optional[Union[int, timedelta]] = None,
    ) -> bool:
        """Set value in cache"""
        try:
            serialized = json.dumps(value, default=str)
        except (TypeError, ValueError) as e:
            logger.warning(f"Failed to serialize value for cache: {e}")
            return False

        if isinstance(ttl, timedelta):
            ttl = int(ttl.total_seconds())
        await self.backend.set(self._key(key), serialized, ttl or self.default_ttl)
        return True

    async def delete(self, key: str) -> bool:
        """Delete key from cache"""
        return await self.backend.delete(self._key(key)) > 0

    async def invalidate(self, pattern: str = "*") -> int:
        """Invalidate keys in the namespace matching ``pattern``"""
        keys = await self.backend.keys(self._key(pattern))
        if not keys:
            return 0
        return await self.backend.delete(*keys)
