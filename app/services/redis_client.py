# app/services/redis_client.py
import redis.asyncio as redis
from redis.asyncio.connection import ConnectionPool

from app.config import settings
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class FastRedisClient:
    """Pooled Redis client. Every operation degrades to a falsy result on error."""

    def __init__(self):
        self.pool = None
        self.client = None
        self._initialized = False

    async def initialize(self):
        """Initialize connection pool on startup"""
        if self._initialized:
            return

        try:
            redis_url = self._build_upstash_redis_url()
            self.pool = ConnectionPool.from_url(
                redis_url,
                max_connections=20,
                retry_on_timeout=True,
                socket_connect_timeout=10,
                socket_timeout=10,
                health_check_interval=30,
                decode_responses=True,
            )
            self.client = redis.Redis(connection_pool=self.pool)

            await self.client.ping()
            self._initialized = True
            logger.info("Redis client initialized", max_connections=20)

        except Exception as e:
            logger.error("Failed to initialize Redis client", error=str(e))
            self._initialized = False
            raise RuntimeError("Redis initialization failed") from e

    def _build_upstash_redis_url(self) -> str:
        """Turn the Upstash REST URL + token into a native rediss:// URL."""
        rest_url = settings.UPSTASH_REDIS_REST_URL
        token = settings.UPSTASH_REDIS_REST_TOKEN
        host = rest_url.removeprefix("https://").removeprefix("http://").strip("/")
        return f"rediss://default:{token}@{host}:6379"

    async def close(self):
        """Clean shutdown"""
        try:
            if self.client:
                await self.client.aclose()
            if self.pool:
                await self.pool.disconnect()
            logger.info("Redis client closed")
        except Exception as e:
            logger.error("Error closing Redis client", error=str(e))
        finally:
            self._initialized = False

    @property
    def available(self) -> bool:
        return self._initialized

    async def ping(self) -> bool:
        """Test Redis connection"""
        if not self._initialized:
            return False
        try:
            return bool(await self.client.ping())
        except Exception as e:
            logger.error("Redis ping failed", error=str(e))
            return False

    async def get(self, key: str) -> str | None:
        if not self._initialized:
            return None
        try:
            return await self.client.get(key)
        except Exception as e:
            logger.error("Redis GET failed", key=key[:40], error=str(e))
            return None

    async def set_with_ttl(self, key: str, value: str, ttl_s: int | None = None) -> bool:
        if not self._initialized:
            return False
        try:
            if ttl_s:
                result = await self.client.setex(key, ttl_s, value)
            else:
                result = await self.client.set(key, value)
            return bool(result)
        except Exception as e:
            logger.error("Redis SET failed", key=key[:40], error=str(e))
            return False

    async def incr(self, key: str) -> int | None:
        if not self._initialized:
            return None
        try:
            return int(await self.client.incr(key))
        except Exception as e:
            logger.error("Redis INCR failed", key=key[:40], error=str(e))
            return None


# Global instance
fast_redis = FastRedisClient()
