"""
Caller-side cache for computed attention feeds.

Entries are keyed by user, window and the user's state version. Any state
mutation bumps the version, so stale feeds are never read again and simply
expire. Redis failures degrade to a live run.
"""

from app.config import settings
from app.infrastructure.observability.logging import get_logger
from app.services.redis_client import fast_redis

logger = get_logger(__name__)

FEED_KEY = "attention:feed:{user_id}:{window_hours}:v{version}"
VERSION_KEY = "attention:state_version:{user_id}"


class AttentionFeedCache:
    def __init__(self, redis_client=None, ttl_s: int | None = None, enabled: bool | None = None):
        self._redis = redis_client
        self.ttl_s = settings.ATTENTION_FEED_CACHE_TTL_S if ttl_s is None else ttl_s
        self.enabled = settings.ATTENTION_FEED_CACHE_ENABLED if enabled is None else enabled

    @property
    def redis(self):
        return self._redis if self._redis is not None else fast_redis

    async def state_version(self, user_id: str) -> int:
        raw = await self.redis.get(VERSION_KEY.format(user_id=user_id))
        if not raw:
            return 0
        try:
            return int(raw)
        except (TypeError, ValueError):
            logger.warning("Ignoring malformed attention state version", user_id=user_id)
            return 0

    def feed_key(self, user_id: str, window_hours: int, version: int) -> str:
        return FEED_KEY.format(user_id=user_id, window_hours=window_hours, version=version)

    async def get(self, user_id: str, window_hours: int, version: int) -> str | None:
        """Return the feed serialized at ``version``, or None on miss."""
        if not self.enabled:
            return None
        payload = await self.redis.get(self.feed_key(user_id, window_hours, version))
        logger.debug("Attention feed cache lookup", user_id=user_id, hit=payload is not None)
        return payload

    async def set(self, user_id: str, window_hours: int, version: int, payload: str) -> bool:
        """
        Store a feed under the version read before it was computed.

        A mutation landing mid-run bumps the version past ``version``, so the
        entry written here is never read.
        """
        if not self.enabled:
            return False
        key = self.feed_key(user_id, window_hours, version)
        return await self.redis.set_with_ttl(key, payload, self.ttl_s)

    async def invalidate(self, user_id: str) -> int | None:
        """Bump the user's state version so every cached window is bypassed."""
        version = await self.redis.incr(VERSION_KEY.format(user_id=user_id))
        if version is None:
            logger.warning("Attention feed cache invalidation failed", user_id=user_id)
        return version


attention_feed_cache = AttentionFeedCache()
