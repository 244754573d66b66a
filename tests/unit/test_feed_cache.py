import pytest

from app.features.attention.services.feed_cache import AttentionFeedCache


@pytest.mark.asyncio
async def test_set_then_get_round_trip(fake_redis):
    cache = AttentionFeedCache(redis_client=fake_redis, ttl_s=30, enabled=True)

    await cache.set("user-123", 24, 0, '{"ok": true}')

    assert await cache.get("user-123", 24, 0) == '{"ok": true}'
    assert await cache.get("user-123", 48, 0) is None
    assert "attention:feed:user-123:24:v0" in fake_redis.store


@pytest.mark.asyncio
async def test_invalidate_bumps_version_and_misses(fake_redis):
    cache = AttentionFeedCache(redis_client=fake_redis, ttl_s=30, enabled=True)
    await cache.set("user-123", 24, 0, "payload")

    version = await cache.invalidate("user-123")

    assert version == 1
    assert await cache.state_version("user-123") == 1
    assert await cache.get("user-123", 24, 1) is None
    assert cache.feed_key("user-123", 24, 1) == "attention:feed:user-123:24:v1"


@pytest.mark.asyncio
async def test_feed_computed_before_invalidation_stays_at_old_version(fake_redis):
    cache = AttentionFeedCache(redis_client=fake_redis, ttl_s=30, enabled=True)
    version = await cache.state_version("user-123")

    await cache.invalidate("user-123")
    await cache.set("user-123", 24, version, "stale")

    current = await cache.state_version("user-123")
    assert current == version + 1
    assert await cache.get("user-123", 24, current) is None


@pytest.mark.asyncio
async def test_invalidation_is_per_user(fake_redis):
    cache = AttentionFeedCache(redis_client=fake_redis, ttl_s=30, enabled=True)
    await cache.set("user-a", 24, 0, "a")
    await cache.set("user-b", 24, 0, "b")

    await cache.invalidate("user-a")

    assert await cache.get("user-a", 24, await cache.state_version("user-a")) is None
    assert await cache.get("user-b", 24, await cache.state_version("user-b")) == "b"


@pytest.mark.asyncio
async def test_disabled_cache_never_stores(fake_redis):
    cache = AttentionFeedCache(redis_client=fake_redis, ttl_s=30, enabled=False)

    assert await cache.set("user-123", 24, 0, "payload") is False
    assert await cache.get("user-123", 24, 0) is None
    assert fake_redis.store == {}


@pytest.mark.asyncio
async def test_malformed_version_is_treated_as_zero(fake_redis):
    fake_redis.store["attention:state_version:user-123"] = "garbage"
    cache = AttentionFeedCache(redis_client=fake_redis, ttl_s=30, enabled=True)

    assert await cache.state_version("user-123") == 0
