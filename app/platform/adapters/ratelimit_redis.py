import logging
import time
from app.platform.ports.rate_limit import RateLimitBucket, RateLimitStorePort

log = logging.getLogger("ratelimit.redis")

class RedisRateLimitStore(RateLimitStorePort):
    """Shared fixed-window counters for multi-instance deployments."""

    def __init__(self, redis, prefix: str = "ratelimit"):
        self.redis = redis
        self.prefix = prefix

    async def hit(self, key: str, window_seconds: int) -> RateLimitBucket:
        rkey = f"{self.prefix}:{key}"
        count = await self.redis.incr(rkey)
        if count == 1:
            await self.redis.expire(rkey, window_seconds)
        ttl_ms = await self.redis.pttl(rkey)
        if ttl_ms is None or ttl_ms < 0:
            # key lost its TTL (e.g. INCR raced a restart); re-arm the window
            await self.redis.expire(rkey, window_seconds)
            ttl_ms = window_seconds * 1000
        log.debug(f"[REDIS RATELIMIT] key={rkey} count={count} ttl_ms={ttl_ms}")
        return RateLimitBucket(count=int(count), reset_at=time.time() + ttl_ms / 1000)
