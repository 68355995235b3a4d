from redis import asyncio as aioredis
from app.core.config import settings


class RedisManager:
    def __init__(self):
        self.redis = None

    async def connect(self):
        """Connect to Redis (called on FastAPI startup when a Redis-backed provider is configured)."""
        if not settings.REDIS_URL:
            raise RuntimeError("REDIS_URL not configured")
        self.redis = aioredis.from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True
        )

    async def close(self):
        """Close Redis connection."""
        if self.redis:
            await self.redis.aclose()
            self.redis = None

redis_manager = RedisManager()
