import asyncio
import time
from app.platform.ports.rate_limit import RateLimitBucket, RateLimitStorePort

SWEEP_INTERVAL_SECONDS = 60

class MemoryRateLimitStore(RateLimitStorePort):
    """Process-local buckets; only correct for single-instance deployments."""

    def __init__(self, clock=time.time, sweep_interval: float = SWEEP_INTERVAL_SECONDS):
        self._buckets: dict[str, RateLimitBucket] = {}
        self._lock = asyncio.Lock()
        self._clock = clock
        self._sweep_interval = sweep_interval
        self._next_sweep = 0.0

    def __len__(self) -> int:
        return len(self._buckets)

    def _sweep(self, now: float) -> None:
        expired = [k for k, b in self._buckets.items() if b.reset_at <= now]
        for k in expired:
            del self._buckets[k]
        self._next_sweep = now + self._sweep_interval

    async def hit(self, key: str, window_seconds: int) -> RateLimitBucket:
        async with self._lock:
            now = self._clock()
            if now >= self._next_sweep:
                self._sweep(now)
            bucket = self._buckets.get(key)
            if bucket is None or bucket.reset_at <= now:
                bucket = RateLimitBucket(count=0, reset_at=now + window_seconds)
            bucket = RateLimitBucket(count=bucket.count + 1, reset_at=bucket.reset_at)
            self._buckets[key] = bucket
            return bucket

    def clear(self) -> None:
        self._buckets.clear()
