from dataclasses import dataclass
from typing import Protocol, runtime_checkable

@dataclass(frozen=True)
class RateLimitBucket:
    count: int
    reset_at: float  # epoch seconds

@runtime_checkable
class RateLimitStorePort(Protocol):
    async def hit(self, key: str, window_seconds: int) -> RateLimitBucket: ...
