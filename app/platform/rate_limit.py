import math
import time
from fastapi import HTTPException, Request, status
from app.platform.provider_registry import registry

_IP_HEADERS = ("cf-connecting-ip", "x-forwarded-for", "x-real-ip", "x-client-ip")

def client_ip(request: Request) -> str:
    for header in _IP_HEADERS:
        value = request.headers.get(header)
        if value:
            # x-forwarded-for may carry a proxy chain; the first hop is the client
            return value.split(",")[0].strip()
    if request.client and request.client.host:
        return request.client.host
    return "anonymous"

class RateLimiter:
    """FastAPI dependency enforcing a fixed-window request budget per client IP and scope."""

    def __init__(self, max_requests: int, window_seconds: int, scope: str):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.scope = scope

    async def __call__(self, request: Request) -> None:
        key = f"{client_ip(request)}:{self.scope}"
        bucket = await registry.rate_limit_store().hit(key, self.window_seconds)
        if bucket.count > self.max_requests:
            retry_after = max(0, math.ceil(bucket.reset_at - time.time()))
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail={"code": "RATE_LIMITED", "message": "Too many requests"},
                headers={"Retry-After": str(retry_after)},
            )
