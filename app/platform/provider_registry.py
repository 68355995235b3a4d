from app.core.config import settings
from app.core.redis import redis_manager
from app.platform.ports.rate_limit import RateLimitStorePort
from app.platform.adapters.ratelimit_memory import MemoryRateLimitStore
from app.platform.adapters.ratelimit_redis import RedisRateLimitStore

class ProviderRegistry:
    _rate_limit_store: RateLimitStorePort | None = None
    _session_issuer = None

    @classmethod
    def rate_limit_store(cls) -> RateLimitStorePort:
        if cls._rate_limit_store is None:
            prov = (settings.RATE_LIMIT_PROVIDER or "memory").lower()
            if prov == "redis":
                if redis_manager.redis is None:
                    raise RuntimeError("Redis rate limit store requested before redis_manager.connect()")
                cls._rate_limit_store = RedisRateLimitStore(redis_manager.redis)
            else:
                cls._rate_limit_store = MemoryRateLimitStore()
        return cls._rate_limit_store

    @classmethod
    def session_issuer(cls):
        if cls._session_issuer is None:
            from app.modules.patients.sessions import PatientSessionIssuer
            cls._session_issuer = PatientSessionIssuer()
        return cls._session_issuer

    @classmethod
    def reset(cls) -> None:
        cls._rate_limit_store = None
        cls._session_issuer = None

registry = ProviderRegistry()
