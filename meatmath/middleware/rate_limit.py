"""
Rate Limiting Middleware

Per-client rate limiting using Redis, keyed by client address.

Three token buckets:
- api: every /api request, RATE_LIMIT_PER_MINUTE with RATE_LIMIT_BURST
- auth: /api/v1/auth requests, AUTH_RATE_LIMIT_PER_WINDOW per
  AUTH_RATE_LIMIT_WINDOW_SECONDS, charged on top of the api bucket
- admin: species creation, ADMIN_RATE_LIMIT_PER_HOUR per hour, charged
  on top of the api bucket

The client address is the socket peer. X-Forwarded-For is only read when
TRUSTED_PROXY_COUNT is set, and then only the hop appended by the
outermost trusted proxy is used; anything to its left is client supplied.

When Redis is unreachable requests pass unthrottled; rate limiting is not
an authorization control.
"""
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from typing import Optional
import redis
import time
from meatmath.config import get_settings
from meatmath.core.exceptions import RateLimitExceeded
from meatmath.utils.logging import get_logger, log_security_event

logger = get_logger(__name__)

AUTH_PATH_PREFIX = "/api/v1/auth"


class TokenBucket:
    """A named bucket: capacity tokens, refilled at rate tokens per second."""

    def __init__(self, name: str, capacity: float, rate: float, ttl_seconds: int):
        self.name = name
        self.capacity = capacity
        self.rate = rate
        self.ttl_seconds = ttl_seconds


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Token bucket rate limiter per client address."""

    def __init__(self, app, redis_client: Optional["redis.Redis"] = None, settings=None):
        super().__init__(app)
        self.settings = settings or get_settings()
        self.enabled = self.settings.RATE_LIMIT_ENABLED

        self.api_bucket = TokenBucket(
            "api",
            capacity=self.settings.RATE_LIMIT_BURST,
            rate=self.settings.RATE_LIMIT_PER_MINUTE / 60.0,
            ttl_seconds=60,
        )
        self.admin_bucket = TokenBucket(
            "admin",
            capacity=self.settings.ADMIN_RATE_LIMIT_PER_HOUR,
            rate=self.settings.ADMIN_RATE_LIMIT_PER_HOUR / 3600.0,
            ttl_seconds=3600,
        )
        self.auth_bucket = TokenBucket(
            "auth",
            capacity=self.settings.AUTH_RATE_LIMIT_PER_WINDOW,
            rate=self.settings.AUTH_RATE_LIMIT_PER_WINDOW / float(self.settings.AUTH_RATE_LIMIT_WINDOW_SECONDS),
            ttl_seconds=self.settings.AUTH_RATE_LIMIT_WINDOW_SECONDS,
        )
        self.trusted_proxy_count = self.settings.TRUSTED_PROXY_COUNT

        self.redis_client = redis_client
        self.redis_available = redis_client is not None
        if self.enabled and redis_client is None:
            try:
                self.redis_client = redis.from_url(
                    self.settings.REDIS_URL,
                    decode_responses=True,
                    socket_connect_timeout=5
                )
                self.redis_client.ping()
                self.redis_available = True
                logger.info("Redis connection established for rate limiting")
            except (redis.ConnectionError, redis.TimeoutError) as e:
                logger.error(f"Redis connection failed: {e}")
                self.redis_available = False

        self.excluded_paths = [
            "/docs",
            "/redoc",
            "/openapi.json",
            "/health",
        ]

    async def dispatch(self, request: Request, call_next):
        if not self.enabled:
            return await call_next(request)

        if any(request.url.path.startswith(path) for path in self.excluded_paths):
            return await call_next(request)

        if not request.url.path.startswith("/api"):
            return await call_next(request)

        if not self.redis_available:
            logger.warning("Rate limiting disabled - Redis unavailable")
            return await call_next(request)

        client = self._get_client_identifier(request)

        buckets = [self.api_bucket]
        if self._is_auth_operation(request):
            buckets.append(self.auth_bucket)
        if self._is_admin_operation(request):
            buckets.append(self.admin_bucket)

        for bucket in buckets:
            allowed, retry_after = self._check_rate_limit(bucket, client)
            if not allowed:
                log_security_event(
                    "rate_limit_exceeded",
                    {"client": client, "path": request.url.path, "method": request.method},
                    logger
                )
                exc = RateLimitExceeded(retry_after=retry_after)
                return JSONResponse(
                    status_code=exc.status_code,
                    content={"message": exc.detail},
                    headers=exc.headers
                )

        return await call_next(request)

    def _is_auth_operation(self, request: Request) -> bool:
        return request.url.path.startswith(AUTH_PATH_PREFIX)

    def _is_admin_operation(self, request: Request) -> bool:
        return request.method == "POST" and request.url.path.rstrip("/").endswith("/species")

    def _check_rate_limit(self, bucket: TokenBucket, client: str) -> tuple[bool, int]:
        """
        Check if request is allowed under rate limit.

        Returns: (allowed: bool, retry_after: int)

        Uses token bucket algorithm:
        - Bucket holds max tokens (burst capacity)
        - Tokens added at fixed rate
        - Each request consumes one token
        """
        key = f"rate_limit:{bucket.name}:{client}"
        key_timestamp = f"{key}:timestamp"

        try:
            current_tokens = self.redis_client.get(key)
            last_update = self.redis_client.get(key_timestamp)

            now = time.time()

            if current_tokens is None:
                # First request - initialize bucket
                current_tokens = bucket.capacity - 1
                self.redis_client.setex(key, bucket.ttl_seconds, current_tokens)
                self.redis_client.setex(key_timestamp, bucket.ttl_seconds, now)
                return True, 0

            current_tokens = float(current_tokens)
            last_update = float(last_update) if last_update else now

            elapsed = now - last_update
            new_tokens = min(bucket.capacity, current_tokens + elapsed * bucket.rate)

            if new_tokens >= 1:
                new_tokens -= 1
                self.redis_client.setex(key, bucket.ttl_seconds, new_tokens)
                self.redis_client.setex(key_timestamp, bucket.ttl_seconds, now)
                return True, 0

            tokens_needed = 1 - new_tokens
            retry_after = int((tokens_needed / bucket.rate) + 1)
            return False, retry_after

        except redis.RedisError as e:
            logger.error(f"Redis error in rate limiting: {e}")
            return True, 0

    def _get_client_identifier(self, request: Request) -> str:
        """
        Client address for bucket keys.

        With N trusted proxies the Nth X-Forwarded-For entry from the right
        is the address the outermost proxy saw. Without trusted proxies the
        header is ignored, since any client can set it.
        """
        peer = request.client.host if request.client else "unknown"
        if self.trusted_proxy_count <= 0:
            return peer

        forwarded = request.headers.get("X-Forwarded-For")
        if not forwarded:
            return peer

        hops = [hop.strip() for hop in forwarded.split(",") if hop.strip()]
        if not hops:
            return peer
        if len(hops) < self.trusted_proxy_count:
            return hops[0]
        return hops[-self.trusted_proxy_count]
