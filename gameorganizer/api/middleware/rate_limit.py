"""
Rate limiting middleware for API protection.

Token bucket per client and endpoint, kept in memory. The credential
endpoints get much tighter budgets than the rest of the API so password
guessing and reset-token spraying are throttled.
"""

import time
import asyncio
from typing import Dict, Optional, Tuple, Callable
from dataclasses import dataclass, field
import logging

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from ...exceptions import RateLimitError
from .error_handler import create_error_response

logger = logging.getLogger(__name__)


@dataclass
class RateLimitConfig:
    """Configuration for rate limiting."""

    requests_per_minute: int = 120

    # Bucket capacity
    burst_size: int = 20

    enabled: bool = True

    excluded_paths: list = field(default_factory=lambda: [
        "/health",
        "/docs",
        "/openapi.json",
        "/redoc",
    ])

    # Exact path -> requests per minute
    endpoint_limits: Dict[str, int] = field(default_factory=lambda: {
        "/auth/login": 10,
        "/auth/request-password-reset": 5,
        "/auth/perform-password-reset": 5,
        "/api/account": 20,
    })

    # Off unless a proxy in front of the app sets these headers itself
    trust_proxy_headers: bool = False


PROXY_HEADERS = ("X-Forwarded-For", "X-Real-IP")


def get_client_ip(request: Request, trust_proxy_headers: bool = False) -> str:
    """
    Client address for a request.

    Forwarding headers are client-controlled, so they are only read when
    the app runs behind a proxy that overwrites them.
    """
    if trust_proxy_headers:
        for header in PROXY_HEADERS:
            forwarded = request.headers.get(header)
            if forwarded:
                return forwarded.split(",")[0].strip()

    if request.client:
        return request.client.host

    return "unknown"


@dataclass
class RateLimitState:
    """State for a single rate limit bucket."""
    tokens: float
    last_update: float


class InMemoryRateLimiter:
    """
    In-memory token bucket limiter.

    Suitable for single-instance deployments.
    """

    def __init__(self, config: RateLimitConfig):
        self.config = config
        self._buckets: Dict[str, RateLimitState] = {}
        self._lock = asyncio.Lock()
        self._cleanup_interval = 300
        self._last_cleanup = time.time()

    def limit_for(self, path: str) -> int:
        """Requests per minute allowed on a path."""
        return self.config.endpoint_limits.get(path, self.config.requests_per_minute)

    async def _cleanup_old_buckets(self) -> None:
        now = time.time()
        if now - self._last_cleanup < self._cleanup_interval:
            return

        async with self._lock:
            expired_keys = [
                key for key, state in self._buckets.items()
                if now - state.last_update > 3600
            ]
            for key in expired_keys:
                del self._buckets[key]

            self._last_cleanup = now
            if expired_keys:
                logger.debug(f"Cleaned up {len(expired_keys)} expired rate limit buckets")

    async def check_rate_limit(
        self,
        identifier: str,
        endpoint: str,
    ) -> Tuple[bool, int, float]:
        """
        Take one token from the client's bucket for this endpoint.

        Returns:
            Tuple of (allowed, remaining_tokens, seconds_until_next_token).
        """
        await self._cleanup_old_buckets()

        bucket_key = f"{identifier}:{endpoint}"
        limit = self.limit_for(endpoint)

        # Tokens per second
        refill_rate = limit / 60.0
        max_tokens = min(self.config.burst_size, limit)

        async with self._lock:
            now = time.time()

            state = self._buckets.get(bucket_key)
            if state is None:
                state = RateLimitState(tokens=max_tokens, last_update=now)
                self._buckets[bucket_key] = state

            elapsed = now - state.last_update
            state.tokens = min(max_tokens, state.tokens + elapsed * refill_rate)
            state.last_update = now

            if state.tokens >= 1:
                state.tokens -= 1
                reset_time = (max_tokens - state.tokens) / refill_rate
                return True, int(state.tokens), reset_time

            return False, 0, (1 - state.tokens) / refill_rate


class RateLimitMiddleware(BaseHTTPMiddleware):
    """FastAPI middleware for rate limiting requests."""

    def __init__(
        self,
        app: FastAPI,
        config: Optional[RateLimitConfig] = None,
        limiter: Optional[InMemoryRateLimiter] = None,
    ):
        super().__init__(app)
        self.config = config or RateLimitConfig()
        self.limiter = limiter or InMemoryRateLimiter(self.config)

    def _get_client_identifier(self, request: Request) -> str:
        return f"ip:{get_client_ip(request, self.config.trust_proxy_headers)}"

    def _is_excluded(self, path: str) -> bool:
        return any(path.startswith(excluded) for excluded in self.config.excluded_paths)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if not self.config.enabled or self._is_excluded(request.url.path):
            return await call_next(request)

        identifier = self._get_client_identifier(request)
        endpoint = request.url.path

        allowed, remaining, reset_time = await self.limiter.check_rate_limit(
            identifier, endpoint
        )

        if not allowed:
            logger.warning(f"Rate limit exceeded for {identifier} on {endpoint}")

            error = RateLimitError(limit=self.limiter.limit_for(endpoint), window="minute")
            response = create_error_response(
                error=error.message,
                code=error.code,
                status_code=error.status_code,
                detail=error.detail,
            )
            response.headers["Retry-After"] = str(int(reset_time) + 1)
            response.headers["X-Rate-Limit-Remaining"] = "0"
            response.headers["X-Rate-Limit-Reset"] = str(int(time.time() + reset_time))
            return response

        response = await call_next(request)

        response.headers["X-Rate-Limit-Remaining"] = str(remaining)
        response.headers["X-Rate-Limit-Reset"] = str(int(time.time() + reset_time))

        return response


def setup_rate_limiting(
    app: FastAPI,
    config: Optional[RateLimitConfig] = None,
) -> InMemoryRateLimiter:
    """
    Configure rate limiting middleware for the FastAPI application.

    Returns:
        The rate limiter instance.
    """
    if config is None:
        config = RateLimitConfig()

    limiter = InMemoryRateLimiter(config)
    app.add_middleware(RateLimitMiddleware, config=config, limiter=limiter)

    return limiter
