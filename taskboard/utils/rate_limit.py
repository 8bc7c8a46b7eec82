"""
Per-client-IP request rate limiting.

Fixed-window counters kept in a ``TTLStore``: the first request from an IP
opens a window of ``window_seconds``; once ``max_requests`` have been served
inside it, further requests are answered with 429 until the window closes.
"""

import math
import time
from collections.abc import Callable
from dataclasses import dataclass

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import HTTPConnection, Request
from starlette.responses import JSONResponse

from taskboard.utils.security_logger import SecurityLogger, security_logger
from taskboard.utils.ttl_store import TTLStore


@dataclass
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    reset_after: float


class RateLimiter:
    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._windows = TTLStore(default_ttl=window_seconds, clock=clock)

    def hit(self, key: str) -> RateLimitResult:
        """Count one request for ``key`` and report whether it may proceed."""
        count = self._windows.get(key)
        if count is None:
            self._windows.set(key, 1)
            return RateLimitResult(
                allowed=True,
                limit=self.max_requests,
                remaining=max(self.max_requests - 1, 0),
                reset_after=self.window_seconds,
            )

        reset_after = self._windows.expires_in(key) or self.window_seconds
        if count >= self.max_requests:
            return RateLimitResult(
                allowed=False,
                limit=self.max_requests,
                remaining=0,
                reset_after=reset_after,
            )

        # Keep the window's original deadline
        self._windows.set(key, count + 1, ttl=reset_after)
        return RateLimitResult(
            allowed=True,
            limit=self.max_requests,
            remaining=self.max_requests - count - 1,
            reset_after=reset_after,
        )

    def reset(self) -> None:
        self._windows.clear()


@dataclass
class RateLimitRule:
    path_prefix: str
    limiter: RateLimiter
    message: str


def client_key(conn: HTTPConnection, trust_proxy: bool = False) -> str:
    """
    Identify the client a request is counted against.

    Forwarding headers are client-controlled, so they are only honoured when
    the app runs behind a proxy that overwrites them.
    """
    if trust_proxy:
        return SecurityLogger.get_client_ip(conn)
    if conn.client and conn.client.host:
        return conn.client.host
    return "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Applies every rule whose prefix matches the request path.

    Rules are evaluated in order and all matching limiters are charged; the
    first one that refuses the request produces the 429 response. The
    ``RateLimit-*`` headers describe the most restrictive matching rule.
    """

    def __init__(self, app, rules: list[RateLimitRule], trust_proxy: bool = False):
        super().__init__(app)
        self.rules = rules
        self.trust_proxy = trust_proxy

    async def dispatch(self, request: Request, call_next):
        matching = [r for r in self.rules if request.url.path.startswith(r.path_prefix)]
        if not matching:
            return await call_next(request)

        key = client_key(request, self.trust_proxy)
        tightest: RateLimitResult | None = None
        for rule in matching:
            result = rule.limiter.hit(key)
            if not result.allowed:
                security_logger.log_rate_limit(
                    SecurityLogger.get_client_ip(request),
                    request.url.path,
                    SecurityLogger.get_user_agent(request),
                )
                response = JSONResponse(status_code=429, content={"message": rule.message})
                self._set_headers(response, result)
                response.headers["Retry-After"] = str(math.ceil(result.reset_after))
                return response
            if tightest is None or result.remaining < tightest.remaining:
                tightest = result

        response = await call_next(request)
        self._set_headers(response, tightest)
        return response

    @staticmethod
    def _set_headers(response, result: RateLimitResult) -> None:
        response.headers["RateLimit-Limit"] = str(result.limit)
        response.headers["RateLimit-Remaining"] = str(result.remaining)
        response.headers["RateLimit-Reset"] = str(math.ceil(result.reset_after))
