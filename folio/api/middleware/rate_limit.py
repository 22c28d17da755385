"""Rate limiting middleware for the Folio public API

Per-IP sliding one-minute window on paths under ``/api``. Admin routes are
not limited.

Security features:
- IP spoofing protection (X-Forwarded-For is only read when settings say a
  trusted proxy is in front, or in development)
- Bounded memory via TTLCache
"""

from __future__ import annotations

import ipaddress
import time
from collections.abc import Callable
from typing import Any

from cachetools import TTLCache
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from folio.config import RATE_LIMIT_MAX_IPS, RATE_LIMIT_PATH_PREFIX, RATE_LIMIT_RPM
from folio.infrastructure.settings import Settings
from folio.observability.telemetry import log_event

WINDOW_SECONDS = 60


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Requests-per-minute limit keyed by client IP.

    Single-process only; a multi-instance deployment would need a shared store.
    """

    def __init__(
        self,
        app: Any,
        settings: Settings | None = None,
        requests_per_minute: int = RATE_LIMIT_RPM,
        path_prefix: str = RATE_LIMIT_PATH_PREFIX,
        clock: Callable[[], float] = time.time,
    ) -> None:
        super().__init__(app)
        settings = settings or Settings()
        self.requests_per_minute = requests_per_minute
        self.path_prefix = path_prefix
        self.clock = clock
        self.trust_forwarded = settings.trust_proxy or settings.is_development()

        # {ip: [timestamp, ...]}, entries expire after two idle windows
        self.buckets: TTLCache[str, list[float]] = TTLCache(
            maxsize=RATE_LIMIT_MAX_IPS, ttl=WINDOW_SECONDS * 2
        )

    def _is_valid_ip(self, ip_str: str) -> bool:
        try:
            ipaddress.ip_address(ip_str)
            return True
        except ValueError:
            return False

    def _get_client_ip(self, request: Request) -> str:
        """
        Extract the client IP.

        Behind a trusted proxy the last X-Forwarded-For hop is the address the
        proxy itself saw; anything to its left is client-supplied.
        """
        if self.trust_forwarded:
            forwarded = request.headers.get("X-Forwarded-For")
            if forwarded:
                ip = forwarded.split(",")[-1].strip()
                if self._is_valid_ip(ip):
                    return ip

        return request.client.host if request.client else "unknown"

    def _applies_to(self, path: str) -> bool:
        return path == self.path_prefix or path.startswith(self.path_prefix + "/")

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if not self._applies_to(request.url.path):
            return await call_next(request)

        client_ip = self._get_client_ip(request)
        now = self.clock()

        bucket = [ts for ts in self.buckets.get(client_ip, []) if now - ts < WINDOW_SECONDS]

        if len(bucket) >= self.requests_per_minute:
            self.buckets[client_ip] = bucket
            retry_after = max(1, int(WINDOW_SECONDS - (now - bucket[0])) + 1)
            log_event(
                "api.rate_limit.request_exceeded",
                ip=client_ip,
                limit="minute",
                count=len(bucket),
            )
            return JSONResponse(
                status_code=429,
                content={
                    "error": "Too many requests, please try again later.",
                    "retry_after": retry_after,
                },
                headers={"Retry-After": str(retry_after)},
            )

        bucket.append(now)
        self.buckets[client_ip] = bucket
        return await call_next(request)
