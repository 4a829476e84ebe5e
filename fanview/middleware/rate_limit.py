"""Per-client-IP sliding window rate limiting.

Authentication endpoints get a stricter limit, and per-path-prefix
overrides are supported. Rejected requests get the standard JSON error
envelope with a ``Retry-After`` header.
"""

import json
import time

from litestar.types import ASGIApp, Receive, Scope, Send

AUTH_PREFIX = "/api/auth"


class RateLimitMiddleware:
    """ASGI middleware that enforces per-IP request rate limits.

    Args:
        app: The ASGI application to wrap.
        requests_per_window: Default limit for all paths.
        auth_requests_per_window: Stricter limit for /api/auth paths.
        window_seconds: Length of the sliding window.
        paths: Dict of path-prefix -> limit overrides.
    """

    def __init__(
        self,
        app: ASGIApp,
        requests_per_window: int = 100,
        auth_requests_per_window: int = 20,
        window_seconds: float = 900.0,
        paths: dict[str, int] | None = None,
    ) -> None:
        self.app = app
        self.requests_per_window = requests_per_window
        self.auth_requests_per_window = auth_requests_per_window
        self.window = window_seconds
        self.paths = paths or {}
        # Buckets: key -> list of timestamps
        self._buckets: dict[str, list[float]] = {}
        self._last_cleanup = time.monotonic()
        self._cleanup_interval = 60.0

    def _get_client_ip(self, scope: Scope) -> str:
        """Extract client IP, checking x-forwarded-for first."""
        headers = dict(scope.get("headers", []))
        forwarded = headers.get(b"x-forwarded-for")
        if forwarded:
            return forwarded.decode().split(",")[0].strip()
        client = scope.get("client")
        if client:
            return client[0]
        return "unknown"

    def _get_limit(self, path: str) -> tuple[str, int]:
        """Return (bucket_suffix, limit) for a path; longest custom prefix wins."""
        best_match = ""
        for prefix in self.paths:
            if path.startswith(prefix) and len(prefix) > len(best_match):
                best_match = prefix

        if best_match:
            return best_match, self.paths[best_match]

        if path.startswith(AUTH_PREFIX):
            return AUTH_PREFIX, self.auth_requests_per_window

        return "", self.requests_per_window

    def _cleanup_stale(self, now: float) -> None:
        if now - self._last_cleanup < self._cleanup_interval:
            return
        self._last_cleanup = now
        cutoff = now - self.window
        for key in list(self._buckets):
            self._buckets[key] = [t for t in self._buckets[key] if t > cutoff]
            if not self._buckets[key]:
                del self._buckets[key]

    def _check_rate(self, ip: str, bucket_suffix: str, limit: int) -> tuple[bool, int]:
        """Returns (allowed, retry_after_seconds)."""
        now = time.monotonic()
        self._cleanup_stale(now)

        key = f"{ip}:{bucket_suffix}"
        cutoff = now - self.window
        bucket = [t for t in self._buckets.get(key, []) if t > cutoff]
        self._buckets[key] = bucket

        if len(bucket) >= limit:
            retry_after = int(bucket[0] - cutoff) + 1
            return False, max(retry_after, 1)

        bucket.append(now)
        return True, 0

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        path = scope.get("path", "/")
        bucket_suffix, limit = self._get_limit(path)
        allowed, retry_after = self._check_rate(self._get_client_ip(scope), bucket_suffix, limit)

        if not allowed:
            body = json.dumps({
                "success": False,
                "message": "Too many requests from this IP, please try again later.",
            }).encode()
            await send({
                "type": "http.response.start",
                "status": 429,
                "headers": [
                    (b"content-type", b"application/json"),
                    (b"retry-after", str(retry_after).encode()),
                ],
            })
            await send({"type": "http.response.body", "body": body})
            return

        await self.app(scope, receive, send)
