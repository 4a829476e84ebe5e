"""Security headers middleware.

Injects security response headers (CSP, X-Content-Type-Options,
X-Frame-Options, Referrer-Policy) into every HTTP response. Headers
already set by a route handler are not overwritten.
"""

from litestar.types import ASGIApp, Message, Receive, Scope, Send


class SecurityHeadersMiddleware:
    """ASGI middleware that adds security headers to HTTP responses.

    Args:
        app: The ASGI application to wrap.
        headers: Pre-encoded header pairs, excluding CSP.
        csp_value: The raw CSP header string (or None to disable CSP).
    """

    def __init__(
        self,
        app: ASGIApp,
        headers: list[tuple[bytes, bytes]],
        csp_value: str | None = None,
    ) -> None:
        self.app = app
        self.headers = list(headers)
        if csp_value:
            self.headers.append((b"content-security-policy", csp_value.encode()))

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def send_with_headers(message: Message) -> None:
            if message["type"] == "http.response.start":
                existing = {h[0].lower() for h in message.get("headers", [])}
                extra = [(k, v) for k, v in self.headers if k.lower() not in existing]
                message["headers"] = list(message.get("headers", [])) + extra
            await send(message)

        await self.app(scope, receive, send_with_headers)
