"""Tests for rate limiting middleware."""

import json

import pytest
from litestar import Litestar, get
from litestar.middleware import DefineMiddleware
from litestar.testing import TestClient

from fanview.config import RateLimitConfig
from fanview.middleware.rate_limit import RateLimitMiddleware


class TestRateLimitConfig:
    """Tests for RateLimitConfig model."""

    def test_defaults(self):
        config = RateLimitConfig()
        assert config.enabled is True
        assert config.requests_per_window == 100
        assert config.auth_requests_per_window == 20
        assert config.window_seconds == 900
        assert config.paths == {}


class TestRateLimitMiddleware:
    """Tests for RateLimitMiddleware ASGI middleware."""

    def _make_send(self, captured):
        async def send(message):
            captured.append(message)
        return send

    def _make_app(self):
        async def app(scope, receive, send):
            await send({
                "type": "http.response.start",
                "status": 200,
                "headers": [(b"content-type", b"text/plain")],
            })
            await send({"type": "http.response.body", "body": b"OK"})
        return app

    def _make_scope(self, path="/", client_ip="127.0.0.1", headers=None):
        return {
            "type": "http",
            "method": "GET",
            "path": path,
            "headers": headers or [],
            "client": (client_ip, 0),
        }

    async def _call(self, middleware, **scope_kwargs):
        captured = []
        await middleware(self._make_scope(**scope_kwargs), None, self._make_send(captured))
        return captured

    @pytest.mark.asyncio
    async def test_under_limit_passes_through(self):
        middleware = RateLimitMiddleware(self._make_app(), requests_per_window=5)
        captured = await self._call(middleware)
        assert captured[0]["status"] == 200

    @pytest.mark.asyncio
    async def test_over_limit_returns_envelope(self):
        """The rejected request gets the JSON error envelope and Retry-After."""
        middleware = RateLimitMiddleware(self._make_app(), requests_per_window=1)
        await self._call(middleware)

        captured = await self._call(middleware)

        assert captured[0]["status"] == 429
        header_dict = dict(captured[0]["headers"])
        assert int(header_dict[b"retry-after"]) > 0
        assert header_dict[b"content-type"] == b"application/json"
        body = json.loads(captured[1]["body"])
        assert body == {
            "success": False,
            "message": "Too many requests from this IP, please try again later.",
        }

    @pytest.mark.asyncio
    async def test_auth_path_uses_stricter_limit(self):
        middleware = RateLimitMiddleware(
            self._make_app(), requests_per_window=100, auth_requests_per_window=2
        )
        for _ in range(2):
            assert (await self._call(middleware, path="/api/auth/login"))[0]["status"] == 200

        assert (await self._call(middleware, path="/api/auth/login"))[0]["status"] == 429
        assert (await self._call(middleware, path="/api/creators"))[0]["status"] == 200

    @pytest.mark.asyncio
    async def test_per_ip_isolation(self):
        middleware = RateLimitMiddleware(self._make_app(), requests_per_window=1)
        await self._call(middleware, client_ip="10.0.0.1")

        assert (await self._call(middleware, client_ip="10.0.0.1"))[0]["status"] == 429
        assert (await self._call(middleware, client_ip="10.0.0.2"))[0]["status"] == 200

    @pytest.mark.asyncio
    async def test_custom_path_limits(self):
        middleware = RateLimitMiddleware(
            self._make_app(), requests_per_window=100, paths={"/api/content/upload": 1}
        )
        await self._call(middleware, path="/api/content/upload")

        assert (await self._call(middleware, path="/api/content/upload"))[0]["status"] == 429
        assert (await self._call(middleware, path="/api/content/abc/likes"))[0]["status"] == 200

    @pytest.mark.asyncio
    async def test_x_forwarded_for_header(self):
        middleware = RateLimitMiddleware(self._make_app(), requests_per_window=1)
        forwarded = [(b"x-forwarded-for", b"192.168.1.1, 10.0.0.1")]
        await self._call(middleware, headers=forwarded)

        assert (await self._call(middleware, headers=forwarded))[0]["status"] == 429
        other = [(b"x-forwarded-for", b"192.168.1.2")]
        assert (await self._call(middleware, headers=other))[0]["status"] == 200

    @pytest.mark.asyncio
    async def test_non_http_passthrough(self):
        called = False

        async def app(scope, receive, send):
            nonlocal called
            called = True

        await RateLimitMiddleware(app)({"type": "websocket"}, None, None)
        assert called


class TestRateLimitIntegration:
    """The middleware engages in the real Litestar pipeline."""

    def _create_app(self, auth_limit: int = 3, general_limit: int = 60) -> Litestar:
        @get("/api/auth/test")
        async def auth_handler() -> str:
            return "ok"

        @get("/api/public")
        async def public_handler() -> str:
            return "ok"

        return Litestar(
            route_handlers=[auth_handler, public_handler],
            middleware=[
                DefineMiddleware(
                    RateLimitMiddleware,
                    requests_per_window=general_limit,
                    auth_requests_per_window=auth_limit,
                )
            ],
        )

    def test_auth_limit_independent_of_general(self):
        app = self._create_app(auth_limit=2, general_limit=100)
        with TestClient(app) as client:
            for _ in range(2):
                assert client.get("/api/auth/test").status_code == 200

            resp = client.get("/api/auth/test")
            assert resp.status_code == 429
            assert "retry-after" in resp.headers

            assert client.get("/api/public").status_code == 200
