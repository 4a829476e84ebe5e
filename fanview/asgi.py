"""ASGI application factory for Fanview.

``create_app`` wires configuration, the database plugin, upload storage,
middleware and controllers into a Litestar application. ``fanview.asgi:app``
builds the application from ``get_settings()`` on first access.
"""

import logging
from typing import Any

from advanced_alchemy.config import EngineConfig
from advanced_alchemy.extensions.litestar import (
    AsyncSessionConfig,
    SQLAlchemyAsyncConfig,
    SQLAlchemyPlugin,
)
from litestar import Litestar
from litestar.config.cors import CORSConfig
from litestar.middleware import DefineMiddleware
from litestar.static_files import create_static_files_router

import fanview.db.models  # noqa: F401 - register all models on Base
from fanview.auth.dependencies import AUTH_DEPENDENCIES
from fanview.config import Settings, get_settings
from fanview.controllers import ROUTE_HANDLERS
from fanview.db.base import Base
from fanview.lib.email import EmailService
from fanview.lib.exceptions import EXCEPTION_HANDLERS
from fanview.lib.folders import FolderResolver
from fanview.lib.placement import UploadPlacement
from fanview.lib.storage import LocalUploadStore
from fanview.middleware.rate_limit import RateLimitMiddleware
from fanview.middleware.security import SecurityHeadersMiddleware

logger = logging.getLogger(__name__)

# Multipart framing on top of the largest accepted file
BODY_SIZE_HEADROOM = 1024 * 1024


def create_db_config(settings: Settings) -> SQLAlchemyAsyncConfig:
    if "sqlite" in settings.db.url:
        engine_config = EngineConfig(echo=settings.db.echo)
    else:
        engine_kwargs: dict[str, Any] = dict(
            pool_size=settings.db.pool_size,
            max_overflow=settings.db.pool_overflow,
            pool_timeout=settings.db.pool_timeout,
            pool_pre_ping=settings.db.pool_pre_ping,
            echo=settings.db.echo,
        )
        engine_config = EngineConfig(**engine_kwargs)

    return SQLAlchemyAsyncConfig(
        connection_string=settings.db.url,
        metadata=Base.metadata,
        create_all=settings.db.create_all,
        session_config=AsyncSessionConfig(expire_on_commit=False),
        engine_config=engine_config,
    )


def create_placement(settings: Settings) -> UploadPlacement:
    store = LocalUploadStore(settings.uploads.root, settings.uploads.public_prefix)
    resolver = FolderResolver(
        strategy=settings.uploads.folder_suffix,
        attempts=settings.uploads.folder_name_attempts,
        store=store,
    )
    return UploadPlacement(store, resolver)


def create_app(settings: Settings | None = None) -> Litestar:
    """Create and configure the Litestar application."""
    settings = settings or get_settings()

    db_config = create_db_config(settings)
    placement = create_placement(settings)
    store = placement.store

    # The static router needs its directory up front
    (store.root / "creators").mkdir(parents=True, exist_ok=True)
    store.temp_dir.mkdir(parents=True, exist_ok=True)

    uploads_router = create_static_files_router(
        path=f"{settings.uploads.public_prefix.rstrip('/')}/creators",
        directories=[store.root / "creators"],
        include_in_schema=False,
    )

    middleware = []
    if settings.security_headers.enabled:
        middleware.append(
            DefineMiddleware(
                SecurityHeadersMiddleware,
                headers=settings.security_headers.build_headers(),
                csp_value=settings.security_headers.content_security_policy,
            )
        )
    if settings.rate_limit.enabled:
        middleware.append(
            DefineMiddleware(
                RateLimitMiddleware,
                requests_per_window=settings.rate_limit.requests_per_window,
                auth_requests_per_window=settings.rate_limit.auth_requests_per_window,
                window_seconds=settings.rate_limit.window_seconds,
                paths=settings.rate_limit.paths,
            )
        )

    origins = list(dict.fromkeys([*settings.cors.allow_origins, settings.frontend_url]))
    cors_config = CORSConfig(allow_origins=origins, allow_credentials=settings.cors.allow_credentials)

    async def on_startup(_app: Litestar) -> None:
        logger.info(
            "Fanview starting (%s); uploads in %s, folder suffix strategy %s",
            settings.environment,
            store.root,
            settings.uploads.folder_suffix,
        )

    app = Litestar(
        on_startup=[on_startup],
        route_handlers=[*ROUTE_HANDLERS, uploads_router],
        dependencies=AUTH_DEPENDENCIES,
        plugins=[SQLAlchemyPlugin(config=db_config)],
        middleware=middleware,
        cors_config=cors_config,
        exception_handlers=EXCEPTION_HANDLERS,
        request_max_body_size=max(settings.uploads.max_content_size, settings.uploads.max_image_size)
        + BODY_SIZE_HEADROOM,
        debug=settings.debug,
    )
    app.state.settings = settings
    app.state.db_config = db_config
    app.state.placement = placement
    app.state.email = EmailService(settings.email, settings.frontend_url)
    return app


_app: Litestar | None = None


def __getattr__(name: str) -> Any:
    global _app
    if name == "app":
        if _app is None:
            _app = create_app()
        return _app
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
