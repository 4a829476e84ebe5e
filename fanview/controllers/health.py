from datetime import UTC, datetime

from litestar import Request, Response, get

from fanview.lib.responses import envelope


@get("/health")
async def health(request: Request) -> Response:
    """Liveness probe."""
    return envelope(
        "Fanview API is running",
        timestamp=datetime.now(UTC).isoformat(),
        environment=request.app.state.settings.environment,
    )
