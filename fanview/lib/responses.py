"""Success envelope shared by every JSON handler."""

from typing import Any

from litestar import Response
from litestar.status_codes import HTTP_200_OK


def envelope(
    message: str,
    data: Any = None,
    *,
    status_code: int = HTTP_200_OK,
    **extra: Any,
) -> Response:
    """Return ``{"success": true, "message": ..., "data": ...}`` as JSON."""
    content: dict[str, Any] = {"success": True, "message": message}
    if data is not None:
        content["data"] = data
    content.update(extra)
    return Response(content=content, status_code=status_code, media_type="application/json")
