"""Request logging and CORS preflight middleware."""

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

logger = logging.getLogger(__name__)


def allowed_origin(allow_origins: list[str], origin: str | None) -> str | None:
    """Value for Access-Control-Allow-Origin, or None when the origin is not allowed."""
    if "*" in allow_origins:
        return "*"
    if origin and origin in allow_origins:
        return origin
    return None


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log one line per request and echo its X-Request-ID.

    Server errors are logged at ERROR and client errors at WARNING so a
    level filter is enough to find failed calls.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())[:8]
        request.state.request_id = request_id

        start = time.monotonic()
        response = await call_next(request)
        duration_ms = round((time.monotonic() - start) * 1000, 1)

        response.headers["X-Request-ID"] = request_id

        if response.status_code >= 500:
            level = logging.ERROR
        elif response.status_code >= 400:
            level = logging.WARNING
        else:
            level = logging.INFO

        logger.log(
            level,
            "request",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "query": request.url.query or None,
                "client": request.client.host if request.client else None,
                "status": response.status_code,
                "duration_ms": duration_ms,
            },
        )
        return response


class PreflightMiddleware(BaseHTTPMiddleware):
    """Answer every OPTIONS request with an empty 200 and the CORS headers.

    CORSMiddleware only short-circuits requests carrying both ``Origin`` and
    ``Access-Control-Request-Method``; plain OPTIONS calls would otherwise
    fall through to the router and get a 405.
    """

    def __init__(
        self,
        app: ASGIApp,
        allow_origins: list[str],
        allow_methods: str = "GET, POST, PUT, DELETE, OPTIONS",
        allow_headers: str = "Content-Type, Authorization",
    ) -> None:
        super().__init__(app)
        self.allow_origins = allow_origins
        self.allow_methods = allow_methods
        self.allow_headers = allow_headers

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.method != "OPTIONS":
            return await call_next(request)

        headers = {
            "Access-Control-Allow-Methods": self.allow_methods,
            "Access-Control-Allow-Headers": self.allow_headers,
        }
        allow_origin = allowed_origin(self.allow_origins, request.headers.get("Origin"))
        if allow_origin:
            headers["Access-Control-Allow-Origin"] = allow_origin
        return Response(status_code=200, headers=headers)
