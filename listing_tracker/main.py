import logging
import re
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from listing_tracker.api import health, listings, pages
from listing_tracker.core.config import load_store_config, settings
from listing_tracker.core.errors import ListingError
from listing_tracker.core.logging_config import setup_logging
from listing_tracker.core.middleware import (
    PreflightMiddleware,
    RequestLoggingMiddleware,
    allowed_origin,
)
from listing_tracker.db.session import build_engine, build_session_factory

# Configure structured JSON logging before anything else
setup_logging(settings.log_level, service=settings.app_name)

logger = logging.getLogger(__name__)

_METHOD_ORDER = ("GET", "POST", "PUT", "PATCH", "DELETE")
_PATH_PARAM_RE = re.compile(r"\{[^}]+\}")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Validate the store settings, open the engine, dispose it on shutdown."""
    # Raises ConfigurationError, which aborts startup
    store = load_store_config(settings)
    engine = build_engine(store, echo=settings.debug)
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)

    try:
        async with engine.connect():
            pass
        logger.info("Store connection established")
    except (SQLAlchemyError, OSError) as exc:
        logger.warning("Store not reachable at startup: %s", exc)
    yield
    await engine.dispose()


app = FastAPI(
    title=f"{settings.app_name} API",
    description="Track Facebook Marketplace listing URLs.",
    version="1.0.0",
    openapi_url="/api/openapi.json",
    docs_url="/api/docs",
    redoc_url=None,
    debug=settings.debug,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware (the last one added runs first)
# ---------------------------------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(PreflightMiddleware, allow_origins=settings.cors_origins)
app.add_middleware(RequestLoggingMiddleware)


# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------
def _allowed_methods(request: Request, exc: StarletteHTTPException) -> list[str]:
    """Methods served at the request path, HEAD left out.

    Starlette only reports the methods of the first route whose path
    matched, so the other operations on the same path come from the
    OpenAPI path table.
    """
    reported = (exc.headers or {}).get("Allow", "")
    methods = {method.strip().upper() for method in reported.split(",") if method.strip()}

    path = request.scope["path"]
    for template, operations in request.app.openapi().get("paths", {}).items():
        pattern = "[^/]+".join(re.escape(part) for part in _PATH_PARAM_RE.split(template))
        if re.fullmatch(pattern, path):
            methods.update(operation.upper() for operation in operations)
    return [method for method in _METHOD_ORDER if method in methods]


def _describe_validation_errors(errors) -> list[dict]:
    details = []
    for err in errors:
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        details.append({"field": ".".join(loc) or None, "message": err.get("msg", "")})
    return details


@app.exception_handler(ListingError)
async def listing_error_handler(request: Request, exc: ListingError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_content())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={
            "error": "Validation failed",
            "details": _describe_validation_errors(exc.errors()),
        },
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    headers = dict(exc.headers or {})
    if exc.status_code == 405:
        headers["Allow"] = ", ".join(_allowed_methods(request, exc))
        error = "Method not allowed"
    elif exc.status_code == 404:
        error = "Not found"
    else:
        error = str(exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"error": error}, headers=headers)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    # runs outside CORSMiddleware, so the origin header is set here
    headers = {}
    origin = allowed_origin(settings.cors_origins, request.headers.get("Origin"))
    if origin:
        headers["Access-Control-Allow-Origin"] = origin
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error"},
        headers=headers,
    )


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
app.include_router(health.router, prefix="/api")
app.include_router(listings.router, prefix="/api")
app.include_router(pages.router)
