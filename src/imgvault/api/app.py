"""FastAPI application factory."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .. import __description__, __version__
from ..config import get_max_upload_bytes
from ..logging_config import bind_request_context, clear_request_context, get_logger
from .dependencies import Services, build_services
from .routes import router

logger = get_logger(__name__)

# Headroom for the JSON envelope around the base64 content
_ENVELOPE_BYTES = 64 * 1024


def max_body_bytes(max_upload_bytes: int) -> int:
    """Largest request body that can carry ``max_upload_bytes`` of base64 content."""
    return 4 * ((max_upload_bytes + 2) // 3) + _ENVELOPE_BYTES


def create_app(services: Services | None = None, max_upload_bytes: int | None = None) -> FastAPI:
    """
    Create the HTTP application.

    Args:
        services: Pre-built services. When omitted they are built from
            configuration at startup and closed at shutdown.
        max_upload_bytes: Decoded upload size limit for the body size guard
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owns_services = app.state.services is None
        if owns_services:
            app.state.services = build_services()
        logger.info("application_started", version=__version__)
        yield
        if owns_services:
            app.state.services.close()
        logger.info("application_stopped")

    app = FastAPI(title="imgvault", description=__description__, version=__version__, lifespan=lifespan)
    app.state.services = services
    body_limit = max_body_bytes(max_upload_bytes or get_max_upload_bytes())

    @app.middleware("http")
    async def request_guard(request: Request, call_next):
        bind_request_context(method=request.method, path=request.url.path)
        try:
            content_length = request.headers.get("content-length")
            if content_length and content_length.isdigit() and int(content_length) > body_limit:
                logger.warning("request_body_too_large", content_length=int(content_length), limit=body_limit)
                return JSONResponse(
                    status_code=413,
                    content={"error": "payload_too_large", "message": "Request body is too large"},
                )
            return await call_next(request)
        finally:
            clear_request_context()

    app.include_router(router)
    return app
