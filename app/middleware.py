"""HTTP middleware: shutdown gating, request ids, access logging, response headers.

Registration order lives in ``main.py``. ``request_logging_middleware`` sits
innermost so the 500 it renders for an unexpected error still passes through
the header-adding layers around it.
"""

from fastapi import Request
from fastapi.responses import JSONResponse
import time
import uuid
from .config import settings
from .logger import logger
from .schemas import ErrorResponse

# Set by main.py to avoid a circular import
shutdown_manager = None

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Content-Security-Policy": (
        "default-src 'self'; "
        "script-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net; "
        "style-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net; "
        "img-src 'self' data: https://fastapi.tiangolo.com"
    ),
}


def set_shutdown_manager(manager):
    """Set the shutdown manager instance (called from main.py)."""
    global shutdown_manager
    shutdown_manager = manager


def _error(status_code: int, message: str, headers: dict | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=message).model_dump(),
        headers=headers,
    )


# ==================== Graceful Shutdown Middleware ====================

async def graceful_shutdown_middleware(request: Request, call_next):
    """Count in-flight requests; answer 503 once shutdown has begun."""
    if shutdown_manager is None:
        return await call_next(request)

    if shutdown_manager.is_shutting_down:
        logger.warning(f"Refusing {request.method} {request.url.path} during shutdown")
        return _error(
            503,
            "Service is shutting down - please retry shortly",
            headers={"Retry-After": "10"},
        )

    shutdown_manager.request_started()
    try:
        return await call_next(request)
    finally:
        shutdown_manager.request_finished()


# ==================== Request ID Middleware ====================

async def add_request_id_middleware(request: Request, call_next):
    """Reuse the caller's X-Request-ID or mint one, and echo it back."""
    request.state.request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())

    response = await call_next(request)
    response.headers["X-Request-ID"] = request.state.request_id
    return response


# ==================== Request Logging Middleware ====================

async def request_logging_middleware(request: Request, call_next):
    """Access log line per request; unexpected errors become a generic 500."""
    started = time.perf_counter()
    request_id = getattr(request.state, "request_id", "unknown")
    label = f"[{request_id}] {request.method} {request.url.path}"

    try:
        response = await call_next(request)
    except Exception:
        logger.exception(f"{label} - unhandled error after {time.perf_counter() - started:.3f}s")
        return _error(500, "Internal server error")

    logger.info(f"{label} - {response.status_code} in {time.perf_counter() - started:.3f}s")
    return response


# ==================== Security Headers Middleware ====================

async def security_headers_middleware(request: Request, call_next):
    """Stamp hardening headers on every response."""
    response = await call_next(request)

    response.headers.update(SECURITY_HEADERS)
    if settings.APP_ENV == "production":
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
    # Bearer-token responses must not be cached by intermediaries
    if request.url.path.startswith("/api/"):
        response.headers["Cache-Control"] = "no-store"

    return response
