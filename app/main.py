"""FastAPI application entry point with lifecycle management."""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager
import asyncio

from .config import settings
from .routes import router
from .crud import credential_store, todo_repository
from .errors import TodoServiceError, TokenMissing
from .schemas import ErrorResponse
from .logger import logger
from .middleware import (
    graceful_shutdown_middleware,
    add_request_id_middleware,
    request_logging_middleware,
    security_headers_middleware,
    set_shutdown_manager,
)
from .monitoring import setup_monitoring

# ==================== Graceful Shutdown ====================


class GracefulShutdownManager:
    """Manages graceful shutdown of the application.

    Tracks active requests so in-flight requests can finish before the
    process exits and the in-memory stores are discarded.
    """

    def __init__(self):
        self.is_shutting_down = False
        self.active_requests = 0
        self.shutdown_timeout = settings.GRACEFUL_SHUTDOWN_TIMEOUT

    def request_started(self):
        """Track a new incoming request."""
        if not self.is_shutting_down:
            self.active_requests += 1

    def request_finished(self):
        """Mark a request as completed."""
        self.active_requests -= 1

    async def initiate_shutdown(self):
        """Initiate graceful shutdown sequence."""
        if self.is_shutting_down:
            return

        logger.info("Graceful shutdown initiated")
        self.is_shutting_down = True

        if self.active_requests > 0:
            logger.info(f"Waiting for {self.active_requests} active request(s) to complete...")

            start_time = asyncio.get_running_loop().time()
            while self.active_requests > 0:
                elapsed = asyncio.get_running_loop().time() - start_time
                if elapsed >= self.shutdown_timeout:
                    logger.warning(
                        f"Shutdown timeout ({self.shutdown_timeout}s) reached with "
                        f"{self.active_requests} request(s) still active - forcing shutdown"
                    )
                    break
                await asyncio.sleep(0.1)

            if self.active_requests == 0:
                logger.info("All active requests completed successfully")
        else:
            logger.info("No active requests - proceeding with immediate shutdown")


shutdown_manager = GracefulShutdownManager()
set_shutdown_manager(shutdown_manager)

# ==================== Application Lifecycle ====================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - handles startup and graceful shutdown."""
    logger.info(f"Starting {settings.APP_NAME} in {settings.APP_ENV} mode")
    logger.info("Using in-memory storage - data is lost when the process exits")
    logger.info(f"{settings.APP_NAME} started successfully - ready to accept requests")

    yield

    logger.info(f"Shutting down {settings.APP_NAME}...")
    await shutdown_manager.initiate_shutdown()
    logger.info(
        f"Discarding {credential_store.count()} user(s) and {todo_repository.count()} todo(s)"
    )
    logger.info(f"{settings.APP_NAME} shutdown complete")

# ==================== Error Handlers ====================


def _error_response(status_code: int, message: str, headers: dict | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=message).model_dump(),
        headers=headers,
    )


async def service_error_handler(request: Request, exc: TodoServiceError) -> JSONResponse:
    """Render domain errors; only the caller-safe message leaves the process."""
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, TokenMissing) else None
    return _error_response(exc.status_code, exc.message, headers)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    request_id = getattr(request.state, "request_id", "unknown")
    logger.debug(f"[{request_id}] Request validation failed: {exc.errors()}")
    return _error_response(400, "Invalid request")


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = "Not found" if exc.status_code == 404 else str(exc.detail)
    return _error_response(exc.status_code, message, getattr(exc, "headers", None))


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
    return _error_response(500, "Internal server error")

# ==================== Application Setup ====================


app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)

# Middleware registration (last registered = outermost layer).
# Request logging is innermost so its generic 500 still gets headers and CORS.
app.middleware("http")(request_logging_middleware)
app.middleware("http")(security_headers_middleware)
app.middleware("http")(add_request_id_middleware)
app.middleware("http")(graceful_shutdown_middleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(TodoServiceError, service_error_handler)
app.add_exception_handler(RequestValidationError, validation_error_handler)
app.add_exception_handler(StarletteHTTPException, http_error_handler)
app.add_exception_handler(Exception, unhandled_error_handler)

app.include_router(router)

setup_monitoring(app)


def run() -> None:
    """Serve the application with uvicorn on the configured host and port."""
    import uvicorn

    logger.info(f"Server running on http://{settings.HOST}:{settings.PORT}")
    uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_level=settings.LOG_LEVEL.lower())


if __name__ == "__main__":
    run()
