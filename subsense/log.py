import logging
import time

import structlog
from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

logger = structlog.get_logger()

USER_HEADER = "x-user-id"


def configure_logging(level: str = "INFO", json: bool = False) -> None:
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if json:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer())
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level.upper(), logging.INFO)),
        logger_factory=structlog.PrintLoggerFactory(),
    )


def bind_request(request: Request) -> None:
    """Tag every log line emitted while serving ``request`` with who asked for what."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(
        method=request.method,
        path=request.url.path,
        user_id=request.headers.get(USER_HEADER, "demo"),
    )


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        bind_request(request)
        start = time.perf_counter()
        response = await call_next(request)
        logger.info(
            "http_request",
            status=response.status_code,
            duration_ms=round((time.perf_counter() - start) * 1000, 2),
        )
        return response


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Outermost layer: anything the routes let escape becomes a logged 500."""

    async def dispatch(self, request: Request, call_next):
        bind_request(request)
        try:
            return await call_next(request)
        except Exception as exc:
            logger.exception("unhandled_error", path=request.url.path, error=str(exc))
            return JSONResponse(status_code=500, content={"detail": "Internal server error"})
