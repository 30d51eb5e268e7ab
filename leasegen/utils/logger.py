# leasegen/utils/logger.py

import logging
import sys
import time
import traceback
import uuid
from contextvars import ContextVar
from typing import Any, Dict, List, Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

DEFAULT_APP_NAME = "Lease Document Generator"

# Set per request by LoggingMiddleware
request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

# Stamped on every event by add_app_context
_app_context: Dict[str, str] = {"app": DEFAULT_APP_NAME, "environment": "development"}


def add_request_id(logger: logging.Logger, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Attach the current request id, when there is one."""
    request_id = request_id_var.get()
    if request_id:
        event_dict["request_id"] = request_id
    return event_dict


def add_app_context(logger: logging.Logger, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Attach the application name and environment."""
    event_dict.update(_app_context)
    return event_dict


def _shared_processors() -> List[Any]:
    return [
        structlog.contextvars.merge_contextvars,
        add_request_id,
        add_app_context,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]


def build_formatter(renderer: Any) -> structlog.stdlib.ProcessorFormatter:
    """Formatter for stdlib handlers; structlog events arrive already processed."""
    return structlog.stdlib.ProcessorFormatter(
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        foreign_pre_chain=_shared_processors(),
    )


def _attach_handler(handler: logging.Handler, level: int, renderer: Any) -> None:
    handler.setLevel(level)
    handler.setFormatter(build_formatter(renderer))
    logging.root.addHandler(handler)


def setup_logging(
    log_level: str = "INFO",
    use_json: bool = True,
    log_file: Optional[str] = None,
    app_name: str = DEFAULT_APP_NAME,
    environment: str = "development",
) -> None:
    """
    Route structlog and stdlib logging through the same handlers.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        use_json: JSON lines on stdout instead of the console renderer
        log_file: Optional file that always receives JSON lines
        app_name: Added to every event as ``app``
        environment: Added to every event as ``environment``
    """
    _app_context.update(app=app_name, environment=environment)
    level = getattr(logging, log_level.upper(), logging.INFO)

    logging.root.handlers = []
    logging.root.setLevel(level)

    console_renderer = (
        structlog.processors.JSONRenderer()
        if use_json
        else structlog.dev.ConsoleRenderer(colors=False, exception_formatter=structlog.dev.plain_traceback)
    )
    _attach_handler(logging.StreamHandler(sys.stdout), level, console_renderer)
    if log_file:
        _attach_handler(logging.FileHandler(log_file), level, structlog.processors.JSONRenderer())

    structlog.configure(
        processors=_shared_processors() + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: Optional[str] = None) -> structlog.BoundLogger:
    """Module logger, e.g. ``logger = get_logger(__name__)``."""
    return structlog.get_logger(name)


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs every request and tags its log lines with an ``X-Request-ID``.
    Errors that escape the app are answered with a 500 JSON body.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        token = request_id_var.set(request_id)
        logger = get_logger("api.access").bind(method=request.method, path=request.url.path)
        started = time.perf_counter()

        try:
            logger.info(
                "request_started",
                client_host=request.client.host if request.client else None,
            )
            response = await call_next(request)
            logger.info(
                "request_completed",
                status_code=response.status_code,
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
            )
            response.headers["X-Request-ID"] = request_id
            return response
        except Exception as e:
            logger.error(
                "request_failed",
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
                error=str(e),
                exc_info=True,
            )
            content = {"success": False, "error": "Internal server error", "request_id": request_id}
            if _app_context["environment"].lower() != "production":
                content["error"] = str(e) or content["error"]
                content["stack"] = traceback.format_exc()
            return JSONResponse(status_code=500, content=content, headers={"X-Request-ID": request_id})
        finally:
            request_id_var.reset(token)


def setup_app_logging(
    app: FastAPI,
    log_level: str = "INFO",
    use_json: bool = True,
    log_file: Optional[str] = None,
    app_name: Optional[str] = None,
    environment: str = "development",
) -> None:
    """Configure logging and install the request logging middleware on ``app``."""
    setup_logging(
        log_level=log_level,
        use_json=use_json,
        log_file=log_file,
        app_name=app_name or app.title or DEFAULT_APP_NAME,
        environment=environment,
    )
    app.add_middleware(LoggingMiddleware)
