"""Structured logging for Eventide.

All ``logging.getLogger(__name__)`` call sites are rendered through
structlog's ProcessorFormatter, so call sites stay plain stdlib logging.

Each HTTP request gets a ``RequestContext`` (method, path and the verified
caller email) held in a ContextVar. ``RequestLogMiddleware`` binds it when a
request arrives, the auth dependency fills in the user, and the
``add_request_context`` processor copies it onto every record logged while
the request is in flight.

Two console formats:
- ``text``: colored, human-readable (dev default)
- ``json``: one JSON object per line

With ``log_root`` set, records are also written as JSON lines::

    {log_root}/
      eventide.log      # everything at or above the root level
      requests.log      # one line per HTTP request (eventide.requests)
"""

from __future__ import annotations

import logging
import sys
from contextvars import ContextVar, Token
from dataclasses import dataclass
from pathlib import Path

import structlog
from opentelemetry import trace

REQUEST_LOGGER = "eventide.requests"

# Third-party loggers that only matter at WARNING and above. uvicorn's own
# access log is replaced by the request logger.
_QUIET_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "asyncpg")


@dataclass
class RequestContext:
    method: str | None = None
    path: str | None = None
    user: str | None = None


_request_context: ContextVar[RequestContext | None] = ContextVar(
    "eventide_request", default=None
)


def bind_request(method: str, path: str) -> Token:
    """Start a fresh context for one request. Pass the token to ``reset_request``."""
    return _request_context.set(RequestContext(method=method, path=path))


def reset_request(token: Token) -> None:
    _request_context.reset(token)


def current_request() -> RequestContext | None:
    return _request_context.get()


def set_user_context(email: str | None) -> None:
    """Record the verified caller on the current request context.

    The context object is mutated in place so the middleware that bound it
    sees the user even though the dependency ran in a child task.
    """
    ctx = _request_context.get()
    if ctx is None:
        _request_context.set(RequestContext(user=email))
    else:
        ctx.user = email


def get_user_context() -> str | None:
    ctx = _request_context.get()
    return ctx.user if ctx is not None else None


# ---------------------------------------------------------------------------
# Processors
# ---------------------------------------------------------------------------


def add_request_context(
    logger: logging.Logger,  # noqa: ARG001
    method_name: str,  # noqa: ARG001
    event_dict: dict,
) -> dict:
    """Copy user, method and path from the request context. Outside a request, adds nothing."""
    ctx = _request_context.get()
    if ctx is None:
        return event_dict
    if ctx.user is not None:
        event_dict.setdefault("user", ctx.user)
    if ctx.method is not None:
        event_dict.setdefault("http_method", ctx.method)
        event_dict.setdefault("http_path", ctx.path)
    return event_dict


def add_trace_ids(
    logger: logging.Logger,  # noqa: ARG001
    method_name: str,  # noqa: ARG001
    event_dict: dict,
) -> dict:
    """Add ``trace_id``/``span_id`` when a valid OTel span is active."""
    ctx = trace.get_current_span().get_span_context()
    if ctx.is_valid:
        event_dict["trace_id"] = format(ctx.trace_id, "032x")
        event_dict["span_id"] = format(ctx.span_id, "016x")
    return event_dict


def _pre_chain(time_fmt: str) -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt=time_fmt),
        add_request_context,
        add_trace_ids,
        structlog.stdlib.ExtraAdder(),
    ]


def _formatter(renderer, time_fmt: str) -> structlog.stdlib.ProcessorFormatter:
    return structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
        foreign_pre_chain=_pre_chain(time_fmt),
    )


def _json_file(path: Path) -> logging.FileHandler:
    handler = logging.FileHandler(path)
    handler.setFormatter(_formatter(structlog.processors.JSONRenderer(), "iso"))
    return handler


def _drop_file_handlers(logger: logging.Logger) -> None:
    for handler in [h for h in logger.handlers if isinstance(h, logging.FileHandler)]:
        logger.removeHandler(handler)
        handler.close()


def configure_logging(
    level: str = "INFO",
    fmt: str = "text",
    log_root: Path | None = None,
) -> None:
    """Configure structured logging for the process.

    Safe to call more than once: handlers installed by a previous call are
    replaced, not duplicated.

    Parameters
    ----------
    level:
        Root log level (e.g. "DEBUG", "INFO", "WARNING").
    fmt:
        Console format, ``"text"`` or ``"json"``.
    log_root:
        Directory for JSON log files (``eventide.log`` and ``requests.log``).
    """
    if fmt == "json":
        time_fmt, renderer = "iso", structlog.processors.JSONRenderer()
    else:
        time_fmt, renderer = "%H:%M:%S", structlog.dev.ConsoleRenderer()

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(_formatter(renderer, time_fmt))

    root = logging.getLogger()
    for handler in root.handlers:
        handler.close()
    root.handlers.clear()
    root.addHandler(console)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    request_logger = logging.getLogger(REQUEST_LOGGER)
    _drop_file_handlers(request_logger)
    if log_root is not None:
        log_root = Path(log_root)
        log_root.mkdir(parents=True, exist_ok=True)
        root.addHandler(_json_file(log_root / "eventide.log"))
        request_logger.addHandler(_json_file(log_root / "requests.log"))

    structlog.configure(
        processors=[
            *_pre_chain(time_fmt),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
