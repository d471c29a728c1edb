"""
Structured Logging Module
=========================

structlog setup for the phone agent.

Development runs get a colored console renderer with rich tracebacks,
production runs emit one JSON object per line. Every entry carries the
service name, version and environment, plus whatever a surrounding
LogContext bound (the goal of the current run, a request id).

LLM replies and error bodies can be long, so string values above
LOG_VALUE_LIMIT characters are shortened before rendering.

Usage:
    from phone_agent.utils.logger import get_logger

    logger = get_logger(__name__)
    logger.info("Command submitted", command_type="tap", command_id="42")
"""

import logging
import sys
from typing import Any, Mapping, Optional

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from phone_agent import __version__
from phone_agent.config import get_settings

LOG_VALUE_LIMIT = 200

# Third-party loggers that are chatty at INFO
_QUIET_LOGGERS = ("httpx", "httpcore", "groq", "aiohttp.access", "uvicorn.access")


def add_service_context(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Tag each entry with service, version and environment."""
    event_dict.setdefault("service", "phone-agent")
    event_dict.setdefault("version", __version__)
    event_dict.setdefault("environment", get_settings().server.environment)
    return event_dict


def truncate_long_values(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Shorten long string fields, leaving the event message intact."""
    for key, value in event_dict.items():
        if key == "event" or not isinstance(value, str):
            continue
        if len(value) > LOG_VALUE_LIMIT:
            event_dict[key] = f"{value[:LOG_VALUE_LIMIT]}... ({len(value)} chars)"
    return event_dict


def setup_logging(level: Optional[str] = None) -> None:
    """
    Configure structlog and the standard library root logger.

    Call once at process start (the FastAPI app and the CLI both do).

    Args:
        level: Log level name. Defaults to LOG_LEVEL from settings.
    """
    server = get_settings().server
    level_name = (level or server.log_level).upper()
    log_level = getattr(logging, level_name, logging.INFO)

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
        add_service_context,
        truncate_long_values,
    ]

    renderer: list[Processor]
    if server.debug:
        renderer = [
            structlog.dev.ConsoleRenderer(
                colors=True,
                exception_formatter=structlog.dev.rich_traceback,
            ),
        ]
    else:
        renderer = [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]

    structlog.configure(
        processors=[*shared_processors, *renderer],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger, typically for ``__name__``."""
    return structlog.get_logger(name)


class LogContext:
    """
    Bind context variables to every log entry inside a ``with`` block.

    Values bound by an enclosing context are restored on exit, so a run
    started inside a request keeps the request id afterwards.

    Usage:
        with LogContext(goal="Open settings"):
            logger.info("Step finished")  # includes goal
    """

    def __init__(self, **kwargs: Any) -> None:
        self.context = kwargs
        self._tokens: Mapping[str, Any] = {}

    def __enter__(self) -> "LogContext":
        self._tokens = structlog.contextvars.bind_contextvars(**self.context)
        return self

    def __exit__(self, *args: Any) -> None:
        structlog.contextvars.reset_contextvars(**self._tokens)
