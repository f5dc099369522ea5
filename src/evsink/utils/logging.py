"""structlog setup shared by the server, the CLI and uvicorn's own loggers."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterator, MutableMapping, cast

import structlog
from structlog.dev import ConsoleRenderer
from structlog.stdlib import BoundLogger
from structlog.types import Processor

from evsink import __version__

SERVICE_NAME = "evsink"

_UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


def _coerce_level(level: str | int) -> int:
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        if isinstance(resolved, str):
            raise ValueError(f"Invalid log level: {level}")
        return int(resolved)
    return int(level)


def _drop_color_message(
    _logger: Any, _method: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    # uvicorn duplicates every message with ANSI codes under this key
    event_dict.pop("color_message", None)
    return event_dict


def configure_logging(level: str | int = "INFO", json_output: bool = True) -> None:
    """
    Route structlog and stdlib logging through one stderr handler.

    Records from uvicorn go through the same formatter, so access lines and
    segment events come out in one format. stdout stays free for CLI output.
    """
    numeric_level = _coerce_level(level)
    renderer: Processor = (
        structlog.processors.JSONRenderer() if json_output else ConsoleRenderer()
    )

    shared: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]

    structlog.configure(
        processors=[
            *shared,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
            foreign_pre_chain=[*shared, structlog.stdlib.ExtraAdder(), _drop_color_message],
        )
    )
    logging.basicConfig(level=numeric_level, handlers=[handler], force=True)

    for name in _UVICORN_LOGGERS:
        uv_logger = logging.getLogger(name)
        uv_logger.handlers.clear()
        uv_logger.propagate = True


def get_logger(name: str) -> BoundLogger:
    """Logger for `name` with service name and package version bound."""
    return cast(
        BoundLogger,
        structlog.get_logger(name).bind(service_name=SERVICE_NAME, version=__version__),
    )


@contextmanager
def log_context(**kwargs: Any) -> Iterator[None]:
    """Bind fields to every event logged inside the block, in this task only."""
    with structlog.contextvars.bound_contextvars(**kwargs):
        yield


__all__ = ["configure_logging", "get_logger", "log_context", "SERVICE_NAME"]
