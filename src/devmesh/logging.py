"""Structured logging configuration.

Modules log snake_case event names with keyword context through
:func:`get_logger`; :func:`configure_logging` decides how they are rendered.
"""
import json
import logging
import sys
from typing import Any, List, Optional

import structlog
from structlog.processors import CallsiteParameter
from structlog.types import EventDict, Processor

STDERR_LOG_LEVEL = "INFO"
IGNORED_LOGGERS = (
    "docker.utils",
    "urllib3",
    "aiohttp",
    "asyncio",
)

CALLSITE_KEYS = ("func_name", "lineno", "filename")


def level_filter(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Drop events below STDERR_LOG_LEVEL or coming from ignored loggers."""
    logger_name = getattr(logger, "name", "") or ""
    if logger_name.startswith(IGNORED_LOGGERS):
        raise structlog.DropEvent

    if method_name == "exception":
        method_name = "error"
    level_no = logging.getLevelName(method_name.upper())
    # unknown method names come back as "Level X" strings
    if isinstance(level_no, int) and level_no < logging.getLevelName(STDERR_LOG_LEVEL):
        raise structlog.DropEvent
    return event_dict


class CompactJSONRenderer:
    """Single-line JSON: timestamp, level, event and callsite up front, the rest under ``data``."""

    def __call__(self, _: Any, __: str, event_dict: EventDict) -> str:
        line = {
            "ts": event_dict.pop("timestamp", None),
            "lvl": event_dict.pop("level", "???"),
            "msg": event_dict.pop("event", ""),
        }
        for key in CALLSITE_KEYS:
            if key in event_dict:
                line[key] = event_dict.pop(key)
        if event_dict:
            line["data"] = event_dict
        return json.dumps(line, separators=(",", ":"), default=str)


def _json_processors() -> List[Processor]:
    return [
        level_filter,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.CallsiteParameterAdder(
            {CallsiteParameter.FUNC_NAME, CallsiteParameter.LINENO, CallsiteParameter.FILENAME}
        ),
        structlog.processors.format_exc_info,
        CompactJSONRenderer(),
    ]


def _console_processors() -> List[Processor]:
    return [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
    ]


def configure_logging(level: str = "INFO", json_output: Optional[bool] = None) -> None:
    """Route structlog through stdlib logging on stderr.

    JSON lines are used when stderr is a terminal unless ``json_output`` says
    otherwise. Per-service mesh failures are only visible at ``DEBUG``.
    """
    global STDERR_LOG_LEVEL
    STDERR_LOG_LEVEL = level.upper()

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=logging.getLevelName(STDERR_LOG_LEVEL),
    )

    if json_output is None:
        json_output = sys.stderr.isatty()

    structlog.configure(
        processors=_json_processors() if json_output else _console_processors(),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)
