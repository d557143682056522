"""
Structured logging for the log scanner

structlog over stdlib logging, rendered as JSON lines in production or as
console text in development. Log output always goes to stderr: the CLI
prints decoded events on stdout.

setup_logging() may run more than once per process (CLI invocations,
config reloads). Handlers it installs carry a fixed name and are replaced,
never stacked.
"""

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

import structlog
from solders.pubkey import Pubkey
from structlog.typing import EventDict, Processor

from pumplog.core.config import LogConfig


HANDLER_NAME = "pumplog"


class _StderrHandler(logging.StreamHandler):
    """StreamHandler bound to whatever sys.stderr currently is"""

    def __init__(self):
        super().__init__(sys.stderr)

    @property
    def stream(self):
        return sys.stderr

    @stream.setter
    def stream(self, value):
        pass


def add_timestamp(logger, method_name: str, event_dict: EventDict) -> EventDict:
    """Add ISO timestamp to log events"""
    event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def add_log_level(logger, method_name: str, event_dict: EventDict) -> EventDict:
    """Add log level to event dict"""
    event_dict["level"] = method_name
    return event_dict


def render_chain_values(logger, method_name: str, event_dict: EventDict) -> EventDict:
    """Render Pubkey fields as base58 and raw byte fields as hex"""
    for key, value in event_dict.items():
        if isinstance(value, Pubkey):
            event_dict[key] = str(value)
        elif isinstance(value, (bytes, bytearray)):
            event_dict[key] = bytes(value).hex()
    return event_dict


def build_processors(format: str) -> List[Processor]:
    """Processor chain ending in the renderer for `format` ("json" or "console")"""
    processors: List[Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        add_log_level,
        add_timestamp,
        render_chain_values,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=sys.stderr.isatty(),
                exception_formatter=structlog.dev.plain_traceback,
            )
        )
    return processors


def _replace_handlers(handlers: List[logging.Handler], level: int) -> None:
    root = logging.getLogger()
    for handler in [h for h in root.handlers if h.get_name() == HANDLER_NAME]:
        root.removeHandler(handler)
        handler.close()

    for handler in handlers:
        handler.set_name(HANDLER_NAME)
        handler.setFormatter(logging.Formatter("%(message)s"))
        handler.setLevel(level)
        root.addHandler(handler)
    root.setLevel(level)


def setup_logging(
    level: str = "INFO",
    format: str = "json",
    output_file: Optional[str] = None
) -> None:
    """
    Configure structured logging for the scanner

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
        format: Output format ("json" or "console")
        output_file: Optional file path that receives a copy of every line
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    handlers: List[logging.Handler] = [_StderrHandler()]
    if output_file:
        Path(output_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(output_file))
    _replace_handlers(handlers, numeric_level)

    # Not cached: loggers must pick up a later reconfiguration
    structlog.configure(
        processors=build_processors(format),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )


def setup_logging_from_config(log_config: LogConfig, format: Optional[str] = None) -> None:
    """Configure logging from the `logging:` config section; `format` overrides it when given"""
    setup_logging(
        level=log_config.level,
        format=format or log_config.format,
        output_file=log_config.output_file
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a configured logger instance

    Args:
        name: Logger name (usually __name__)

    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)
