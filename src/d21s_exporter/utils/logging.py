"""
Logging utilities for the d21s exporter
"""

import logging
import sys
from typing import Any

import structlog
from pythonjsonlogger import jsonlogger

from ..config.settings import LogFormat, LoggingSettings, LogLevel, LogOutput

_LEVELS = {
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.WARN: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
}


def add_caller(logger, method_name, event_dict):
    """Collapse filename and lineno into a single ``caller=file:line`` field"""
    filename = event_dict.pop("filename", None)
    lineno = event_dict.pop("lineno", None)
    if filename is not None:
        event_dict["caller"] = f"{filename}:{lineno}"
    return event_dict


def setup_logging(config: LoggingSettings | None = None) -> None:
    """Setup structured logging for the application

    logfmt lines are rendered by structlog itself; JSON lines hand the event
    dict to python-json-logger so stdlib records (uvicorn) share the format.
    """
    config = config or LoggingSettings()
    level = _LEVELS[config.level]

    shared_processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True, key="ts"),
        structlog.processors.CallsiteParameterAdder(
            [
                structlog.processors.CallsiteParameter.FILENAME,
                structlog.processors.CallsiteParameter.LINENO,
            ],
            additional_ignores=[__name__],
        ),
        add_caller,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if config.format == LogFormat.JSON:
        processors = shared_processors + [structlog.stdlib.render_to_log_kwargs]
        formatter = jsonlogger.JsonFormatter("%(name)s %(levelname)s %(message)s")
    else:
        processors = shared_processors + [structlog.processors.LogfmtRenderer()]
        formatter = logging.Formatter("%(message)s")

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # Clear any existing handlers
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(level)

    stream = sys.stderr if config.output == LogOutput.STDERR else sys.stdout
    handler = logging.StreamHandler(stream)
    handler.setLevel(level)
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    # Set third-party library log levels
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


class ContextualLogger:
    """Logger with contextual information"""

    def __init__(self, name: str, context: dict[str, Any] | None = None):
        self.name = name
        self.logger = structlog.get_logger(name)
        self.context = context or {}

    def bind(self, **kwargs) -> "ContextualLogger":
        """Bind additional context to the logger"""
        new_context = {**self.context, **kwargs}
        return ContextualLogger(self.name, new_context)

    def debug(self, message: str, **kwargs):
        self.logger.debug(message, **{**self.context, **kwargs})

    def info(self, message: str, **kwargs):
        self.logger.info(message, **{**self.context, **kwargs})

    def warning(self, message: str, **kwargs):
        self.logger.warning(message, **{**self.context, **kwargs})

    def error(self, message: str, **kwargs):
        self.logger.error(message, **{**self.context, **kwargs})

    def exception(self, message: str, **kwargs):
        """Log exception with traceback"""
        self.logger.exception(message, **{**self.context, **kwargs})


def get_logger(name: str, context: dict[str, Any] | None = None) -> ContextualLogger:
    """Get a contextual logger instance"""
    return ContextualLogger(name, context)
