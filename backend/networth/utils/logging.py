# backend/networth/utils/logging.py
"""
Logging configuration for the Net Worth Price Engine.

Centralized setup with:
- Environment-based log levels
- Correlation ID and ticker on every record
- JSON format option for log aggregation
- Suppression of noisy HTTP client logs

Usage:
    from networth.utils import setup_logging

    # In main.py, before creating the FastAPI app
    setup_logging()

Log Levels:
    DEBUG   - Cache hits/misses, request URLs, raw counts
    INFO    - Batch start/finish, tickers backfilled, prices stored
    WARNING - Retries, rate limits, degraded currency conversions
    ERROR   - Per-ticker failures, provider outages

Environment Configuration:
    LOG_LEVEL=DEBUG
    LOG_FORMAT=json       # machine-readable logs
    LOG_FORMAT=text       # human-readable logs (default)
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from networth.config import settings
from networth.utils.context import get_correlation_id, get_current_ticker

# =============================================================================
# CONSTANTS
# =============================================================================

DEFAULT_TEXT_FORMAT = (
    "%(asctime)s | %(levelname)-8s | %(correlation_id)s | %(ticker)s | %(name)s | %(message)s"
)
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

NO_CORRELATION_ID = "no-correlation-id"
NO_TICKER = "-"

# Third-party loggers to suppress (set to WARNING to reduce noise)
NOISY_LOGGERS = [
    "httpx",
    "httpcore",
    "asyncio",
    "sqlalchemy.engine",
    "uvicorn.access",
]

_STANDARD_ATTRS = {
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "pathname", "process", "processName", "relativeCreated",
    "stack_info", "exc_info", "exc_text", "thread", "threadName",
    "correlation_id", "ticker", "message", "taskName",
}


# =============================================================================
# CONTEXT FILTER
# =============================================================================

class ContextFilter(logging.Filter):
    """
    Logging filter that stamps records with the correlation ID and ticker.

    Access in format strings as %(correlation_id)s and %(ticker)s.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id() or NO_CORRELATION_ID
        record.ticker = get_current_ticker() or NO_TICKER
        return True


# =============================================================================
# JSON FORMATTER
# =============================================================================

class JsonFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Output format:
    {
        "timestamp": "2024-01-15T10:30:00.123000+00:00",
        "level": "INFO",
        "logger": "networth.services.price_sync.refresh",
        "correlation_id": "abc-123-def",
        "ticker": "AAPL",
        "message": "Stored price 189.20 USD",
        "extra": { ... }
    }
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "correlation_id": getattr(record, "correlation_id", NO_CORRELATION_ID),
            "ticker": getattr(record, "ticker", NO_TICKER),
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        extra = {}
        for key, value in record.__dict__.items():
            if key in _STANDARD_ATTRS:
                continue
            try:
                json.dumps(value)
                extra[key] = value
            except (TypeError, ValueError):
                extra[key] = str(value)

        if extra:
            log_entry["extra"] = extra

        return json.dumps(log_entry)


# =============================================================================
# SETUP FUNCTION
# =============================================================================

def setup_logging(
        level: str | None = None,
        log_format: str | None = None,
        suppress_noisy_loggers: bool = True,
) -> None:
    """
    Configure application-wide logging.

    Call once at application startup, before creating the FastAPI app.

    Args:
        level: Log level name. Defaults to settings.log_level.
        log_format: 'text' or 'json'. Defaults to settings.log_format.
        suppress_noisy_loggers: Lower HTTP client loggers to WARNING.
    """
    log_level_str = level or settings.log_level
    log_level = _get_log_level(log_level_str)
    format_type = log_format or settings.log_format

    if format_type.lower() == "json":
        formatter: logging.Formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(fmt=DEFAULT_TEXT_FORMAT, datefmt=DEFAULT_DATE_FORMAT)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    handler.addFilter(ContextFilter())

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    if suppress_noisy_loggers:
        for logger_name in NOISY_LOGGERS:
            logging.getLogger(logger_name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        f"Logging configured: level={log_level_str}, format={format_type}"
    )


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def _get_log_level(level_str: str) -> int:
    """
    Convert a log level name to its logging constant.

    Raises:
        ValueError: If level_str is not a valid log level
    """
    level_str = level_str.upper().strip()

    level_mapping = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "WARN": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }

    if level_str not in level_mapping:
        valid_levels = ", ".join(level_mapping.keys())
        raise ValueError(
            f"Invalid log level: '{level_str}'. "
            f"Valid levels are: {valid_levels}"
        )

    return level_mapping[level_str]


def get_logger(name: str) -> logging.Logger:
    """Return a standard logger; context is added by the handler filter."""
    return logging.getLogger(name)
