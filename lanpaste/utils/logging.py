"""Logging configuration.

Production logs are single-line JSON on stdout so a log shipper can pick up
severity and context fields. Development logs are colored, human-readable
lines.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

SEVERITY_MAP = {
    logging.DEBUG: "DEBUG",
    logging.INFO: "INFO",
    logging.WARNING: "WARNING",
    logging.ERROR: "ERROR",
    logging.CRITICAL: "CRITICAL",
}

# Record attributes copied into the structured entry when present
CONTEXT_FIELDS = ("paste_id", "idempotency_key", "api_key", "client_ip")


class StructuredFormatter(logging.Formatter):
    """JSON formatter for machine-parsed logs."""

    def __init__(self, service_name: str = "lanpaste"):
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_entry: dict[str, Any] = {
            "severity": SEVERITY_MAP.get(record.levelno, "DEFAULT"),
            "message": record.getMessage(),
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "logger": record.name,
            "service": self.service_name,
            "source": {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            },
        }

        for name in CONTEXT_FIELDS:
            if hasattr(record, name):
                log_entry[name] = getattr(record, name)

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        if hasattr(record, "extra_data") and record.extra_data:
            log_entry["data"] = record.extra_data

        return json.dumps(log_entry, default=str)


class LocalFormatter(logging.Formatter):
    """Human-readable formatter for local development."""

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with colors for terminal."""
        level_color = self.COLORS.get(record.levelname, "")

        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        message = f"{level_color}{record.levelname:8}{self.RESET} {timestamp} [{record.name}] {record.getMessage()}"

        context_parts = []
        if hasattr(record, "paste_id"):
            context_parts.append(f"paste={record.paste_id}")
        if hasattr(record, "idempotency_key"):
            context_parts.append(f"idem={record.idempotency_key[:16]}")

        if context_parts:
            message += f" ({', '.join(context_parts)})"

        if record.exc_info:
            message += f"\n{self.formatException(record.exc_info)}"

        return message


class PasteLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that adds paste context to all log messages."""

    def process(self, msg: str, kwargs: dict) -> tuple[str, dict]:
        extra = kwargs.get("extra", {})
        extra.update(self.extra)
        kwargs["extra"] = extra
        return msg, kwargs


def setup_logging(
    environment: str = "production",
    log_level: str = "INFO",
    service_name: str = "lanpaste",
) -> None:
    """Configure logging for the application.

    Args:
        environment: Deployment environment (production, development, staging)
        log_level: Minimum log level to capture
        service_name: Service name attached to structured entries
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(logging.DEBUG)

    if environment == "development":
        formatter = LocalFormatter()
    else:
        formatter = StructuredFormatter(service_name=service_name)

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    # Reduce noise from third-party libraries
    logging.getLogger("filelock").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def get_logger(
    name: str,
    paste_id: str | None = None,
    idempotency_key: str | None = None,
) -> logging.Logger | PasteLoggerAdapter:
    """Get a logger instance, optionally with paste context.

    Args:
        name: Logger name (typically __name__)
        paste_id: Optional paste ID for context
        idempotency_key: Optional idempotency key for context

    Returns:
        Logger or LoggerAdapter with context
    """
    logger = logging.getLogger(name)

    if paste_id or idempotency_key:
        extra = {}
        if paste_id:
            extra["paste_id"] = paste_id
        if idempotency_key:
            extra["idempotency_key"] = idempotency_key
        return PasteLoggerAdapter(logger, extra)

    return logger
