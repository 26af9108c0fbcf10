"""
Structured logging configuration for secure sessions.

Provides JSON-formatted logging with redaction of key material and tokens,
plus a helper for recording security events.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

SECURITY_LOGGER_NAME = "secure_session.security"

# Attributes present on every LogRecord; anything else came in through `extra`
_RESERVED_ATTRS = {
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname',
    'filename', 'module', 'lineno', 'funcName', 'created',
    'msecs', 'relativeCreated', 'thread', 'threadName', 'taskName',
    'processName', 'process', 'exc_info', 'exc_text', 'stack_info',
    'message', 'asctime',
}

_SECURITY_LEVELS = {
    'low': logging.DEBUG,
    'medium': logging.INFO,
    'high': logging.WARNING,
}


class StructuredFormatter(logging.Formatter):
    """
    JSON formatter that never writes key material or token values.
    """

    SENSITIVE_KEYWORDS = {
        'secret', 'salt', 'key', 'token', 'cookie', 'nonce', 'payload', 'password',
    }

    def __init__(self, include_sensitive: bool = False):
        """
        Initialize structured formatter.

        Args:
            include_sensitive: Whether to include potentially sensitive fields
        """
        super().__init__()
        self.include_sensitive = include_sensitive

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON"""
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        extra_fields = {}
        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS or key.startswith('_'):
                continue
            if not self.include_sensitive and self._is_sensitive_field(key):
                extra_fields[key] = "[REDACTED]"
            else:
                extra_fields[key] = value

        if extra_fields:
            log_entry["extra"] = extra_fields

        return json.dumps(log_entry, default=self._json_default)

    def _is_sensitive_field(self, key: str) -> bool:
        key_lower = key.lower()
        return any(keyword in key_lower for keyword in self.SENSITIVE_KEYWORDS)

    def _json_default(self, obj: Any) -> str:
        if isinstance(obj, datetime):
            return obj.isoformat()
        return str(obj)


def setup_logging(
    log_level: str = "INFO",
    enable_json: bool = True,
    log_file: Optional[str] = None,
    include_sensitive: bool = False,
) -> None:
    """
    Configure logging for an application embedding secure sessions.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        enable_json: Whether to use JSON formatting
        log_file: Optional file path for logging
        include_sensitive: Whether to include sensitive fields in JSON logs
    """
    logging.root.handlers.clear()

    if enable_json:
        formatter: logging.Formatter = StructuredFormatter(include_sensitive=include_sensitive)
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper()))
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)


def get_security_logger() -> logging.Logger:
    """Logger used for session security events."""
    return logging.getLogger(SECURITY_LOGGER_NAME)


def log_security_event(
    event_type: str,
    message: str,
    level: str = 'low',
    extra: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Log a security event with structured context.

    Args:
        event_type: Type of event (e.g. 'token_rejected', 'key_file_missing')
        message: Human-readable message, must not contain key or token material
        level: Security level ('low', 'medium', 'high')
        extra: Optional additional context
    """
    log_extra: Dict[str, Any] = {
        'event_type': event_type,
        'security_level': level,
        'security_event': True,
    }
    if extra:
        log_extra.update(extra)

    get_security_logger().log(
        _SECURITY_LEVELS.get(level, logging.INFO), message, extra=log_extra
    )


def init_application_logging() -> None:
    """Initialize logging from the environment-backed settings."""
    from secure_session.core.config import settings

    setup_logging(log_level=settings.log_level, enable_json=settings.json_logging)

    logging.getLogger("secure_session.startup").info(
        "Structured logging initialized",
        extra={"json_logging": settings.json_logging, "log_level": settings.log_level},
    )
