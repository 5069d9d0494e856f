"""
Logging for the azstore package.

Every module logs through ``logging.getLogger(__name__)`` under the
``azstore`` logger. Applications opt into output with :func:`setup_logging`
or, from a loaded :class:`~azstore.core.config_manager.StorageConfig`, with
:func:`configure_logging`. Handlers installed here always carry a
:class:`SensitiveDataFilter`, so account keys and request signatures never
reach a log sink.
"""

import logging
import logging.handlers
import json
import sys
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional
from contextvars import ContextVar

from azstore.core.config_manager import LoggingConfig

PACKAGE_LOGGER = "azstore"

# x-ms-request-id of the last service response seen in this context
request_id: ContextVar[Optional[str]] = ContextVar('request_id', default=None)

_REDACTED = "***REDACTED***"


class SensitiveDataFilter(logging.Filter):
    """
    Redact account keys and signatures from log records.

    The record is rendered first, so secrets passed as ``%s`` arguments are
    caught as well as those written into the message itself.
    """

    PATTERNS = [
        (re.compile(r'(Authorization["\']?\s*[:=]\s*["\']?)[^"\'\n]+', re.IGNORECASE), r'\1' + _REDACTED),
        (re.compile(r'(SharedKey(?:Lite)?\s+[^:\s]+:)\S+'), r'\1' + _REDACTED),
        (re.compile(r'(AccountKey=)[^;]+', re.IGNORECASE), r'\1' + _REDACTED),
        (re.compile(r'(account_key["\']?\s*[:=]\s*["\']?)[^"\'\s,}]+', re.IGNORECASE), r'\1' + _REDACTED),
        (re.compile(r'(sig=)[^;&]+', re.IGNORECASE), r'\1' + _REDACTED),
    ]

    @classmethod
    def redact(cls, text: str) -> str:
        for pattern, replacement in cls.PATTERNS:
            text = pattern.sub(replacement, text)
        return text

    def filter(self, record: logging.LogRecord) -> bool:
        record.msg = self.redact(record.getMessage())
        record.args = None
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per record, with the service request ID when known."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "module": record.name,
            "message": record.getMessage(),
        }

        if req_id := request_id.get():
            log_data["request_id"] = req_id

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data)


class TextFormatter(logging.Formatter):
    """Human-readable text formatter."""

    def __init__(self):
        fmt = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
        super().__init__(fmt=fmt, datefmt="%Y-%m-%d %H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        if req_id := request_id.get():
            text += f" [request_id={req_id}]"
        return text


def _is_azstore_handler(handler: logging.Handler) -> bool:
    return any(isinstance(f, SensitiveDataFilter) for f in handler.filters)


def setup_logging(
    level: str = "INFO",
    format_type: str = "text",
    log_file: Optional[str] = None,
    rotation_size: str = "10MB",
    rotation_count: int = 5,
    module_levels: Optional[Dict[str, str]] = None
) -> logging.Logger:
    """
    Send azstore log records to stdout and optionally a rotating file.

    Only the ``azstore`` logger is configured; the application's root logger
    is left alone. Calling this again replaces the handlers of the previous
    call.

    Args:
        level: Level of the azstore logger (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_type: "json" or "text"
        log_file: Optional file path for log output
        rotation_size: Size limit for log rotation (e.g., "10MB")
        rotation_count: Number of rotated log files to keep
        module_levels: Levels for azstore sub-loggers,
                      e.g., {"azstore.auth": "DEBUG"}

    Returns:
        The configured azstore logger
    """
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(level.upper())

    for handler in [h for h in package_logger.handlers if _is_azstore_handler(h)]:
        package_logger.removeHandler(handler)
        handler.close()

    formatter = JSONFormatter() if format_type == "json" else TextFormatter()

    handlers: list = [logging.StreamHandler(sys.stdout)]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.handlers.RotatingFileHandler(
            filename=log_file,
            maxBytes=_parse_size(rotation_size),
            backupCount=rotation_count,
            encoding='utf-8'
        ))

    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(SensitiveDataFilter())
        package_logger.addHandler(handler)

    # Our handlers own the output now
    package_logger.propagate = False

    for module_name, module_level in (module_levels or {}).items():
        logging.getLogger(module_name).setLevel(module_level.upper())

    package_logger.debug(
        f"Logging configured: level={level}, format={format_type}, file={log_file}"
    )
    return package_logger


def configure_logging(config: LoggingConfig) -> logging.Logger:
    """Apply the ``logging`` section of a StorageConfig."""
    return setup_logging(
        level=config.level,
        format_type=config.format,
        log_file=config.file,
        rotation_size=config.rotation_size,
        rotation_count=config.rotation_count,
        module_levels=config.module_levels,
    )


def _parse_size(size_str: str) -> int:
    """Parse a size such as "10MB" or "512KB" to bytes."""
    size_str = size_str.upper().strip()

    # Longer suffixes first so 'B' does not match 'MB'
    for suffix, multiplier in (('GB', 1024 ** 3), ('MB', 1024 ** 2), ('KB', 1024), ('B', 1)):
        if size_str.endswith(suffix):
            return int(float(size_str[:-len(suffix)].strip()) * multiplier)

    return int(size_str)


def set_request_id(req_id: Optional[str]) -> None:
    """Record the service request ID for log records of the current context."""
    request_id.set(req_id or None)


def clear_request_id() -> None:
    request_id.set(None)
