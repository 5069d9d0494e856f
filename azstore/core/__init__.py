"""Core module initialization."""

from .client import StorageClient, StorageResponse, check_response_code
from .config_manager import ConfigManager, StorageConfig
from .error_decoder import (
    ErrorFormat,
    decode_error,
    service_error_from_xml,
    table_error_from_json,
)
from .logging_config import configure_logging, setup_logging

__all__ = [
    "StorageClient",
    "StorageResponse",
    "check_response_code",
    "ConfigManager",
    "StorageConfig",
    "ErrorFormat",
    "decode_error",
    "service_error_from_xml",
    "table_error_from_json",
    "setup_logging",
    "configure_logging",
]
