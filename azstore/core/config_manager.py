"""
Configuration management for azstore.

Handles loading, validation, and access to client settings.
"""

import os
import json
import logging
from pathlib import Path
from typing import Any, Dict, Literal, Optional
from enum import Enum

import yaml
from pydantic import BaseModel, Field, SecretStr, field_validator, ValidationError, ConfigDict

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "core.windows.net"
DEFAULT_API_VERSION = "2014-02-14"


class LogLevel(str, Enum):
    """Valid log levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LoggingConfig(BaseModel):
    """Logging configuration, applied with azstore.core.logging_config.configure_logging."""
    model_config = ConfigDict(use_enum_values=True)

    level: LogLevel = LogLevel.INFO
    format: Literal["text", "json"] = "text"
    file: Optional[str] = None
    rotation_size: str = "10MB"
    rotation_count: int = 5
    module_levels: Optional[Dict[str, str]] = Field(
        default=None,
        description="Per-module log levels, e.g., {'azstore.auth': 'DEBUG'}"
    )


class StorageConfig(BaseModel):
    """Storage account and client settings."""

    account_name: str = ""
    account_key: SecretStr = Field(
        default=SecretStr(""),
        description="Base64-encoded account key"
    )
    base_url: str = Field(
        default=DEFAULT_BASE_URL,
        description="Storage endpoint domain, e.g. core.windows.net"
    )
    api_version: str = DEFAULT_API_VERSION
    use_https: bool = True
    timeout: float = Field(
        default=30.0,
        gt=0.0,
        description="HTTP timeout in seconds"
    )

    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("api_version")
    @classmethod
    def validate_api_version(cls, v: str) -> str:
        """Validate API version format (YYYY-MM-DD)."""
        parts = v.split("-")
        if len(parts) != 3 or [len(p) for p in parts] != [4, 2, 2]:
            raise ValueError("API version must be in format YYYY-MM-DD")
        for part in parts:
            if not part.isdigit():
                raise ValueError("API version components must be numeric")
        return v

    model_config = ConfigDict(use_enum_values=True)


class ConfigManager:
    """
    Manages azstore configuration loading and validation.

    Configuration precedence (highest to lowest):
    1. Explicit overrides
    2. Environment variables (AZSTORE_*)
    3. Configuration file (YAML/JSON)
    4. Defaults
    """

    def __init__(self):
        self._config: Optional[StorageConfig] = None
        self._config_file: Optional[Path] = None

    def load(
        self,
        config_file: Optional[str] = None,
        overrides: Optional[Dict[str, Any]] = None
    ) -> StorageConfig:
        """
        Load and validate configuration from multiple sources.

        Args:
            config_file: Path to configuration file (YAML or JSON)
            overrides: Dictionary of explicit overrides

        Returns:
            Validated StorageConfig instance

        Raises:
            ValidationError: If configuration is invalid
            FileNotFoundError: If specified config file doesn't exist
        """
        logger.info("Loading azstore configuration")

        config_dict: Dict[str, Any] = {}

        if config_file:
            config_dict = self._load_from_file(config_file)
            self._config_file = Path(config_file)
            logger.info(f"Loaded configuration from file: {config_file}")

        env_config = self._load_from_env()
        config_dict = self._merge_configs(config_dict, env_config)
        if env_config:
            logger.info(f"Applied {len(env_config)} environment variable overrides")

        if overrides:
            config_dict = self._merge_configs(config_dict, overrides)
            logger.info(f"Applied {len(overrides)} explicit overrides")

        try:
            self._config = StorageConfig(**config_dict)
            logger.info("Configuration validated successfully")
            self._log_configuration()
            return self._config
        except ValidationError as e:
            logger.error(f"Configuration validation failed: {e}")
            raise

    def _load_from_file(self, file_path: str) -> Dict[str, Any]:
        """Load configuration from YAML or JSON file."""
        path = Path(file_path)

        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {file_path}")

        with open(path, 'r') as f:
            if path.suffix in ['.yaml', '.yml']:
                return yaml.safe_load(f) or {}
            elif path.suffix == '.json':
                return json.load(f)
            else:
                raise ValueError(f"Unsupported config file format: {path.suffix}")

    def _load_from_env(self) -> Dict[str, Any]:
        """Load configuration from environment variables."""
        config: Dict[str, Any] = {}

        if account_name := os.getenv("AZSTORE_ACCOUNT_NAME"):
            config["account_name"] = account_name
        if account_key := os.getenv("AZSTORE_ACCOUNT_KEY"):
            config["account_key"] = account_key
        if base_url := os.getenv("AZSTORE_BASE_URL"):
            config["base_url"] = base_url
        if api_version := os.getenv("AZSTORE_API_VERSION"):
            config["api_version"] = api_version
        if use_https := os.getenv("AZSTORE_USE_HTTPS"):
            config["use_https"] = use_https.lower() in ['true', '1', 'yes']
        if timeout := os.getenv("AZSTORE_TIMEOUT"):
            config["timeout"] = float(timeout)

        if log_level := os.getenv("AZSTORE_LOG_LEVEL"):
            config.setdefault("logging", {})["level"] = log_level.upper()
        if log_file := os.getenv("AZSTORE_LOG_FILE"):
            config.setdefault("logging", {})["file"] = log_file
        if log_format := os.getenv("AZSTORE_LOG_FORMAT"):
            config.setdefault("logging", {})["format"] = log_format.lower()

        return config

    def _merge_configs(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge two configuration dictionaries."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_configs(result[key], value)
            else:
                result[key] = value

        return result

    def _log_configuration(self) -> None:
        """Log the loaded configuration (account key stays masked by SecretStr)."""
        if not self._config:
            return

        config_dict = self._config.model_dump(mode="json")
        logger.info(f"Active configuration: {json.dumps(config_dict, indent=2)}")

    def get_config(self) -> StorageConfig:
        """
        Get the loaded configuration.

        Raises:
            RuntimeError: If configuration hasn't been loaded
        """
        if self._config is None:
            raise RuntimeError("Configuration not loaded. Call load() first.")
        return self._config

    def reload(self) -> StorageConfig:
        """Reload configuration from the same sources."""
        config_file = str(self._config_file) if self._config_file else None
        return self.load(config_file=config_file)
