"""
Static configuration management for Ultimate Manager.

Purpose
-------
Provides centralized static configuration loaded from environment variables
with sensible defaults, type validation, and bounds checking. This module
handles non-dynamic configuration that is set at application startup.

Responsibilities
----------------
- Load configuration from environment variables with .env support
- Provide type-safe access to all static configuration values
- Validate critical settings on startup
- Track which values came from the environment vs defaults

Non-Responsibilities
--------------------
- Game balance values (handled by ConfigManager)
- Runtime configuration changes (except safe reload)
- Secrets management (use environment variables)

Configuration Categories
------------------------
1. Environment: environment type, debug mode
2. Logging: level, JSON/colors toggles, file sink, directories
3. Document store: backend selection and Redis connection settings
4. Game config: directory holding YAML balance defaults

Environment Variables
---------------------
- ENVIRONMENT: Environment type (default: development)
- DEBUG: Debug mode flag (default: False)
- LOG_LEVEL: Logging level (default: INFO)
- LOG_JSON / LOG_COLORS / LOG_TO_FILE: console and file sink toggles
- STORE_BACKEND: "memory" or "redis" (default: memory)
- REDIS_URL: Redis connection string (default: localhost)
- STORE_OPERATION_TIMEOUT: seconds per store round trip (0 disables)
"""

import logging
import os
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Environment(Enum):
    """Deployment environment types."""

    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"

    @classmethod
    def from_string(cls, value: str) -> "Environment":
        """
        Parse environment string safely with fallback.

        Example
        -------
        >>> Environment.from_string("production") == Environment.PRODUCTION
        True
        >>> Environment.from_string("invalid") == Environment.DEVELOPMENT
        True
        """
        try:
            return cls(value.lower())
        except ValueError:
            # Structured logger is not initialized yet during bootstrap
            logging.warning(f"Unknown environment '{value}', defaulting to development")
            return cls.DEVELOPMENT


class StoreBackend(Enum):
    """Available document store adapters."""

    MEMORY = "memory"
    REDIS = "redis"


class _ConfigLoadMetrics:
    """Tracks which configuration values came from the environment."""

    def __init__(self) -> None:
        self.env_vars_loaded: Dict[str, bool] = {}
        self.validation_errors: Dict[str, str] = {}
        self.defaults_used: Dict[str, Any] = {}
        self.last_reload: Optional[str] = None

    def record_env_load(self, key: str, from_env: bool, default: Any) -> None:
        self.env_vars_loaded[key] = from_env
        if not from_env:
            self.defaults_used[key] = default

    def record_validation_error(self, key: str, error: str) -> None:
        self.validation_errors[key] = error

    def get_summary(self) -> Dict[str, Any]:
        return {
            "total_configs": len(self.env_vars_loaded),
            "from_environment": sum(1 for v in self.env_vars_loaded.values() if v),
            "from_defaults": sum(1 for v in self.env_vars_loaded.values() if not v),
            "validation_errors": len(self.validation_errors),
            "defaults_used": list(self.defaults_used.keys()),
            "last_reload": self.last_reload,
        }


class Config:
    """
    Centralized static configuration.

    All values are loaded from environment variables with sensible defaults
    and are available as class attributes.

    Usage
    -----
    >>> Config.STORE_BACKEND
    'memory'
    >>> if Config.is_production():
    ...     logger.info("Running in production mode")
    """

    _metrics: Optional[_ConfigLoadMetrics] = None
    _validated: bool = False

    # =========================================================================
    # Environment
    # =========================================================================

    ENVIRONMENT: str = "development"
    DEBUG: bool = False

    # =========================================================================
    # Logging
    # =========================================================================

    LOG_LEVEL: str = "INFO"
    LOG_JSON: Optional[bool] = None
    LOG_COLORS: bool = True
    LOG_TO_FILE: bool = False

    # =========================================================================
    # Directories
    # =========================================================================

    PROJECT_ROOT = Path(__file__).resolve().parents[3]
    LOGS_DIR = PROJECT_ROOT / "logs"
    CONFIG_DIR = PROJECT_ROOT / "config"

    # =========================================================================
    # Document Store
    # =========================================================================

    STORE_BACKEND: str = StoreBackend.MEMORY.value
    STORE_OPERATION_TIMEOUT: int = 10

    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_MAX_CONNECTIONS: int = 50
    REDIS_SOCKET_TIMEOUT: int = 5
    REDIS_KEY_PREFIX: str = "um"

    # =========================================================================
    # Metadata
    # =========================================================================

    APP_NAME: str = "Ultimate Manager"
    APP_VERSION: str = "1.0.0"

    # =========================================================================
    # Helper Methods
    # =========================================================================

    @classmethod
    def _init_metrics(cls) -> None:
        if cls._metrics is None:
            cls._metrics = _ConfigLoadMetrics()

    @classmethod
    def _invalid(cls, key: str, error: str) -> None:
        logging.warning(error)
        if cls._metrics:
            cls._metrics.record_validation_error(key, error)

    @classmethod
    def _safe_int(
        cls,
        key: str,
        default: int,
        min_val: Optional[int] = None,
        max_val: Optional[int] = None,
    ) -> int:
        """
        Safely parse integer from environment with validation.

        Out-of-range or unparsable values fall back to ``default`` and are
        recorded as validation errors.

        Example
        -------
        >>> Config._safe_int("REDIS_MAX_CONNECTIONS", 50, min_val=1, max_val=500)
        50
        """
        cls._init_metrics()
        raw_value = os.getenv(key)

        if raw_value is None:
            cls._metrics.record_env_load(key, False, default)
            return default

        try:
            value = int(raw_value)
        except ValueError:
            cls._invalid(key, f"{key}='{raw_value}' is not a valid integer, using default {default}")
            return default

        if min_val is not None and value < min_val:
            cls._invalid(key, f"{key}={value} is below minimum {min_val}, using default {default}")
            return default

        if max_val is not None and value > max_val:
            cls._invalid(key, f"{key}={value} exceeds maximum {max_val}, using default {default}")
            return default

        cls._metrics.record_env_load(key, True, default)
        return value

    @classmethod
    def _safe_bool(cls, key: str, default: Optional[bool]) -> Optional[bool]:
        """
        Safely parse boolean from environment.

        Recognizes: true/false, yes/no, 1/0, on/off (case-insensitive).
        """
        cls._init_metrics()
        raw_value = os.getenv(key)

        if raw_value is None:
            cls._metrics.record_env_load(key, False, default)
            return default

        normalized = raw_value.lower().strip()
        if normalized in {"true", "yes", "1", "on"}:
            value = True
        elif normalized in {"false", "no", "0", "off"}:
            value = False
        else:
            cls._invalid(key, f"{key}='{raw_value}' is not a valid boolean, using default {default}")
            return default

        cls._metrics.record_env_load(key, True, default)
        return value

    @classmethod
    def _safe_str(cls, key: str, default: str, required: bool = False) -> str:
        cls._init_metrics()
        value = os.getenv(key, default)
        cls._metrics.record_env_load(key, key in os.environ, default)

        if required and not value:
            error = f"Required environment variable {key} is not set"
            logging.error(error)
            cls._metrics.record_validation_error(key, error)

        return value

    @classmethod
    def _safe_path(cls, key: str, default: Path) -> Path:
        raw = cls._safe_str(key, "")
        return Path(raw).resolve() if raw else default

    # =========================================================================
    # Configuration Loading
    # =========================================================================

    @classmethod
    def load(cls) -> None:
        """
        Load all configuration from environment variables with validation.

        Called automatically on module import; can be called again to reload
        at runtime (tests use this after patching the environment).
        """
        cls._init_metrics()

        cls.ENVIRONMENT = Environment.from_string(
            cls._safe_str("ENVIRONMENT", "development")
        ).value
        cls.DEBUG = bool(cls._safe_bool("DEBUG", False))

        cls.LOG_LEVEL = cls._safe_str("LOG_LEVEL", "INFO")
        cls.LOG_JSON = cls._safe_bool("LOG_JSON", None)
        cls.LOG_COLORS = bool(cls._safe_bool("LOG_COLORS", True))
        cls.LOG_TO_FILE = bool(cls._safe_bool("LOG_TO_FILE", False))
        cls.LOGS_DIR = cls._safe_path("LOGS_DIR", cls.PROJECT_ROOT / "logs")
        cls.CONFIG_DIR = cls._safe_path("CONFIG_DIR", cls.PROJECT_ROOT / "config")

        backend = cls._safe_str("STORE_BACKEND", StoreBackend.MEMORY.value).lower()
        try:
            cls.STORE_BACKEND = StoreBackend(backend).value
        except ValueError:
            cls._invalid(
                "STORE_BACKEND",
                f"STORE_BACKEND='{backend}' is not a known backend, using memory",
            )
            cls.STORE_BACKEND = StoreBackend.MEMORY.value

        cls.STORE_OPERATION_TIMEOUT = cls._safe_int(
            "STORE_OPERATION_TIMEOUT", 10, min_val=0, max_val=300
        )

        cls.REDIS_URL = cls._safe_str("REDIS_URL", "redis://localhost:6379/0")
        cls.REDIS_MAX_CONNECTIONS = cls._safe_int(
            "REDIS_MAX_CONNECTIONS", 50, min_val=1, max_val=500
        )
        cls.REDIS_SOCKET_TIMEOUT = cls._safe_int(
            "REDIS_SOCKET_TIMEOUT", 5, min_val=1, max_val=60
        )
        cls.REDIS_KEY_PREFIX = cls._safe_str("REDIS_KEY_PREFIX", "um")

        cls._metrics.last_reload = datetime.now(timezone.utc).isoformat()

    @classmethod
    def validate(cls) -> None:
        """
        Validate critical configuration values on startup.

        Raises
        ------
        ValueError
            If the Redis backend is selected without a usable REDIS_URL.
        """
        if cls.STORE_BACKEND == StoreBackend.REDIS.value and not cls.REDIS_URL:
            raise ValueError("STORE_BACKEND=redis requires REDIS_URL to be set")

        if cls.is_production() and cls.STORE_BACKEND == StoreBackend.MEMORY.value:
            logging.warning(
                "Production environment is using the in-memory document store; "
                "state will not survive a restart"
            )

        cls._validated = True

    # =========================================================================
    # Environment Helpers
    # =========================================================================

    @classmethod
    def is_production(cls) -> bool:
        return cls.ENVIRONMENT == Environment.PRODUCTION.value

    @classmethod
    def get_config_summary(cls) -> Dict[str, Any]:
        """Non-secret configuration summary for startup logs."""
        summary: Dict[str, Any] = {
            "environment": cls.ENVIRONMENT,
            "debug": cls.DEBUG,
            "log_level": cls.LOG_LEVEL,
            "store_backend": cls.STORE_BACKEND,
            "store_operation_timeout": cls.STORE_OPERATION_TIMEOUT,
            "config_dir": str(cls.CONFIG_DIR),
            "version": cls.APP_VERSION,
        }
        if cls._metrics:
            summary["load_metrics"] = cls._metrics.get_summary()
        return summary


# Auto-load on import
Config.load()
Config.validate()
