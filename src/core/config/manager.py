"""
ConfigManager: hierarchical game balance configuration for Ultimate Manager.

Purpose
-------
- Provide dot-notation access to tunable game values (`"packs.cost"`).
- Back configuration with built-in defaults deep-merged with YAML files.
- Allow runtime overrides so balance can be tuned without a redeploy.

Responsibilities
----------------
- Load and merge YAML defaults from the configured `config/` directory.
- Serve reads from an in-memory cache with defaults fallback.
- Validate writes (type compatibility with the existing value).
- Optionally publish `config.updated` on the EventBus after a write.

Key Design Decisions
--------------------
- Built-in defaults < YAML files < runtime overrides.
- Class-level singleton (no instantiation); services receive the class
  itself as their `config_manager` dependency.
- Reads never raise; a missing key resolves to the caller's default.
"""

from __future__ import annotations

import asyncio
import copy
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, MutableMapping, Optional

import yaml

from src.core.config.config import Config
from src.core.logging.logger import get_logger

if TYPE_CHECKING:
    from src.core.event.bus import EventBus

logger = get_logger(__name__)


class ConfigManagerError(RuntimeError):
    """Base error type for ConfigManager-related failures."""


class ConfigWriteError(ConfigManagerError):
    """Raised when a configuration write or validation fails."""


__all__ = ["ConfigManager", "ConfigManagerError", "ConfigWriteError", "DEFAULTS"]


# Built-in balance defaults; YAML files and overrides are layered on top.
DEFAULTS: Dict[str, Any] = {
    "ledger": {
        "daily_bonus": {
            "amount": 5,
            "window_seconds": 86_400,
        },
    },
    "packs": {
        "cost": 1,
        "quick_sell_refund": 0.5,
        "high_tier": {
            "min_rating": 88,
            "chance": 0.10,
        },
    },
    "potm": {
        "scope": "current",
        # "first_catalog_entry" | "none"
        "empty_round_fallback": "first_catalog_entry",
    },
    "match": {
        "reward": 1,
    },
    "core": {
        "event": {
            "listener_timeout": {
                "critical_seconds": 5.0,
                "high_seconds": 5.0,
            },
        },
    },
}


class ConfigManager:
    """
    Game configuration access with YAML defaults and runtime overrides.

    Examples
    --------
    >>> ConfigManager.get("packs.high_tier.chance")
    0.1
    >>> await ConfigManager.set("packs.cost", 2, modified_by="admin")
    """

    _defaults: Dict[str, Any] = {}
    _cache: Dict[str, Any] = {}
    _initialized: bool = False
    _event_bus: Optional["EventBus"] = None
    _write_lock: asyncio.Lock = asyncio.Lock()

    # =========================================================================
    # LOADING
    # =========================================================================

    @staticmethod
    def _deep_merge_dict(
        target: MutableMapping[str, Any],
        source: MutableMapping[str, Any],
    ) -> None:
        """Recursively merge `source` into `target` (in-place)."""
        for key, value in source.items():
            if isinstance(value, dict) and isinstance(target.get(key), dict):
                ConfigManager._deep_merge_dict(target[key], value)
            else:
                target[key] = copy.deepcopy(value)

    @classmethod
    def _load_yaml_configs(cls, config_dir: Path) -> int:
        """Deep-merge every YAML file under `config_dir` into `_defaults`."""
        if not config_dir.exists():
            logger.info(
                "Config directory not found; using built-in defaults only",
                extra={"config_dir": str(config_dir)},
            )
            return 0

        yaml_files = sorted(config_dir.rglob("*.yaml")) + sorted(config_dir.rglob("*.yml"))
        loaded_count = 0

        for yaml_file in yaml_files:
            try:
                with yaml_file.open("r", encoding="utf-8") as handle:
                    data = yaml.safe_load(handle)
            except (OSError, yaml.YAMLError) as exc:
                logger.warning(
                    "Failed to load YAML config",
                    extra={
                        "file": str(yaml_file),
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                    },
                )
                continue

            if isinstance(data, dict):
                cls._deep_merge_dict(cls._defaults, data)
                loaded_count += 1
                logger.debug("Loaded YAML config", extra={"file": str(yaml_file)})
            elif data is not None:
                logger.warning(
                    "Ignoring non-dict YAML root object",
                    extra={"file": str(yaml_file), "root_type": type(data).__name__},
                )

        return loaded_count

    @classmethod
    def initialize(
        cls,
        config_dir: Optional[Path] = None,
        event_bus: Optional["EventBus"] = None,
    ) -> None:
        """
        (Re)build defaults and cache.

        Safe to call multiple times; each call discards runtime overrides.
        """
        cls._defaults = copy.deepcopy(DEFAULTS)
        loaded = cls._load_yaml_configs(config_dir or Path(Config.CONFIG_DIR))
        cls._cache = copy.deepcopy(cls._defaults)
        cls._event_bus = event_bus
        cls._initialized = True

        logger.info(
            "ConfigManager initialized",
            extra={
                "yaml_file_count": loaded,
                "top_level_keys": sorted(cls._cache.keys()),
            },
        )

    @classmethod
    def attach_event_bus(cls, event_bus: Optional["EventBus"]) -> None:
        cls._event_bus = event_bus

    @classmethod
    def reset(cls) -> None:
        """Drop all state; the next read re-initializes from defaults."""
        cls._defaults = {}
        cls._cache = {}
        cls._event_bus = None
        cls._initialized = False

    # =========================================================================
    # READS
    # =========================================================================

    @staticmethod
    def _traverse(root: Dict[str, Any], key: str) -> Any:
        value: Any = root
        for part in key.split("."):
            if not isinstance(value, dict) or part not in value:
                return None
            value = value[part]
        return value

    @classmethod
    def get(cls, key: str, default: Any = None) -> Any:
        """
        Retrieve a configuration value by dot-notation path.

        Falls back to the merged defaults, then to `default`.
        """
        if not cls._initialized:
            cls.initialize()

        value = cls._traverse(cls._cache, key)
        if value is None:
            value = cls._traverse(cls._defaults, key)
        return default if value is None else value

    @classmethod
    def get_all_keys(cls) -> List[str]:
        if not cls._initialized:
            cls.initialize()
        return sorted(cls._cache.keys())

    # =========================================================================
    # WRITES
    # =========================================================================

    @classmethod
    def _validate_write(cls, key: str, value: Any) -> None:
        current = cls._traverse(cls._cache, key)
        if current is None:
            return
        if isinstance(current, dict) != isinstance(value, dict):
            raise ConfigWriteError(
                f"Cannot replace {type(current).__name__} at '{key}' with {type(value).__name__}"
            )
        numeric = (int, float)
        if isinstance(current, numeric) and not isinstance(current, bool):
            if isinstance(value, bool) or not isinstance(value, numeric):
                raise ConfigWriteError(f"'{key}' must be numeric, got {type(value).__name__}")
        elif isinstance(current, str) and not isinstance(value, str):
            raise ConfigWriteError(f"'{key}' must be a string, got {type(value).__name__}")

    @classmethod
    async def set(cls, key: str, value: Any, modified_by: str = "system") -> None:
        """
        Apply a runtime override.

        Raises
        ------
        ConfigWriteError
            If the value's type is incompatible with the current value.
        """
        if not cls._initialized:
            cls.initialize()

        async with cls._write_lock:
            cls._validate_write(key, value)

            parts = key.split(".")
            node: Dict[str, Any] = cls._cache
            for part in parts[:-1]:
                child = node.get(part)
                if not isinstance(child, dict):
                    child = {}
                    node[part] = child
                node = child

            old_value = node.get(parts[-1])
            node[parts[-1]] = copy.deepcopy(value)

        logger.info(
            "Configuration updated",
            extra={
                "config_key": key,
                "old_value": old_value,
                "new_value": value,
                "modified_by": modified_by,
            },
        )

        if cls._event_bus is not None:
            await cls._event_bus.publish(
                "config.updated",
                {
                    "key": key,
                    "old_value": old_value,
                    "new_value": value,
                    "modified_by": modified_by,
                },
            )
