"""
Configuration loader for the sync engine.
"""

import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml


logger = logging.getLogger(__name__)

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
    return base


class SyncConfig:
    """
    Configuration for the sync engine.

    Loads a YAML configuration file on top of the built-in defaults, then
    applies environment variable overrides.
    """

    def __init__(self, config_path: Optional[Path] = None):
        """
        Initialize configuration.

        Args:
            config_path: Path to YAML config file (optional)
        """
        self.config_path = Path(config_path) if config_path else None
        self.config = self._default_config()
        if self.config_path:
            _deep_merge(self.config, self._load_config())
        self._apply_env_overrides()

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from YAML file."""
        if not self.config_path.exists():
            raise FileNotFoundError(f"Config file not found: {self.config_path}")

        logger.info(f"Loading config from: {self.config_path}")

        with open(self.config_path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f)

        if config is not None and not isinstance(config, dict):
            raise ValueError(f"Config file must contain a mapping: {self.config_path}")
        return config or {}

    def _default_config(self) -> Dict[str, Any]:
        """Return default configuration."""
        return copy.deepcopy({
            "remote": {
                "enabled": True,
                "base_url": "https://example.blob.core.windows.net/main",
                "content_path": "conference.json",
                "flags_path": "featureflags.json",
                "timeout": 10,
                "max_attempts": 3,
                "backoff_seconds": [1.0, 2.0, 4.0],
                "user_agent": "ConfSync/1.0",
                "fallback_validator_header": "X-ETag",
                "connectivity_check": False,
                "flags_headers": {},
            },
            "storage": {
                "cache_dir": "local/cache",
                "content_cache_file": "conference_cache.json",
                "flags_cache_file": "featureflags_cache.json",
                "content_bootstrap": None,
                "flags_bootstrap": None,
                "pretty_print": False,
            },
            "state": {
                "type": "sqlite",
                "db_path": "local/state/confsync.db",
            },
        })

    def _apply_env_overrides(self) -> None:
        """Apply environment variable overrides to loaded config."""
        base_url = os.environ.get("CONFSYNC_BASE_URL")
        if base_url:
            self.config["remote"]["base_url"] = base_url

        enabled = os.environ.get("CONFSYNC_REMOTE_ENABLED")
        if enabled:
            self.config["remote"]["enabled"] = enabled.strip().lower() in _TRUE_VALUES

        cache_dir = os.environ.get("CONFSYNC_CACHE_DIR")
        if cache_dir:
            self.config["storage"]["cache_dir"] = cache_dir

        db_path = os.environ.get("CONFSYNC_STATE_DB")
        if db_path:
            self.config["state"]["db_path"] = db_path

    def get_remote_config(self) -> Dict[str, Any]:
        """Get remote endpoint configuration."""
        return self.config.get("remote", {})

    def get_storage_config(self) -> Dict[str, Any]:
        """Get cache storage configuration."""
        return self.config.get("storage", {})

    def get_state_config(self) -> Dict[str, Any]:
        """Get key-value state store configuration."""
        return self.config.get("state", {})

    def content_url(self) -> str:
        remote = self.get_remote_config()
        return f"{remote['base_url'].rstrip('/')}/{remote['content_path'].lstrip('/')}"

    def flags_url(self) -> str:
        remote = self.get_remote_config()
        return f"{remote['base_url'].rstrip('/')}/{remote['flags_path'].lstrip('/')}"

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value by key."""
        keys = key.split(".")
        value = self.config

        for k in keys:
            if isinstance(value, dict):
                value = value.get(k)
            else:
                return default

        return value if value is not None else default
