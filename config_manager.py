"""
Configuration management for the TruthLens entitlement service.
Handles loading, validating, and providing access to application settings.
"""

import os
import json
import logging
from pathlib import Path
from typing import Dict, Any, Optional
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass
class AppConfig:
    """Application configuration settings."""
    host: str
    port: int
    debug: bool
    admin_user_ids: list[str]


@dataclass
class AccessConfig:
    """Access code and access request settings."""
    fail_closed: bool
    access_duration_months: int
    # Expired codes and processed requests older than this are purged
    retention_days: int = 365


@dataclass
class RateLimitConfig:
    """Daily quota settings."""
    fail_open: bool
    # Per-tier overrides of the daily scan limit, e.g. {"free": 3}
    daily_scan_limits: Dict[str, int] = field(default_factory=dict)


@dataclass
class UploadConfig:
    """Upload settings."""
    max_upload_size_mb: int


@dataclass
class PathsConfig:
    """Path configuration settings."""
    data_dir: str
    store_dir: str
    upload_dir: str


def _env_flag(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


class ConfigManager:
    """Manages application configuration loading and access."""

    def __init__(self, config_file: str = "web_app_config.json"):
        self.config_file = Path(config_file)
        self._config: Optional[Dict[str, Any]] = None
        self._load_config()

    def _load_config(self) -> None:
        """Load configuration from file and environment variables."""
        # Start with default config
        self._config = self._get_default_config()

        # Load base config from file
        if self.config_file.exists():
            try:
                with open(self.config_file, 'r', encoding='utf-8') as f:
                    file_config = json.load(f)
                self._merge_config(file_config)
            except (json.JSONDecodeError, OSError) as e:
                # Keep default config if file is invalid
                logger.warning(f"Ignoring unreadable config file {self.config_file}: {e}")

        # Override with environment variables
        self._override_with_env()

    def _get_default_config(self) -> Dict[str, Any]:
        """Get default configuration."""
        return {
            "app": {
                "host": "0.0.0.0",
                "port": 22581,
                "debug": False,
                "admin_user_ids": []
            },
            "access": {
                "fail_closed": True,
                "access_duration_months": 3,
                "retention_days": 365
            },
            "rate_limits": {
                "fail_open": True,
                "daily_scan_limits": {}
            },
            "uploads": {
                "max_upload_size_mb": 5
            },
            "paths": {
                "data_dir": "data",
                "store_dir": "store",
                "upload_dir": "uploads"
            }
        }

    def _merge_config(self, file_config: Dict[str, Any]) -> None:
        """Merge file configuration with current config."""
        for section, values in file_config.items():
            if section in self._config and isinstance(values, dict):
                self._config[section].update(values)
            else:
                self._config[section] = values

    def _override_with_env(self) -> None:
        """Override configuration with environment variables."""
        # App settings
        if os.getenv("APP_HOST"):
            self._config["app"]["host"] = os.getenv("APP_HOST")

        if os.getenv("APP_PORT"):
            self._config["app"]["port"] = int(os.getenv("APP_PORT"))

        if os.getenv("APP_DEBUG"):
            self._config["app"]["debug"] = _env_flag(os.getenv("APP_DEBUG"))

        if os.getenv("ADMIN_USER_IDS"):
            self._config["app"]["admin_user_ids"] = [
                uid.strip() for uid in os.getenv("ADMIN_USER_IDS").split(",") if uid.strip()
            ]

        # Access settings
        if os.getenv("ACCESS_FAIL_CLOSED"):
            self._config["access"]["fail_closed"] = _env_flag(os.getenv("ACCESS_FAIL_CLOSED"))

        if os.getenv("ACCESS_DURATION_MONTHS"):
            self._config["access"]["access_duration_months"] = int(os.getenv("ACCESS_DURATION_MONTHS"))

        if os.getenv("ACCESS_RETENTION_DAYS"):
            self._config["access"]["retention_days"] = int(os.getenv("ACCESS_RETENTION_DAYS"))

        # Rate limit settings
        if os.getenv("QUOTA_FAIL_OPEN"):
            self._config["rate_limits"]["fail_open"] = _env_flag(os.getenv("QUOTA_FAIL_OPEN"))

        # Upload settings
        if os.getenv("MAX_UPLOAD_SIZE_MB"):
            self._config["uploads"]["max_upload_size_mb"] = int(os.getenv("MAX_UPLOAD_SIZE_MB"))

        # Paths
        if os.getenv("DATA_DIR"):
            self._config["paths"]["data_dir"] = os.getenv("DATA_DIR")

    def get_app_config(self) -> AppConfig:
        """Get application configuration."""
        app_config = self._config["app"]
        return AppConfig(
            host=app_config["host"],
            port=app_config["port"],
            debug=app_config["debug"],
            admin_user_ids=list(app_config["admin_user_ids"])
        )

    def get_access_config(self) -> AccessConfig:
        """Get access code configuration."""
        access_config = self._config["access"]
        return AccessConfig(
            fail_closed=access_config["fail_closed"],
            access_duration_months=access_config["access_duration_months"],
            retention_days=access_config.get("retention_days", 365)
        )

    def get_rate_limit_config(self) -> RateLimitConfig:
        """Get daily quota configuration."""
        rl_config = self._config["rate_limits"]
        return RateLimitConfig(
            fail_open=rl_config["fail_open"],
            daily_scan_limits=dict(rl_config.get("daily_scan_limits") or {})
        )

    def get_upload_config(self) -> UploadConfig:
        """Get upload configuration."""
        return UploadConfig(max_upload_size_mb=self._config["uploads"]["max_upload_size_mb"])

    def get_paths_config(self) -> PathsConfig:
        """Get paths configuration."""
        paths_config = self._config["paths"]
        return PathsConfig(
            data_dir=paths_config["data_dir"],
            store_dir=paths_config["store_dir"],
            upload_dir=paths_config["upload_dir"]
        )

    def get_config(self) -> Dict[str, Any]:
        """Get raw configuration dictionary."""
        return self._config.copy()

    def reload(self) -> None:
        """Reload configuration from file."""
        self._load_config()

    def save_config(self) -> None:
        """Save current configuration to file."""
        with open(self.config_file, 'w', encoding='utf-8') as f:
            json.dump(self._config, f, indent=2, ensure_ascii=False)
