"""
Configuration management for the intervention engine.
Loads from config/engine.yaml and environment variables.
"""

from pathlib import Path
from typing import Optional, Dict, Any
import yaml
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class StoreConfig(BaseSettings):
    """Record store configuration."""
    db_path: Path = Field(default=Path("data/engine.sqlite"), alias="STORE_DB_PATH")
    busy_timeout_seconds: float = Field(default=30.0)

    model_config = SettingsConfigDict(env_prefix="STORE_", extra="ignore", populate_by_name=True)


class NotificationConfig(BaseSettings):
    """Reviewer notification (webhook) configuration."""
    webhook_url: Optional[str] = Field(default=None, alias="N8N_WEBHOOK_URL")
    timeout_seconds: float = Field(default=10.0)
    assigned_by: str = Field(default="Mentor")

    model_config = SettingsConfigDict(env_prefix="NOTIFICATION_", extra="ignore", populate_by_name=True)


class ApiConfig(BaseSettings):
    """API server configuration."""
    host: str = Field(default="0.0.0.0", alias="API_HOST")
    port: int = Field(default=3000, alias="API_PORT")
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    model_config = SettingsConfigDict(env_prefix="API_", extra="ignore", populate_by_name=True)


class ObserverConfig(BaseSettings):
    """Status observer (polling client) configuration."""
    base_url: str = Field(default="http://localhost:3000", alias="OBSERVER_BASE_URL")
    poll_interval_seconds: float = Field(default=5.0, alias="OBSERVER_POLL_INTERVAL_SECONDS")
    request_timeout_seconds: float = Field(default=10.0)

    model_config = SettingsConfigDict(env_prefix="OBSERVER_", extra="ignore", populate_by_name=True)


class EngineSettings(BaseSettings):
    """Main engine configuration."""
    env: str = Field(default="dev", alias="ENGINE_ENV")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_file: Optional[Path] = Field(default=Path("logs/engine.log"), alias="LOG_FILE")

    # Sub-configurations
    api: ApiConfig = Field(default_factory=ApiConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    notification: NotificationConfig = Field(default_factory=NotificationConfig)
    observer: ObserverConfig = Field(default_factory=ObserverConfig)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="allow",
        populate_by_name=True
    )

    @classmethod
    def load_from_yaml(cls, config_path: Optional[Path] = None) -> "EngineSettings":
        """Load settings from YAML file and merge with environment variables."""
        if config_path is None:
            config_path = Path("config/engine.yaml")

        config_dict: Dict[str, Any] = {}

        if config_path.exists():
            with open(config_path, "r", encoding="utf-8") as f:
                yaml_data = yaml.safe_load(f) or {}
                config_dict = yaml_data.get("engine", {})

        # Flatten observer.polling.interval_seconds if present
        if "observer" in config_dict and isinstance(config_dict["observer"], dict):
            observer_cfg = dict(config_dict["observer"])
            polling = observer_cfg.pop("polling", None)
            if isinstance(polling, dict) and "interval_seconds" in polling:
                observer_cfg["poll_interval_seconds"] = polling["interval_seconds"]
            config_dict["observer"] = observer_cfg

        return cls(**config_dict)


# Global settings instance
_settings: Optional[EngineSettings] = None


def get_settings() -> EngineSettings:
    """Get or create global settings instance."""
    global _settings
    if _settings is None:
        _settings = EngineSettings.load_from_yaml()
    return _settings


# Alias for convenience
settings = get_settings()
