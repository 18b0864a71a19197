"""Configuration loader for Starlight."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel
from pydantic_settings import BaseSettings


class LayoutConfig(BaseModel):
    """Spacing constants used by auto-arrange."""

    start_x: float = 100
    start_y: float = 100
    group_horizontal_spacing: float = 100
    group_vertical_spacing: float = 150
    node_horizontal_spacing: float = 120
    node_vertical_spacing: float = 80
    group_padding: float = 40
    group_header_height: float = 32
    min_group_width: float = 200
    min_group_height: float = 150


class CanvasConfig(BaseModel):
    min_scale: float = 0.1
    max_scale: float = 3.0


class SyncConfig(BaseModel):
    heartbeat_seconds: int = 30
    resync_on_connect: bool = True


class ApiConfig(BaseModel):
    timeout_seconds: float = 30.0


class AppConfig(BaseModel):
    layout: LayoutConfig = LayoutConfig()
    canvas: CanvasConfig = CanvasConfig()
    sync: SyncConfig = SyncConfig()
    api: ApiConfig = ApiConfig()


class Settings(BaseSettings):
    """Environment-based settings."""

    redis_url: str = "redis://localhost:6379"
    api_base_url: str = "http://localhost:4000"
    api_token: str = ""
    event_channel: str = "starlight:events"
    dev_mode: bool = True
    config_path: str = "../config/config.yaml"

    class Config:
        env_prefix = "STARLIGHT_"
        env_file = ".env"
        env_file_encoding = "utf-8"


def load_yaml_config(path: str) -> dict[str, Any]:
    """Load a YAML configuration file."""
    config_path = Path(path)
    if not config_path.is_absolute():
        config_path = Path(__file__).parent.parent / path

    if not config_path.exists():
        return {}

    with open(config_path) as f:
        return yaml.safe_load(f) or {}


def get_config() -> AppConfig:
    """Load and return the application configuration."""
    settings = Settings()
    yaml_config = load_yaml_config(settings.config_path)
    return AppConfig(**yaml_config)


# Singleton instances
settings = Settings()
config = get_config()
