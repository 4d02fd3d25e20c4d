from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal
from urllib.parse import urlparse
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .adapters.weather.visual_crossing import VISUAL_CROSSING_TIMELINE_URL

PROJECT_ROOT = Path(__file__).resolve().parents[2]


class UiSettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: str = "Weather App"
    default_city: str = "New York"

    @field_validator("default_city")
    @classmethod
    def validate_default_city(cls, value: str) -> str:
        text = value.strip()
        if not text:
            raise ValueError("ui.default_city must not be empty")
        return text


class WeatherSettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    provider: Literal["visual_crossing"] = "visual_crossing"
    base_url: str = VISUAL_CROSSING_TIMELINE_URL
    units: Literal["metric"] = "metric"
    timeout_seconds: float = Field(default=10.0, gt=0, le=120)
    history_years: int = Field(default=10, ge=1, le=30)

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, value: str) -> str:
        text = value.strip()
        parsed = urlparse(text)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError("weather.base_url must be an absolute http(s) URL")
        return text.rstrip("/")


class ConnectivitySettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    mode: Literal["auto", "online", "offline"] = "auto"
    probe_host: str = "1.1.1.1"
    probe_port: int = Field(default=53, ge=1, le=65535)
    timeout_seconds: float = Field(default=3.0, gt=0, le=60)
    interval_seconds: int = Field(default=30, ge=5, le=3600)

    @field_validator("probe_host")
    @classmethod
    def validate_probe_host(cls, value: str) -> str:
        text = value.strip()
        if not text:
            raise ValueError("connectivity.probe_host must not be empty")
        return text


class StorageSettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    clear_on_startup: bool = True


class TempcastYamlSettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    ui: UiSettings = Field(default_factory=UiSettings)
    weather: WeatherSettings = Field(default_factory=WeatherSettings)
    connectivity: ConnectivitySettings = Field(default_factory=ConnectivitySettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)


class EnvSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    tempcast_env: Literal["dev", "test", "prod"] = "dev"
    tempcast_timezone: str = "America/New_York"
    tempcast_config_path: Path = Path("config/tempcast.yaml")
    tempcast_db_path: Path = Path("data/tempcast.db")
    visual_crossing_api_key: str = ""

    @field_validator("tempcast_timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value


class AppSettings(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    env: EnvSettings
    yaml: TempcastYamlSettings
    project_root: Path
    config_path: Path
    db_path: Path
    timezone: ZoneInfo


def _resolve_project_path(path: Path) -> Path:
    if path.is_absolute():
        return path
    return (PROJECT_ROOT / path).resolve()


def _load_yaml_settings(path: Path) -> TempcastYamlSettings:
    if not path.exists():
        raise FileNotFoundError(f"Tempcast config file not found: {path}")

    raw_config = yaml.safe_load(path.read_text(encoding="utf-8"))
    if raw_config is None:
        raw_config = {}
    if not isinstance(raw_config, dict):
        raise ValueError("Tempcast config must be a YAML mapping/object at the top level")
    return TempcastYamlSettings.model_validate(raw_config)


@lru_cache(maxsize=1)
def load_settings() -> AppSettings:
    env = EnvSettings()
    config_path = _resolve_project_path(env.tempcast_config_path)
    db_path = _resolve_project_path(env.tempcast_db_path)
    yaml_settings = _load_yaml_settings(config_path)
    return AppSettings(
        env=env,
        yaml=yaml_settings,
        project_root=PROJECT_ROOT,
        config_path=config_path,
        db_path=db_path,
        timezone=ZoneInfo(env.tempcast_timezone),
    )
