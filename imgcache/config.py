"""Load .env and settings.yaml, expose all configuration."""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

log = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parent.parent

# Environment variable -> Settings field.
ENV_OVERRIDES = {
    "IMGCACHE_API_URL": "api_url",
    "IMGCACHE_LOG_LEVEL": "log_level",
    "IMGCACHE_CACHE_TTL": "cache_ttl",
    "IMGCACHE_CACHE_CAPACITY": "cache_capacity",
}


def _load_env() -> None:
    # Real environment variables win over .env entries.
    load_dotenv(PROJECT_ROOT / ".env", override=False)


def _load_yaml() -> dict:
    settings_path = PROJECT_ROOT / "settings.yaml"
    if not settings_path.exists():
        return {}
    try:
        data = yaml.safe_load(settings_path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        log.warning("Failed to parse %s (%s), using defaults", settings_path, exc)
        return {}
    if data is None:
        return {}
    if not isinstance(data, dict):
        log.warning("%s must contain a mapping, using defaults", settings_path)
        return {}
    return data


class Settings(BaseModel):
    api_url: str = "http://localhost:8000/api"

    @field_validator("api_url")
    @classmethod
    def strip_api_url(cls, v: str) -> str:
        return v.strip().rstrip("/")
    default_avatar: str = "/default-avatar.png"
    proxy_path: str = "/auth/image-proxy/"
    # Marker that identifies a URL already routed through this proxy.
    proxy_loop_marker: str = "/api/image-proxy"
    proxied_hosts: list[str] = Field(default_factory=lambda: ["wasabisys.com"])
    allowed_domains: list[str] = Field(
        default_factory=lambda: [
            "s3.wasabisys.com",
            "s3.eu-central-1.wasabisys.com",
            "s3.us-east-1.wasabisys.com",
            "s3.ap-northeast-1.wasabisys.com",
            "lisanalhekma.s3.wasabisys.com",
            "lisanalhekma.s3.eu-central-1.wasabisys.com",
            "lisan-alhekma.s3.wasabisys.com",
            "lisan-alhekma.s3.eu-central-1.wasabisys.com",
            "rushd-system.s3.wasabisys.com",
            "rushd-system.s3.eu-central-1.wasabisys.com",
            "via.placeholder.com",
            "picsum.photos",
        ]
    )
    # Regional hosts tried in turn when the original endpoint fails.
    regional_hosts: list[str] = Field(
        default_factory=lambda: ["s3.eu-central-1.wasabisys.com", "s3.us-east-1.wasabisys.com"]
    )
    global_host: str = "s3.wasabisys.com"
    cache_ttl: float = 300.0
    cache_capacity: int = 100
    cache_eviction_ratio: float = 0.2
    sweep_interval: float = 300.0
    proxy_timeout: float = 10.0
    preload_timeout: float = 8.0
    proxy_preload_timeout: float = 5.0
    referer: str = "https://lisan-alhekma.com"
    log_level: str = "INFO"

    @field_validator("cache_ttl", "cache_capacity", "sweep_interval", "proxy_timeout")
    @classmethod
    def must_be_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("must be positive")
        return v

    @field_validator("cache_eviction_ratio")
    @classmethod
    def ratio_in_range(cls, v: float) -> float:
        if not 0 < v <= 1:
            raise ValueError("must be in (0, 1]")
        return v

    @field_validator("log_level")
    @classmethod
    def upper_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"unknown log level {v!r}")
        return level

    @property
    def proxy_base(self) -> str:
        """Backend image-proxy endpoint, e.g. http://host/api/auth/image-proxy/."""
        return f"{self.api_url}{self.proxy_path}"


def load_settings() -> Settings:
    _load_env()
    raw = _load_yaml()
    for env_name, field_name in ENV_OVERRIDES.items():
        value = os.getenv(env_name)
        if value:
            raw[field_name] = value
    return Settings(**raw)
