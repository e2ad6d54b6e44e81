"""Tests for Settings and load_settings."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from imgcache import config
from imgcache.config import Settings, load_settings


@pytest.fixture
def project_root(tmp_path, monkeypatch):
    monkeypatch.setattr(config, "PROJECT_ROOT", tmp_path)
    for env_name in config.ENV_OVERRIDES:
        monkeypatch.delenv(env_name, raising=False)
    return tmp_path


def test_defaults():
    s = Settings()
    assert s.cache_ttl == 300.0
    assert s.cache_capacity == 100
    assert s.cache_eviction_ratio == 0.2
    assert s.proxy_base == "http://localhost:8000/api/auth/image-proxy/"


def test_load_without_files(project_root):
    s = load_settings()
    assert s == Settings()


def test_load_yaml(project_root):
    (project_root / "settings.yaml").write_text(
        "cache_capacity: 25\nallowed_domains:\n  - images.example.com\nlog_level: debug\n"
    )
    s = load_settings()
    assert s.cache_capacity == 25
    assert s.allowed_domains == ["images.example.com"]
    assert s.log_level == "DEBUG"


def test_bad_yaml_falls_back_to_defaults(project_root):
    (project_root / "settings.yaml").write_text("cache_capacity: [unclosed\n")
    assert load_settings().cache_capacity == 100


def test_env_overrides_yaml(project_root, monkeypatch):
    (project_root / "settings.yaml").write_text("cache_ttl: 60\n")
    monkeypatch.setenv("IMGCACHE_CACHE_TTL", "120")
    monkeypatch.setenv("IMGCACHE_API_URL", "https://backend.example.com/api/")
    s = load_settings()
    assert s.cache_ttl == 120.0
    assert s.api_url == "https://backend.example.com/api"


@pytest.mark.parametrize(
    "field, value",
    [("cache_ttl", 0), ("cache_capacity", -1), ("sweep_interval", 0), ("cache_eviction_ratio", 0), ("cache_eviction_ratio", 2)],
)
def test_invalid_values_rejected(field, value):
    with pytest.raises(ValidationError):
        Settings(**{field: value})


def test_unknown_log_level_rejected():
    with pytest.raises(ValidationError):
        Settings(log_level="verbose")


def test_unknown_log_level_from_env_rejected(project_root, monkeypatch):
    monkeypatch.setenv("IMGCACHE_LOG_LEVEL", "verbose")
    with pytest.raises(ValidationError):
        load_settings()


def test_yaml_that_is_not_a_mapping_falls_back(project_root):
    (project_root / "settings.yaml").write_text("- just\n- a list\n")
    assert load_settings() == Settings()


def test_bad_yaml_warning_names_the_file(project_root, caplog):
    (project_root / "settings.yaml").write_text("cache_ttl: [unclosed\n")
    with caplog.at_level("WARNING", logger="imgcache.config"):
        load_settings()
    assert str(project_root / "settings.yaml") in caplog.text
