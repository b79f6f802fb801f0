"""
Unit tests for environment-driven connector settings.
"""

import pytest
from pydantic import ValidationError

from timeline_agent import config
from timeline_agent.config import ConnectorSettings, load_connector_settings
from timeline_agent.ingestion.base import ConfigurationError

ENV_VARS = [
    "TIMELINE_PAGE_SIZE",
    "TIMELINE_FETCH_MAX_ATTEMPTS",
    "TIMELINE_FETCH_TRANSPORT_DELAY",
    "TIMELINE_FETCH_STATUS_DELAY",
    "TIMELINE_FETCH_TIMEOUT",
    "TIMELINE_BODY_SNIPPET_LIMIT",
    "TIMELINE_STREAM_BUFFER",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Start every test from defaults and an empty settings cache."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(config, "_settings_cache", None)
    yield


def test_defaults():
    """Test the default settings."""
    settings = load_connector_settings()

    assert settings.page_size == 10
    assert settings.fetch_max_attempts == 5
    assert settings.fetch_transport_retry_delay == 30.0
    assert settings.fetch_status_retry_delay == 15.0
    assert settings.fetch_timeout_seconds == 300.0
    assert settings.body_snippet_limit == 256 * 1024
    assert settings.stream_buffer_size == 100


def test_environment_overrides(monkeypatch):
    """Test that environment variables override defaults."""
    monkeypatch.setenv("TIMELINE_PAGE_SIZE", "5")
    monkeypatch.setenv("TIMELINE_FETCH_STATUS_DELAY", "2.5")

    settings = load_connector_settings()

    assert settings.page_size == 5
    assert settings.fetch_status_retry_delay == 2.5


def test_settings_are_cached(monkeypatch):
    """Test that settings are read once unless a reload is forced."""
    first = load_connector_settings()
    monkeypatch.setenv("TIMELINE_STREAM_BUFFER", "7")

    assert load_connector_settings() is first
    assert load_connector_settings(force_reload=True).stream_buffer_size == 7


def test_non_numeric_value(monkeypatch):
    """Test that a non-numeric value is a configuration error."""
    monkeypatch.setenv("TIMELINE_FETCH_MAX_ATTEMPTS", "many")

    with pytest.raises(ConfigurationError, match="TIMELINE_FETCH_MAX_ATTEMPTS"):
        load_connector_settings()


def test_page_size_above_maximum(monkeypatch):
    """Test that the page size cannot exceed the listing maximum."""
    monkeypatch.setenv("TIMELINE_PAGE_SIZE", "50")

    with pytest.raises(ConfigurationError):
        load_connector_settings()


def test_settings_are_frozen():
    """Test that settings cannot be changed after loading."""
    settings = ConnectorSettings()

    with pytest.raises(ValidationError):
        settings.page_size = 3
