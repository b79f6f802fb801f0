import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

from timeline_agent.ingestion.base import ConfigurationError
from timeline_agent.ingestion.lister import MAX_PAGE_SIZE

# Load environment variables from .env file
load_dotenv()

GOOGLE_CALENDAR_API_BASE = os.getenv(
    "GOOGLE_CALENDAR_API_BASE", "https://www.googleapis.com/calendar/v3"
)


# ============================================================================
# Connector Settings
# ============================================================================


class ConnectorSettings(BaseModel):
    """Tunables shared by the listing loop and the content fetcher."""

    page_size: int = Field(default=MAX_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)
    fetch_max_attempts: int = Field(default=5, ge=1)
    fetch_transport_retry_delay: float = Field(default=30.0, ge=0)
    fetch_status_retry_delay: float = Field(default=15.0, ge=0)
    fetch_timeout_seconds: float = Field(default=300.0, gt=0)
    body_snippet_limit: int = Field(default=256 * 1024, ge=0)
    stream_buffer_size: int = Field(default=100, ge=1)
    api_base_url: str = GOOGLE_CALENDAR_API_BASE

    class Config:
        frozen = True


# Cache for loaded settings
_settings_cache: Optional[ConnectorSettings] = None


def _env_number(name: str, cast):
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        return cast(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}")


def load_connector_settings(force_reload: bool = False) -> ConnectorSettings:
    """
    Load connector settings from the environment.

    Args:
        force_reload: If True, re-read the environment even if cached

    Returns:
        ConnectorSettings with defaults for unset variables

    Raises:
        ConfigurationError: If a variable is set to an invalid value
    """
    global _settings_cache

    if _settings_cache is not None and not force_reload:
        return _settings_cache

    overrides = {
        "page_size": _env_number("TIMELINE_PAGE_SIZE", int),
        "fetch_max_attempts": _env_number("TIMELINE_FETCH_MAX_ATTEMPTS", int),
        "fetch_transport_retry_delay": _env_number("TIMELINE_FETCH_TRANSPORT_DELAY", float),
        "fetch_status_retry_delay": _env_number("TIMELINE_FETCH_STATUS_DELAY", float),
        "fetch_timeout_seconds": _env_number("TIMELINE_FETCH_TIMEOUT", float),
        "body_snippet_limit": _env_number("TIMELINE_BODY_SNIPPET_LIMIT", int),
        "stream_buffer_size": _env_number("TIMELINE_STREAM_BUFFER", int),
    }

    try:
        settings = ConnectorSettings(
            **{key: value for key, value in overrides.items() if value is not None}
        )
    except ValidationError as e:
        raise ConfigurationError(f"Invalid connector settings: {e}") from e

    _settings_cache = settings
    return settings
