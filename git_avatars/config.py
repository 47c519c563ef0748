"""Central configuration for git_avatars."""

from __future__ import annotations

import logging
import os

from .models.settings import Settings

logger = logging.getLogger(__name__)

_DEFAULT_GITHUB_API_URL = "https://api.github.com"
_DEFAULT_TIMEOUT_S = 10.0


def _read_settings() -> Settings:
    """Read all configuration from environment variables.

    Returns:
        Settings object with all configuration values.

    Note:
        An invalid or non-positive timeout falls back to the default.
        ``HTTP_PROXY`` defaults to an empty string, meaning no proxy.
    """
    proxy = (os.environ.get("HTTP_PROXY") or "").strip()
    token = os.environ.get("GITHUB_TOKEN") or None
    api_url = (os.environ.get("GITHUB_API_URL") or _DEFAULT_GITHUB_API_URL).rstrip("/")
    try:
        timeout = float(os.environ.get("AVATAR_HTTP_TIMEOUT_S", "10") or "10")
    except ValueError:
        timeout = _DEFAULT_TIMEOUT_S
    if timeout <= 0:
        timeout = _DEFAULT_TIMEOUT_S
    state_file = (os.environ.get("AVATAR_STATE_FILE") or "").strip() or None

    return Settings(
        HTTP_PROXY=proxy,
        GITHUB_TOKEN=token,
        GITHUB_API_URL=api_url,
        HTTP_TIMEOUT_S=timeout,
        STATE_FILE=state_file,
    )


settings = _read_settings()


def validate_settings() -> None:
    """Log warnings for settings that limit avatar lookups."""
    if settings.GITHUB_TOKEN is None:
        logger.info(
            "GITHUB_TOKEN is not set; GitHub lookups use the unauthenticated rate limit."
        )
    if settings.STATE_FILE is None:
        logger.info("AVATAR_STATE_FILE is not set; avatars are cached in memory only.")


# Exported constants
HTTP_PROXY: str = settings.HTTP_PROXY
GITHUB_TOKEN: str | None = settings.GITHUB_TOKEN
GITHUB_API_URL: str = settings.GITHUB_API_URL
HTTP_TIMEOUT_S: float = settings.HTTP_TIMEOUT_S
STATE_FILE: str | None = settings.STATE_FILE
