"""Configuration dataclass."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class Settings:
    """Configuration settings for git_avatars."""

    HTTP_PROXY: str
    GITHUB_TOKEN: str | None
    GITHUB_API_URL: str
    HTTP_TIMEOUT_S: float
    STATE_FILE: str | None
