"""Gravatar lookups, used for remotes without an avatar API of their own."""

from __future__ import annotations

import asyncio
import hashlib
import logging

import requests

from ..models.avatar import ActionedUser, Avatar, GitOriginType
from ..models.settings import Settings
from ..store import StateStore
from .base import AvatarFetchError, BaseAvatarProvider

logger = logging.getLogger(__name__)

GRAVATAR_BASE_URL = "https://www.gravatar.com"


def email_hash(email: str) -> str:
    return hashlib.md5(email.strip().lower().encode("utf-8")).hexdigest()


class GravatarAvatarProvider(BaseAvatarProvider):
    def __init__(self, store: StateStore, settings: Settings | None = None) -> None:
        super().__init__(store, GitOriginType.ANY, settings)

    async def get_avatar_implementation(self, user: ActionedUser) -> Avatar | None:
        if not user.email:
            return None
        return await asyncio.to_thread(self._probe, user.email)

    def _probe(self, email: str) -> Avatar | None:
        digest = email_hash(email)
        avatar_url = f"{GRAVATAR_BASE_URL}/avatar/{digest}"
        proxies = (
            {"http": self.http_proxy, "https": self.http_proxy}
            if self.http_proxy
            else None
        )
        try:
            resp = requests.get(
                avatar_url,
                params={"d": "404"},
                timeout=self.settings.HTTP_TIMEOUT_S,
                proxies=proxies,
            )
        except requests.RequestException as exc:
            raise AvatarFetchError(f"Gravatar request failed: {exc}") from exc

        if resp.status_code == 404:
            return None
        if not resp.ok:
            raise AvatarFetchError(f"Gravatar HTTP {resp.status_code}")
        return Avatar(
            login=digest,
            url=f"{GRAVATAR_BASE_URL}/{digest}",
            avatar_url=avatar_url,
        )
