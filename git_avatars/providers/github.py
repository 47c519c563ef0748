"""GitHub avatar lookups via the user search API."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..models.avatar import ActionedUser, Avatar, GitOriginType
from ..models.settings import Settings
from ..store import StateStore
from .base import AvatarFetchError, BaseAvatarProvider

logger = logging.getLogger(__name__)


class GithubAvatarProvider(BaseAvatarProvider):
    def __init__(
        self,
        store: StateStore,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(store, GitOriginType.GITHUB, settings)
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": "git-avatars",
        }
        if self.settings.GITHUB_TOKEN:
            headers["Authorization"] = f"Bearer {self.settings.GITHUB_TOKEN}"
        return headers

    async def get_avatar_implementation(self, user: ActionedUser) -> Avatar | None:
        url = f"{self.settings.GITHUB_API_URL}/search/users"
        params = {"q": f"{user.email} in:email"}
        try:
            async with httpx.AsyncClient(
                timeout=self.settings.HTTP_TIMEOUT_S,
                proxy=self.http_proxy or None,
                transport=self._transport,
                headers=self._headers(),
            ) as client:
                resp = await client.get(url, params=params)
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPError as exc:
            logger.error(f"GitHub avatar request failed: {exc}")
            raise AvatarFetchError(f"GitHub avatar request failed: {exc}") from exc

        return _first_user(data)


def _first_user(data: Any) -> Avatar | None:
    items = data.get("items") if isinstance(data, dict) else None
    if not items or not isinstance(items[0], dict):
        return None
    item = items[0]
    return Avatar(
        login=item.get("login"),
        url=item.get("html_url"),
        avatar_url=item.get("avatar_url"),
    )
