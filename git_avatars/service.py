"""Avatar lookup across the configured providers."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Iterable, Sequence

from . import config
from .models.avatar import ActionedUser, Avatar, GitOriginType
from .models.settings import Settings
from .providers.base import BaseAvatarProvider
from .providers.github import GithubAvatarProvider
from .providers.gravatar import GravatarAvatarProvider
from .store import StateStore, create_store

logger = logging.getLogger(__name__)


class AvatarService:
    """Route avatar lookups to the provider for a git remote."""

    def __init__(self, providers: Sequence[BaseAvatarProvider]) -> None:
        self.providers = list(providers)

    def provider_for(self, origin: GitOriginType) -> BaseAvatarProvider | None:
        for provider in self.providers:
            if provider.supported(origin):
                return provider
        for provider in self.providers:
            if provider.supported(GitOriginType.ANY):
                return provider
        return None

    async def get_avatar(
        self, user: ActionedUser, origin: GitOriginType = GitOriginType.ANY
    ) -> Avatar | None:
        provider = self.provider_for(origin)
        if provider is None:
            logger.debug("No avatar provider for origin %s", origin.value)
            return None
        return await provider.get_avatar(user)

    async def get_avatars(
        self, users: Iterable[ActionedUser], origin: GitOriginType = GitOriginType.ANY
    ) -> list[Avatar | None]:
        return list(
            await asyncio.gather(*(self.get_avatar(user, origin) for user in users))
        )


def _store_for(origin: GitOriginType, state_file: str | None) -> StateStore:
    # Keys are shared between providers, so each one gets its own file.
    if not state_file:
        return create_store()
    path = Path(state_file)
    return create_store(path.with_name(f"{path.stem}.{origin.value}{path.suffix}"))


def build_service(settings: Settings | None = None) -> AvatarService:
    settings = settings or config.settings
    return AvatarService(
        [
            GithubAvatarProvider(
                _store_for(GitOriginType.GITHUB, settings.STATE_FILE), settings
            ),
            GravatarAvatarProvider(
                _store_for(GitOriginType.ANY, settings.STATE_FILE), settings
            ),
        ]
    )
