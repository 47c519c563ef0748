"""Base class for avatar providers backed by the fetch-dedup cache."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from .. import config
from ..cache import FetchDedupCache
from ..models.avatar import ActionedUser, Avatar, GitOriginType
from ..models.settings import Settings
from ..store import StateStore

logger = logging.getLogger(__name__)


class AvatarFetchError(RuntimeError):
    """Raised by a provider when the remote lookup could not be completed."""


def avatar_cache_key(user: ActionedUser) -> str:
    return f"Git:Avatar:{user.name}:{user.email}"


class BaseAvatarProvider(ABC):
    """Looks up avatars for one kind of git remote.

    Subclasses implement :meth:`get_avatar_implementation`; this class keys the
    lookup by author identity and routes it through a :class:`FetchDedupCache`
    so a given author is looked up at most once at a time, and failed lookups
    are retried no more than once an hour.
    """

    def __init__(
        self,
        store: StateStore,
        origin_type: GitOriginType,
        settings: Settings | None = None,
    ) -> None:
        self.settings = settings or config.settings
        self.http_proxy = self.settings.HTTP_PROXY
        self.origin_type = origin_type
        self.cache: FetchDedupCache[Avatar] = FetchDedupCache(
            store, dump=Avatar.to_dict, load=Avatar.from_dict
        )

    async def get_avatar(self, user: ActionedUser) -> Avatar | None:
        avatar = await self.cache.fetch(
            avatar_cache_key(user), lambda: self._lookup(user)
        )
        return avatar if avatar and avatar.avatar_url else None

    def supported(self, origin_type: GitOriginType) -> bool:
        return origin_type == self.origin_type

    async def _lookup(self, user: ActionedUser) -> Avatar | None:
        avatar = await self.get_avatar_implementation(user)
        if avatar is None:
            logger.debug("No %s avatar for %s", self.origin_type.value, user.email)
            return None
        avatar.name = avatar.name or user.name
        avatar.email = avatar.email or user.email
        return avatar

    @abstractmethod
    async def get_avatar_implementation(self, user: ActionedUser) -> Avatar | None:
        """Fetch the avatar for ``user`` from the remote, raising on failure."""
