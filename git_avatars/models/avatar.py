"""Avatar, commit author and git origin types."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum


class GitOriginType(str, Enum):
    ANY = "any"
    GITHUB = "github"
    BITBUCKET = "bitbucket"
    TFS = "tfs"
    VSTS = "vsts"


@dataclass(frozen=True)
class ActionedUser:
    """Author or committer of a commit."""

    name: str
    email: str


@dataclass
class Avatar:
    login: str | None = None
    name: str | None = None
    email: str | None = None
    url: str | None = None
    avatar_url: str | None = None

    def to_dict(self) -> dict[str, str | None]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> Avatar:
        return cls(
            login=_str_or_none(data.get("login")),
            name=_str_or_none(data.get("name")),
            email=_str_or_none(data.get("email")),
            url=_str_or_none(data.get("url")),
            avatar_url=_str_or_none(data.get("avatar_url")),
        )


def _str_or_none(value: object) -> str | None:
    return value if isinstance(value, str) else None
