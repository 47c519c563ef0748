"""Entrypoint for looking up a commit author's avatar from the command line."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from . import config
from .logger import setup_logging
from .models.avatar import ActionedUser, GitOriginType
from .service import build_service

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="git-avatars", description="Look up the avatar of a git author."
    )
    parser.add_argument("name", help="author name as recorded in the commit")
    parser.add_argument("email", help="author email as recorded in the commit")
    parser.add_argument(
        "--origin",
        choices=[origin.value for origin in GitOriginType],
        default=GitOriginType.ANY.value,
        help="kind of git remote the commit came from",
    )
    return parser


async def lookup(name: str, email: str, origin: GitOriginType) -> dict | None:
    service = build_service(config.settings)
    avatar = await service.get_avatar(ActionedUser(name=name, email=email), origin)
    return avatar.to_dict() if avatar else None


def run(argv: list[str] | None = None) -> int:
    setup_logging()
    config.validate_settings()
    args = build_parser().parse_args(argv)
    if not args.email.strip():
        logger.error("An email address is required")
        return 2

    result = asyncio.run(lookup(args.name, args.email, GitOriginType(args.origin)))
    print(json.dumps(result, indent=2))
    return 0


def main() -> None:
    sys.exit(run())


if __name__ == "__main__":
    main()
