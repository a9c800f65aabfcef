"""Repository inspection with dulwich (no git binary required).

The blocking dulwich calls run through ``asyncio.to_thread`` so they never
stall the event loop.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from dulwich.config import Config, StackedConfig
from dulwich.errors import NotGitRepository
from dulwich.repo import Repo

logger = logging.getLogger(__name__)


def _get_remote_url_sync(start: Path, remote: str) -> str | None:
    """Synchronous lookup, called via ``asyncio.to_thread``."""
    try:
        repo = Repo.discover(str(start))
    except NotGitRepository:
        logger.debug("No git repository at or above %s", start)
        return None

    try:
        config = repo.get_config()
        url = config.get((b"remote", remote.encode("utf-8")), b"url")
    except KeyError:
        logger.debug("Repository %s has no remote %r", repo.path, remote)
        return None
    finally:
        repo.close()

    return url.decode("utf-8").strip() or None


async def get_remote_url(start: Path | str, remote: str = "origin") -> str | None:
    """Return the URL of *remote* for the repository containing *start*.

    Returns ``None`` when *start* is not inside a git repository or the
    remote is not configured.
    """
    return await asyncio.to_thread(_get_remote_url_sync, Path(start), remote)


# ------------------------------------------------------------------
# Effective configuration
# ------------------------------------------------------------------


def _flatten(config: Config, into: dict[str, str]) -> None:
    for section in config.sections():
        head, *subsections = (part.decode("utf-8", "replace") for part in section)
        prefix = ".".join([head.lower(), *subsections])
        for key, value in config.items(section):
            into[f"{prefix}.{key.decode('utf-8', 'replace').lower()}"] = value.decode(
                "utf-8", "replace"
            )


def _get_active_config_sync(start: Path) -> dict[str, str]:
    try:
        repo = Repo.discover(str(start))
    except NotGitRepository:
        logger.debug("No git repository at or above %s, using user config only", start)
        stack = StackedConfig.default()
    else:
        try:
            stack = repo.get_config_stack()
        finally:
            repo.close()

    values: dict[str, str] = {}
    # Backends are ordered most specific first
    for backend in reversed(stack.backends):
        _flatten(backend, values)
    return values


async def get_active_config(start: Path | str) -> dict[str, str]:
    """Return the git configuration in effect at *start*.

    Keys are flattened the way ``git config --list`` prints them
    (``user.email``, ``remote.origin.url``).  Repository settings override
    the user's global file, which overrides the system one.  Include
    directives are followed only as far as dulwich resolves them.
    """
    return await asyncio.to_thread(_get_active_config_sync, Path(start))
