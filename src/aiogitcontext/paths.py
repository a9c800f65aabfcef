"""Standard file locations and fragment path resolution."""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from .exceptions import PathSecurityError

FRAGMENT_SUFFIX = ".gitconfig"


class GitContextPaths(BaseModel):
    """Locations of every file the library reads or writes.

    Paths are injected by the caller; nothing is read from the environment.
    """

    model_config = ConfigDict(frozen=True)

    home_dir: Path
    git_config_path: Path
    config_dir: Path
    contexts_file: Path

    @classmethod
    def default(cls, home: Path | None = None) -> GitContextPaths:
        """Build the standard layout rooted at *home* (default: ``Path.home()``)."""
        home_dir = home if home is not None else Path.home()
        return cls(
            home_dir=home_dir,
            git_config_path=home_dir / ".gitconfig",
            config_dir=home_dir / ".gitconfig.d",
            contexts_file=home_dir / ".gitcontexts",
        )


def resolve_fragment_path(base_dir: Path | str, name: str) -> Path:
    """Return ``base_dir/<name>.gitconfig``, refusing paths outside *base_dir*.

    The check is lexical (``..`` segments are collapsed, nothing on disk is
    consulted) and the result must lie strictly below *base_dir*.

    Raises :class:`PathSecurityError` for a name that escapes the directory.
    """
    base = os.path.normpath(os.path.abspath(os.fspath(base_dir)))
    candidate = os.path.normpath(os.path.join(base, f"{name}{FRAGMENT_SUFFIX}"))

    if candidate == base or not Path(candidate).is_relative_to(base):
        raise PathSecurityError(f"Invalid configuration path for context: {name!r}")

    return Path(candidate)


def ensure_export_path_allowed(dest: Path | str, protected: list[Path | str]) -> None:
    """Refuse an export destination that names a protected directory.

    This is a plain substring test on the path as given: relative paths,
    ``..`` segments and symlinks are not resolved first.

    Raises :class:`PathSecurityError` if any protected path occurs in *dest*.
    """
    text = os.fspath(dest)
    for directory in protected:
        marker = os.fspath(directory)
        if marker and marker in text:
            raise PathSecurityError(
                "Export path should not be within system or git config directories"
            )
