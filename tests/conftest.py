"""Shared fixtures for aiogitcontext tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from aiogitcontext.files import FileCoordinator
from aiogitcontext.manager import ContextManager
from aiogitcontext.models import Context
from aiogitcontext.paths import GitContextPaths


@pytest.fixture
def home_dir(tmp_path: Path) -> Path:
    """A fake home directory with an existing global git config."""
    home = tmp_path / "home"
    home.mkdir()
    (home / ".gitconfig").write_text(
        "[core]\n    editor = vim\n\n[alias]\n    st = status\n"
    )
    return home


@pytest.fixture
def paths(home_dir: Path) -> GitContextPaths:
    return GitContextPaths.default(home_dir)


@pytest.fixture
def files() -> FileCoordinator:
    return FileCoordinator()


@pytest.fixture
def manager(paths: GitContextPaths, files: FileCoordinator) -> ContextManager:
    return ContextManager(paths, files=files)


@pytest.fixture
def work_context() -> Context:
    return Context(
        name="work",
        description="Work projects",
        path_patterns=["~/work/**"],
        git_config={
            "user.name": "Work User",
            "user.email": "work@example.com",
            "user.signingkey": "ABCDEF12",
            "commit.gpgsign": "true",
        },
        url_patterns=["github.com/acme-corp/*"],
    )


@pytest.fixture
def personal_context() -> Context:
    return Context(
        name="personal",
        description="Personal projects",
        path_patterns=["~/personal/**", "~/src/**"],
        git_config={"user.name": "Personal User", "user.email": "me@example.com"},
        url_patterns=["github.com/personal-user/*"],
    )


@pytest.fixture
def git_env(home_dir: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point git's user config lookup at *home_dir* and hide the system file."""
    monkeypatch.setenv("HOME", str(home_dir))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.delenv("GIT_CONFIG_GLOBAL", raising=False)
    monkeypatch.delenv("GIT_CONFIG_SYSTEM", raising=False)
    return home_dir
