"""Tests for dulwich-based remote URL lookup."""

from __future__ import annotations

from pathlib import Path

import pytest
from dulwich.repo import Repo

from aiogitcontext.git import get_active_config, get_remote_url


def _init_repo(path: Path, remotes: dict[str, str] | None = None) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    repo = Repo.init(str(path))
    try:
        config = repo.get_config()
        for name, url in (remotes or {}).items():
            config.set((b"remote", name.encode()), b"url", url.encode())
        config.write_to_path()
    finally:
        repo.close()
    return path


@pytest.fixture
def repo_dir(tmp_path: Path) -> Path:
    return _init_repo(
        tmp_path / "repo",
        {
            "origin": "git@github.com:acme-corp/api.git",
            "upstream": "https://github.com/upstream/api",
        },
    )


class TestGetRemoteUrl:
    async def test_origin(self, repo_dir: Path) -> None:
        assert await get_remote_url(repo_dir) == "git@github.com:acme-corp/api.git"

    async def test_named_remote(self, repo_dir: Path) -> None:
        assert await get_remote_url(repo_dir, "upstream") == "https://github.com/upstream/api"

    async def test_discovers_from_subdirectory(self, repo_dir: Path) -> None:
        nested = repo_dir / "src" / "pkg"
        nested.mkdir(parents=True)
        assert await get_remote_url(nested) == "git@github.com:acme-corp/api.git"

    async def test_missing_remote(self, repo_dir: Path) -> None:
        assert await get_remote_url(repo_dir, "fork") is None

    async def test_repo_without_remotes(self, tmp_path: Path) -> None:
        path = _init_repo(tmp_path / "bare-remote")
        assert await get_remote_url(path) is None

    async def test_not_a_repository(self, tmp_path: Path) -> None:
        plain = tmp_path / "plain"
        plain.mkdir()
        assert await get_remote_url(str(plain)) is None


class TestGetActiveConfig:
    async def test_repository_overrides_user_config(self, repo_dir: Path, git_env: Path) -> None:
        (git_env / ".gitconfig").write_text(
            "[user]\n    name = Global Name\n    email = global@example.com\n"
        )
        repo = Repo(str(repo_dir))
        try:
            config = repo.get_config()
            config.set((b"user",), b"email", b"repo@example.com")
            config.write_to_path()
        finally:
            repo.close()

        active = await get_active_config(repo_dir)

        assert active["user.email"] == "repo@example.com"
        assert active["user.name"] == "Global Name"

    async def test_subsection_keys(self, repo_dir: Path, git_env: Path) -> None:
        active = await get_active_config(repo_dir / ".")
        assert active["remote.origin.url"] == "git@github.com:acme-corp/api.git"
        assert active["remote.upstream.url"] == "https://github.com/upstream/api"

    async def test_outside_repository_reads_user_config(
        self, tmp_path: Path, git_env: Path
    ) -> None:
        plain = tmp_path / "plain"
        plain.mkdir()

        active = await get_active_config(str(plain))

        assert active == {"core.editor": "vim", "alias.st": "status"}

    async def test_xdg_config_below_home_file(
        self, tmp_path: Path, git_env: Path
    ) -> None:
        xdg = tmp_path / "xdg" / "git"
        xdg.mkdir(parents=True)
        (xdg / "config").write_text("[core]\n    editor = nano\n    pager = less\n")
        plain = tmp_path / "plain"
        plain.mkdir()

        active = await get_active_config(plain)

        assert active["core.editor"] == "vim"
        assert active["core.pager"] == "less"
