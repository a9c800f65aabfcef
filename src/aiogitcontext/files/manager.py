"""Async, lock-coordinated file operations for context metadata and git config.

Every public method takes the per-path lock of the file it touches, so two
coroutines working on the same file are served in arrival order while work
on different files interleaves freely.  The lock table belongs to the
:class:`FileCoordinator` instance; separate instances never contend.

Missing files degrade to an empty result where that is meaningful (context
list, text reads); a denied permission is raised as
:class:`FilePermissionError` with a remediation hint; any other ``OSError``
is logged and re-raised untouched.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import shutil
import time
from collections.abc import AsyncIterator, Callable, Iterable
from contextlib import (
    AbstractAsyncContextManager,
    AsyncExitStack,
    asynccontextmanager,
    nullcontext,
)
from pathlib import Path
from typing import Any

import aiofiles
import aiofiles.os

from ..exceptions import (
    FilePermissionError,
    ImportFormatError,
    MalformedDataError,
    NotFoundError,
)
from ..paths import resolve_fragment_path
from .locks import PathLockTable

logger = logging.getLogger(__name__)

OWNER_ONLY_MODE = 0o600


def _owner_only_opener(path: str, flags: int) -> int:
    return os.open(path, flags, OWNER_ONLY_MODE)


class FileCoordinator:
    """Serialised file primitives used by the context manager."""

    def __init__(self, locks: PathLockTable | None = None) -> None:
        self.locks = locks if locks is not None else PathLockTable()

    # ------------------------------------------------------------------
    # Unlocked helpers (callers hold the lock)
    # ------------------------------------------------------------------

    async def _read_text(self, path: Path) -> str | None:
        """Return the file contents, or ``None`` if it does not exist."""
        try:
            async with aiofiles.open(path, encoding="utf-8") as fh:
                content = await fh.read()
        except FileNotFoundError:
            return None
        except PermissionError as exc:
            logger.error("Permission denied reading %s", path)
            raise FilePermissionError(str(path)) from exc
        except OSError as exc:
            logger.error("Error reading file %s: %s", path, exc)
            raise

        logger.debug("Read file: %s (%d bytes)", path, len(content))
        return content

    async def _write_text(self, path: Path, content: str, *, owner_only: bool = False) -> None:
        try:
            await aiofiles.os.makedirs(path.parent, exist_ok=True)

            opener = _owner_only_opener if owner_only else None
            async with aiofiles.open(path, "w", encoding="utf-8", opener=opener) as fh:
                await fh.write(content)

            if owner_only:
                # The opener mode only applies when the file is created
                await asyncio.to_thread(os.chmod, path, OWNER_ONLY_MODE)
        except PermissionError as exc:
            logger.error("Permission denied writing %s", path)
            raise FilePermissionError(str(path)) from exc
        except OSError as exc:
            logger.error("Error writing file %s: %s", path, exc)
            raise

        logger.info("Wrote file: %s (%d bytes)", path, len(content))

    async def _copy(self, src: Path, dst: Path) -> None:
        try:
            await asyncio.to_thread(shutil.copy2, src, dst)
        except PermissionError as exc:
            logger.error("Permission denied copying %s to %s", src, dst)
            raise FilePermissionError(str(dst)) from exc
        except OSError as exc:
            logger.error("Error copying %s to %s: %s", src, dst, exc)
            raise

        logger.info("Copied %s to %s", src, dst)

    def _guard(self, path: Path, held: bool) -> AbstractAsyncContextManager[None]:
        return nullcontext() if held else self.locks.hold(path)

    @asynccontextmanager
    async def _hold_all(self, *paths: Path) -> AsyncIterator[None]:
        """Hold several path locks, always taken in the same order."""
        keys = sorted({os.path.abspath(p) for p in paths})
        async with AsyncExitStack() as stack:
            for key in keys:
                await stack.enter_async_context(self.locks.hold(key))
            yield

    # ------------------------------------------------------------------
    # JSON
    # ------------------------------------------------------------------

    async def load_json(self, path: Path | str, *, held: bool = False) -> Any:
        """Parse *path* as JSON; a missing file yields ``[]``.

        Pass *held* when the caller already holds the lock of *path*, for a
        read-modify-write spanning several calls.

        Raises :class:`MalformedDataError` if the file is not valid JSON.
        """
        path = Path(path)
        async with self._guard(path, held):
            content = await self._read_text(path)

        if content is None:
            logger.debug("No file at %s, using empty list", path)
            return []

        try:
            return json.loads(content)
        except json.JSONDecodeError as exc:
            raise MalformedDataError(f"Invalid JSON in {path}: {exc}") from exc

    async def save_json(
        self,
        path: Path | str,
        value: Any,
        *,
        owner_only: bool = False,
        held: bool = False,
    ) -> None:
        """Write *value* as 2-space indented JSON (see :meth:`load_json` for *held*)."""
        path = Path(path)
        content = json.dumps(value, indent=2) + "\n"
        async with self._guard(path, held):
            await self._write_text(path, content, owner_only=owner_only)

    async def load_import(self, path: Path | str) -> list[Any]:
        """Read an import file, which must hold a JSON array.

        Unlike :meth:`load_json` every failure is reported:
        :class:`NotFoundError` when missing, :class:`MalformedDataError` when
        unparseable and :class:`ImportFormatError` when not an array.
        """
        path = Path(path)
        async with self.locks.hold(path):
            content = await self._read_text(path)

        if content is None:
            raise NotFoundError(f"Import file not found: {path}")

        try:
            data = json.loads(content)
        except json.JSONDecodeError as exc:
            raise MalformedDataError(f"Invalid JSON in import file: {exc}") from exc

        if not isinstance(data, list):
            raise ImportFormatError("Invalid import file format. Expected an array of contexts")

        return data

    # ------------------------------------------------------------------
    # Text
    # ------------------------------------------------------------------

    async def load_text(self, path: Path | str) -> str:
        """Return the contents of *path*, or ``""`` if it does not exist."""
        path = Path(path)
        async with self.locks.hold(path):
            content = await self._read_text(path)
        return content or ""

    async def save_text(self, path: Path | str, content: str, *, owner_only: bool = False) -> None:
        """Write *content* to *path*, creating parent directories.

        With *owner_only* the file ends up readable and writable by its
        owner alone.
        """
        path = Path(path)
        async with self.locks.hold(path):
            await self._write_text(path, content, owner_only=owner_only)

    async def transform_text(
        self,
        path: Path | str,
        transform: Callable[[str], str],
        *,
        owner_only: bool = False,
    ) -> str:
        """Read, transform and rewrite *path* as one unit under its lock.

        A missing file is treated as empty.  Returns the written text.
        """
        path = Path(path)
        async with self.locks.hold(path):
            current = await self._read_text(path)
            updated = transform(current or "")
            await self._write_text(path, updated, owner_only=owner_only)
        return updated

    # ------------------------------------------------------------------
    # Files and directories
    # ------------------------------------------------------------------

    async def exists(self, path: Path | str) -> bool:
        path = Path(path)
        async with self.locks.hold(path):
            return await aiofiles.os.path.exists(path)

    async def ensure_dir(self, path: Path | str) -> None:
        """Create directory *path* (and parents) if needed."""
        path = Path(path)
        try:
            await aiofiles.os.makedirs(path, exist_ok=True)
        except PermissionError as exc:
            raise FilePermissionError(str(path)) from exc

    async def copy(self, src: Path | str, dst: Path | str) -> None:
        """Copy *src* to *dst*; a missing *src* raises ``FileNotFoundError``."""
        src, dst = Path(src), Path(dst)
        async with self._hold_all(src, dst):
            await self._copy(src, dst)

    async def remove_if_exists(self, path: Path | str) -> bool:
        """Delete *path*; returns ``False`` when there was nothing to delete."""
        path = Path(path)
        async with self.locks.hold(path):
            try:
                await aiofiles.os.remove(path)
            except FileNotFoundError:
                logger.debug("Nothing to delete at %s", path)
                return False
            except PermissionError as exc:
                logger.error("Permission denied deleting %s", path)
                raise FilePermissionError(str(path)) from exc
            except OSError as exc:
                logger.error("Error deleting file %s: %s", path, exc)
                raise

        logger.info("Deleted file: %s", path)
        return True

    async def backup(self, path: Path | str) -> Path | None:
        """Copy *path* to ``<path>.backup.<unix millis>``.

        Returns the backup path, or ``None`` if *path* does not exist.
        """
        path = Path(path)
        async with self.locks.hold(path):
            if not await aiofiles.os.path.exists(path):
                logger.debug("Nothing to back up at %s", path)
                return None

            backup_path = path.with_name(f"{path.name}.backup.{int(time.time() * 1000)}")
            await self._copy(path, backup_path)

        return backup_path

    async def check_permissions(self, paths: Iterable[Path | str], *, write: bool = True) -> None:
        """Verify access to each path before a multi-file mutation.

        An existing path must be readable (and writable with *write*); a
        missing one needs a writable parent.  Paths whose parent does not
        exist yet are skipped, they will be created on demand.

        Raises :class:`FilePermissionError` for the first inaccessible path.
        """
        mode = os.R_OK | os.W_OK if write else os.R_OK
        for raw in paths:
            path = Path(raw)
            if await aiofiles.os.path.exists(path):
                if not await aiofiles.os.access(path, mode):
                    raise FilePermissionError(str(path))
            elif await aiofiles.os.path.exists(path.parent):
                if not await aiofiles.os.access(path.parent, os.R_OK | os.W_OK):
                    raise FilePermissionError(str(path.parent))

    # ------------------------------------------------------------------
    # Per-context fragments
    # ------------------------------------------------------------------

    async def save_named_fragment(self, base_dir: Path | str, name: str, content: str) -> Path:
        """Write ``base_dir/<name>.gitconfig`` with owner-only permissions.

        The path is re-checked even if *name* was validated upstream;
        :class:`PathSecurityError` is raised before anything is written.
        """
        path = resolve_fragment_path(base_dir, name)
        await self.save_text(path, content, owner_only=True)
        return path

    async def delete_named_fragment(self, base_dir: Path | str, name: str) -> bool:
        """Delete ``base_dir/<name>.gitconfig`` if present."""
        path = resolve_fragment_path(base_dir, name)
        return await self.remove_if_exists(path)

    async def load_named_fragment(self, base_dir: Path | str, name: str) -> str | None:
        """Return the fragment text, or ``None`` if it does not exist."""
        path = resolve_fragment_path(base_dir, name)
        async with self.locks.hold(path):
            return await self._read_text(path)
