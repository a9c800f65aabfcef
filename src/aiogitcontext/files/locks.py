"""Per-path mutual exclusion for coroutines within one process."""

from __future__ import annotations

import asyncio
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class _PathLock:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    users: int = 0


class PathLockTable:
    """Maps a path to a FIFO mutex.

    ``asyncio.Lock`` wakes waiters in arrival order and does not let a new
    caller overtake queued ones.  An entry exists only while the path is held
    or awaited.  Tables are independent: two instances never share locks.
    """

    def __init__(self) -> None:
        self._locks: dict[str, _PathLock] = {}

    @staticmethod
    def _key(path: Path | str) -> str:
        return os.path.abspath(os.fspath(path))

    def __len__(self) -> int:
        return len(self._locks)

    def is_locked(self, path: Path | str) -> bool:
        entry = self._locks.get(self._key(path))
        return entry is not None and entry.lock.locked()

    async def acquire(self, path: Path | str) -> None:
        """Wait until *path* is free, then take it."""
        key = self._key(path)
        entry = self._locks.get(key)
        if entry is None:
            entry = self._locks[key] = _PathLock()

        entry.users += 1
        try:
            await entry.lock.acquire()
        except BaseException:
            self._forget(key, entry)
            raise

    def release(self, path: Path | str) -> None:
        """Release *path*, handing it to the next waiter if there is one."""
        key = self._key(path)
        entry = self._locks.get(key)
        if entry is None or not entry.lock.locked():
            raise RuntimeError(f"Path is not locked: {key}")

        entry.lock.release()
        self._forget(key, entry)

    def _forget(self, key: str, entry: _PathLock) -> None:
        entry.users -= 1
        if entry.users == 0:
            del self._locks[key]

    @asynccontextmanager
    async def hold(self, path: Path | str) -> AsyncIterator[None]:
        """Hold *path* for the duration of the ``async with`` block."""
        await self.acquire(path)
        try:
            yield
        finally:
            self.release(path)
