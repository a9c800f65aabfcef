"""File coordination utilities."""

from .locks import PathLockTable
from .manager import FileCoordinator

__all__ = ["FileCoordinator", "PathLockTable"]
