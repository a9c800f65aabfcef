"""Exception hierarchy for aiogitcontext."""

from __future__ import annotations


class GitContextError(Exception):
    """Base exception for all aiogitcontext errors."""


class ContextValidationError(GitContextError):
    """A context failed validation or conflicts with an existing one."""

    def __init__(self, errors: list[str] | str) -> None:
        if isinstance(errors, str):
            errors = [errors]
        self.errors = list(errors)
        super().__init__("Invalid context: " + ", ".join(self.errors))


class NotFoundError(GitContextError):
    """A requested context, template or import file does not exist."""


class FileError(GitContextError):
    """Error during a file operation."""


class FilePermissionError(FileError):
    """Access to a file was denied by the operating system."""

    def __init__(self, path: str, hint: str | None = None) -> None:
        self.path = path
        self.hint = hint or (
            f"Check that you can read and write {path} "
            f"(for example: chmod u+rw {path})"
        )
        super().__init__(f"Permission denied: {path}. {self.hint}")


class PathSecurityError(FileError):
    """A resolved path escaped the directory it must stay within."""


class MalformedDataError(FileError):
    """Stored or imported data is not valid JSON or has the wrong shape."""


class ImportFormatError(MalformedDataError):
    """An import file parsed as JSON but is not an array of contexts."""
