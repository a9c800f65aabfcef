"""Result models shared across the library."""

from __future__ import annotations

from pydantic import BaseModel, Field


class ValidationResult(BaseModel):
    """Outcome of validating a context; lists every failing rule."""

    is_valid: bool
    errors: list[str] = Field(default_factory=list)


class ImportFailure(BaseModel):
    """A record from an import file that could not be imported."""

    name: str
    errors: list[str] = Field(default_factory=list)


class ImportResult(BaseModel):
    """Per-item outcome of importing contexts from a file."""

    imported: list[str] = Field(default_factory=list)
    replaced: list[str] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)
    failures: list[ImportFailure] = Field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.failures
