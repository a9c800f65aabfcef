"""The git identity context model."""

from __future__ import annotations

import re
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
from pydantic import ValidationError as PydanticValidationError

from ..exceptions import MalformedDataError
from .common import ValidationResult
from .templates import get_template

# Characters stripped from free-text input before it reaches a config file
_UNSAFE_INPUT = re.compile(r"[;&|`$(){}\[\]\\\"'*?~<>\x00-\x1f\x7f]")
# Characters never allowed inside a path or URL pattern
_UNSAFE_PATTERN = re.compile(r"[;&|`$(){}\[\]\\\"'\x00-\x1f\x7f]")
# Line breaks and other control characters would split a config line
_CONTROL = re.compile(r"[\x00-\x1f\x7f]")

_NAME = re.compile(r"[A-Za-z0-9_-]+")
_EMAIL = re.compile(r"[^@]+@[^@]+\.[^@]+")
_HEX = re.compile(r"[0-9A-Fa-f]+")


def sanitize_input(value: Any) -> str:
    """Drop shell-sensitive and control characters; non-strings become ``""``."""
    if not isinstance(value, str):
        return ""
    return _UNSAFE_INPUT.sub("", value)


def has_control_characters(value: Any) -> bool:
    """Return ``True`` if *value* is a string containing a line break or control character."""
    return isinstance(value, str) and _CONTROL.search(value) is not None


def _config_value(value: Any) -> Any:
    # JSON scalars written by hand ("gpgsign": true) are stored the way git spells them
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    if value is None:
        return ""
    return value


def is_valid_context_name(name: Any) -> bool:
    """Return ``True`` if *name* is a non-empty ``[A-Za-z0-9_-]+`` identifier."""
    return isinstance(name, str) and _NAME.fullmatch(name) is not None


def is_safe_url_pattern(pattern: Any) -> bool:
    """Return ``True`` if *pattern* is non-blank and free of shell metacharacters."""
    if not isinstance(pattern, str) or not pattern.strip():
        return False
    return _UNSAFE_PATTERN.search(pattern) is None


def is_safe_path_pattern(pattern: Any) -> bool:
    """Like :func:`is_safe_url_pattern`, additionally refusing ``..``."""
    return is_safe_url_pattern(pattern) and ".." not in pattern


def is_valid_email(email: Any) -> bool:
    """Return ``True`` if *email* looks like ``local@domain.tld``."""
    return isinstance(email, str) and _EMAIL.fullmatch(email) is not None


class Context(BaseModel):
    """A named git identity plus the path/URL patterns that select it.

    Instances are immutable, down to the pattern tuples and the read-only
    ``git_config`` mapping; use :meth:`replace` to derive an edited copy.
    ``user_name``, ``user_email``, ``signing_key`` and ``auto_sign`` are read
    straight from ``git_config`` on every access.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    name: str
    description: str = ""
    path_patterns: tuple[str, ...] = Field(default=(), alias="pathPatterns")
    git_config: Mapping[str, str] = Field(
        default_factory=dict, alias="gitConfig", validate_default=True
    )
    url_patterns: tuple[str, ...] = Field(default=(), alias="urlPatterns")

    @field_validator("name", "description", mode="before")
    @classmethod
    def _sanitize(cls, value: Any) -> str:
        return sanitize_input(value)

    @field_validator("git_config", mode="before")
    @classmethod
    def _stringify_values(cls, value: Any) -> Any:
        if isinstance(value, Mapping):
            return {key: _config_value(item) for key, item in value.items()}
        return value

    @field_validator("git_config", mode="after")
    @classmethod
    def _freeze_config(cls, value: Mapping[str, str]) -> Mapping[str, str]:
        return MappingProxyType(dict(value))

    @field_serializer("path_patterns", "url_patterns")
    def _dump_patterns(self, value: tuple[str, ...]) -> list[str]:
        return list(value)

    @field_serializer("git_config")
    def _dump_git_config(self, value: Mapping[str, str]) -> dict[str, str]:
        return dict(value)

    # ------------------------------------------------------------------
    # Derived identity fields
    # ------------------------------------------------------------------

    @property
    def user_name(self) -> str:
        return self.git_config.get("user.name", "")

    @property
    def user_email(self) -> str:
        return self.git_config.get("user.email", "")

    @property
    def signing_key(self) -> str | None:
        return self.git_config.get("user.signingkey") or None

    @property
    def auto_sign(self) -> bool:
        return self.git_config.get("commit.gpgsign") == "true"

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> Context:
        """Hydrate a context from a plain record as stored on disk.

        Absent optional fields default to empty.  A legacy single
        ``pathPattern`` is honoured only when ``pathPatterns`` is missing.

        Raises :class:`MalformedDataError` if *record* is not a mapping, has no
        ``name``, or carries fields of the wrong type.
        """
        if not isinstance(record, Mapping):
            raise MalformedDataError("Context record must be a JSON object")
        if not record.get("name"):
            raise MalformedDataError("Context requires a name")

        path_patterns = record.get("pathPatterns")
        if path_patterns is None:
            legacy = record.get("pathPattern")
            path_patterns = [legacy] if isinstance(legacy, str) and legacy.strip() else []

        try:
            return cls(
                name=record["name"],
                description=record.get("description") or "",
                path_patterns=path_patterns,
                git_config=record.get("gitConfig") or {},
                url_patterns=record.get("urlPatterns") or [],
            )
        except PydanticValidationError as exc:
            raise MalformedDataError(
                f"Malformed context record {record.get('name')!r}: {exc}"
            ) from exc

    @classmethod
    def from_template(cls, name: str, template_name: str) -> Context:
        """Create a context called *name* pre-filled from a built-in template.

        Raises :class:`~aiogitcontext.exceptions.NotFoundError` for an unknown
        template.
        """
        template = get_template(template_name)
        return cls(
            name=name,
            description=template.description,
            git_config=template.git_config,
            url_patterns=template.url_patterns,
        )

    def replace(self, **changes: Any) -> Context:
        """Return a new context with *changes* applied (field names, not aliases)."""
        data = self.model_dump()
        data.update(changes)
        return Context(**data)

    # ------------------------------------------------------------------
    # Serialisation
    # ------------------------------------------------------------------

    def to_record(self) -> dict[str, Any]:
        """Plain record with the five persisted fields."""
        return self.model_dump(by_alias=True)

    def to_config_fragment(self) -> str:
        """Render the per-context ``.gitconfig`` fragment."""
        content = "[user]\n"

        if self.user_name:
            content += f"    name = {self.user_name}\n"

        if self.user_email:
            content += f"    email = {self.user_email}\n"

        if self.signing_key:
            content += f"    signingkey = {self.signing_key}\n\n"
            content += "[commit]\n"
            content += f"    gpgsign = {'true' if self.auto_sign else 'false'}\n"

        return content

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate_fields(self) -> ValidationResult:
        """Check every rule and report all failures at once."""
        errors: list[str] = []

        if not is_valid_context_name(self.name):
            errors.append(
                "Context name can only contain letters, numbers, hyphens, and underscores"
            )

        for pattern in self.path_patterns:
            if not is_safe_path_pattern(pattern):
                errors.append(f"Path pattern contains invalid characters: {pattern!r}")
                break

        for pattern in self.url_patterns:
            if not is_safe_url_pattern(pattern):
                errors.append(f"URL pattern contains invalid characters: {pattern!r}")
                break

        if any(has_control_characters(value) for value in self.git_config.values()):
            errors.append("Git config values cannot contain line breaks or control characters")

        if self.user_name and not self.user_name.strip():
            errors.append("User name is required")

        if self.user_email and not is_valid_email(self.user_email):
            errors.append("Please enter a valid email address")

        if self.signing_key and _HEX.fullmatch(self.signing_key) is None:
            errors.append("GPG key should be a hexadecimal value")

        return ValidationResult(is_valid=not errors, errors=errors)


def validate_context(context: Context) -> ValidationResult:
    """Validate *context*; see :meth:`Context.validate_fields`."""
    return context.validate_fields()
