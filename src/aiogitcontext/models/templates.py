"""Built-in context presets."""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..exceptions import NotFoundError


class ContextTemplate(BaseModel):
    """A named preset used to pre-fill a new context.

    Blank ``git_config`` values are placeholders the user is expected to fill.
    The catalog is shared, so every field is read-only.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    description: str
    git_config: Mapping[str, str] = Field(default_factory=dict, validate_default=True)
    url_patterns: tuple[str, ...] = ()

    @field_validator("git_config", mode="after")
    @classmethod
    def _freeze_config(cls, value: Mapping[str, str]) -> Mapping[str, str]:
        return MappingProxyType(dict(value))


_TEMPLATES: tuple[ContextTemplate, ...] = (
    ContextTemplate(
        name="personal",
        description="Personal GitHub projects",
        git_config={"user.name": "", "user.email": ""},
        url_patterns=["github.com/*/personal-*"],
    ),
    ContextTemplate(
        name="work",
        description="Work projects",
        git_config={"user.name": "", "user.email": "", "commit.gpgsign": "true"},
        url_patterns=["github.com/*/work-*"],
    ),
    ContextTemplate(
        name="opensource",
        description="Open source contributions",
        git_config={"user.name": "", "user.email": ""},
        url_patterns=["github.com/*/*", "gitlab.com/*/*"],
    ),
)


def list_templates() -> list[ContextTemplate]:
    """Return the built-in templates in catalog order."""
    return list(_TEMPLATES)


def get_template(name: str) -> ContextTemplate:
    """Return the template called *name*.

    Raises :class:`NotFoundError` for an unknown name.
    """
    for template in _TEMPLATES:
        if template.name == name:
            return template
    raise NotFoundError(f"Template not found: {name}")
