"""Keep the conditional-include block of the global git config in sync.

The block is found by scanning lines, not by marker comments: every
``[includeIf "gitdir:..."]`` stanza and the lines that follow it, up to the
next ordinary section header, belong to this library and are regenerated
on each update.  Everything else in the file is preserved as-is.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable
from pathlib import Path

from ..exceptions import PathSecurityError
from ..models.context import Context, has_control_characters
from ..paths import resolve_fragment_path

logger = logging.getLogger(__name__)

_MANAGED_HEADER = '[includeIf "gitdir:'
_INCLUDE_IF_PREFIX = "[includeIf"


class ConfigTransformer(ABC):
    """Rewrites the managed include block inside global config text."""

    @abstractmethod
    def strip_managed_block(self, text: str) -> str:
        """Return *text* with every managed include stanza removed."""

    @abstractmethod
    def generate_managed_block(self, contexts: Iterable[Context], base_dir: Path | str) -> str:
        """Render include stanzas pointing at each context's fragment file."""

    def update(self, text: str, contexts: Iterable[Context], base_dir: Path | str) -> str:
        """Replace the managed block in *text* with one generated from *contexts*.

        With no stanzas to write the stripped text is returned unchanged;
        otherwise the block follows the remaining content after a single
        blank line.  Applying the same update twice is a no-op.
        """
        stripped = self.strip_managed_block(text)
        block = self.generate_managed_block(contexts, base_dir)
        if not block:
            return stripped

        body = stripped.rstrip("\n")
        if not body:
            return block
        return f"{body}\n\n{block}"


class LineConfigTransformer(ConfigTransformer):
    """Line-oriented implementation; does not parse the config grammar."""

    def strip_managed_block(self, text: str) -> str:
        if not text:
            return ""

        kept: list[str] = []
        dropping = False

        for line in text.split("\n"):
            trimmed = line.strip()

            if trimmed.startswith(_MANAGED_HEADER):
                dropping = True
                continue

            if trimmed.startswith("[") and not trimmed.startswith(_INCLUDE_IF_PREFIX):
                dropping = False

            if not dropping:
                kept.append(line)

        return "\n".join(kept)

    def generate_managed_block(self, contexts: Iterable[Context], base_dir: Path | str) -> str:
        stanzas: list[str] = []

        for context in contexts:
            name = getattr(context, "name", None)
            if not isinstance(name, str) or not name or has_control_characters(name):
                logger.warning("Skipping context without a usable name")
                continue

            try:
                patterns: list[str] = []
                for pattern in context.path_patterns:
                    if not isinstance(pattern, str) or not pattern.strip():
                        continue
                    # A line break would end the section header early
                    if has_control_characters(pattern):
                        logger.warning("Skipping unsafe path pattern %r of %s", pattern, name)
                        continue
                    patterns.append(pattern)

                if not patterns:
                    logger.debug("Context %s has no path patterns; no include written", name)
                    continue

                fragment_path = resolve_fragment_path(base_dir, name)
            except PathSecurityError as exc:
                logger.warning("Skipping context %s: %s", name, exc)
                continue
            except (AttributeError, TypeError) as exc:
                logger.warning("Skipping malformed context %s: %s", name, exc)
                continue

            for pattern in patterns:
                stanzas.append(
                    f'[includeIf "gitdir:{pattern}"]\n    path = {fragment_path.as_posix()}\n\n'
                )

        return "".join(stanzas)
