"""Glob matching of repository paths and remote URLs against context patterns.

Pure logic with no filesystem side-effects.  Path patterns follow the shape
of git's ``gitdir:`` conditions; URL patterns are matched against remote URLs
after both sides are normalised to ``host/owner/repo`` form.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..models.context import Context

logger = logging.getLogger(__name__)

# Tokenises a path pattern: "/**", "**", "*", "?" or a run of literal text.
_PATH_TOKENS = re.compile(r"/\*\*|\*\*|\*|\?|(?:[^*?/]|/(?!\*\*))+")

_SSH_SHORTHAND = re.compile(r"^[^@/\s]+@([^:/\s]+):(.+)$")
_URL_PREFIX = re.compile(r"^(?:https?://|git://|ssh://)", re.IGNORECASE)
_URL_USERINFO = re.compile(r"^[^@/]+@")


def expand_home(pattern: str, home_dir: str) -> str:
    """Replace a leading ``~`` in *pattern* with *home_dir*."""
    if pattern.startswith("~"):
        return home_dir + pattern[1:]
    return pattern


def compile_path(pattern: str) -> re.Pattern[str] | None:
    """Compile a path glob into a start-anchored regular expression.

    ``**`` matches any characters (including a directly preceding ``/``),
    ``*`` any characters except ``/`` and ``?`` one non-``/`` character.
    The expression is not anchored at the end, so ``/work/**`` also matches
    ``/work-other``.

    Returns ``None`` (never matches) if the pattern cannot be compiled.
    """
    try:
        parts: list[str] = []
        for token in _PATH_TOKENS.findall(pattern.replace("\\", "/")):
            if token in ("/**", "**"):
                parts.append(".*")
            elif token == "*":
                parts.append("[^/]*")
            elif token == "?":
                parts.append("[^/]")
            else:
                parts.append(re.escape(token))
        return re.compile("^" + "".join(parts))
    except (re.error, TypeError, AttributeError) as exc:
        logger.warning("Ignoring path pattern %r: %s", pattern, exc)
        return None


def normalize_git_url(url: str) -> str:
    """Reduce a remote URL to lowercase ``host/owner/repo`` form.

    Handles ``git@github.com:org/repo.git`` as well as ``https://``,
    ``git://`` and ``ssh://`` URLs.
    """
    if not url:
        return ""

    normalized = url.strip()
    if normalized.endswith(".git"):
        normalized = normalized[: -len(".git")]

    ssh_match = _SSH_SHORTHAND.match(normalized)
    if ssh_match and "://" not in normalized:
        host, path = ssh_match.groups()
        normalized = f"{host}/{path}"

    prefix = _URL_PREFIX.match(normalized)
    if prefix:
        normalized = _URL_USERINFO.sub("", normalized[prefix.end() :], count=1)

    return normalized.lower()


def compile_url(pattern: str) -> re.Pattern[str] | None:
    """Compile a URL glob into a full-match, case-insensitive expression.

    ``*`` matches any characters and ``?`` exactly one.  Returns ``None``
    (never matches) if the pattern cannot be compiled.
    """
    try:
        normalized = normalize_git_url(pattern)
        regex = "".join(
            ".*" if char == "*" else "." if char == "?" else re.escape(char)
            for char in normalized
        )
        return re.compile(f"^{regex}$", re.IGNORECASE)
    except (re.error, TypeError, AttributeError) as exc:
        logger.warning("Ignoring URL pattern %r: %s", pattern, exc)
        return None


def matches(candidate: str, matcher: re.Pattern[str] | None) -> bool:
    """Return ``True`` if *candidate* satisfies the compiled *matcher*."""
    if matcher is None:
        return False
    return matcher.match(candidate) is not None


def path_matches(path: str, pattern: str, home_dir: str) -> bool:
    """Test a filesystem *path* against a path *pattern* (``~`` expanded)."""
    return matches(path.replace("\\", "/"), compile_path(expand_home(pattern, home_dir)))


def url_matches(url: str, pattern: str) -> bool:
    """Test a remote *url* against a URL *pattern* after normalising both."""
    return matches(normalize_git_url(url), compile_url(pattern))


def find_context_for_path(
    contexts: Iterable[Context],
    path: str,
    home_dir: str,
) -> Context | None:
    """Return the first context with a path pattern matching *path*."""
    for context in contexts:
        for pattern in context.path_patterns:
            if path_matches(path, pattern, home_dir):
                logger.debug("Path %s matched context %s via %s", path, context.name, pattern)
                return context
    return None


def find_context_for_url(contexts: Iterable[Context], url: str) -> Context | None:
    """Return the first context with a URL pattern matching *url*."""
    if not url:
        return None

    for context in contexts:
        for pattern in context.url_patterns:
            if url_matches(url, pattern):
                logger.debug("URL %s matched context %s via %s", url, context.name, pattern)
                return context
    return None
