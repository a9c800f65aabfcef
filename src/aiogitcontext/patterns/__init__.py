"""Path and URL glob matching."""

from .matcher import (
    compile_path,
    compile_url,
    expand_home,
    find_context_for_path,
    find_context_for_url,
    matches,
    normalize_git_url,
    path_matches,
    url_matches,
)

__all__ = [
    "compile_path",
    "compile_url",
    "expand_home",
    "find_context_for_path",
    "find_context_for_url",
    "matches",
    "normalize_git_url",
    "path_matches",
    "url_matches",
]
