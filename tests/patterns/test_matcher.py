"""Tests for path and URL pattern matching."""

from __future__ import annotations

import re
from unittest.mock import patch

from aiogitcontext.models import Context
from aiogitcontext.patterns import (
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

HOME = "/home/u"


class TestExpandHome:
    def test_leading_tilde(self) -> None:
        assert expand_home("~/work/**", HOME) == "/home/u/work/**"

    def test_no_tilde(self) -> None:
        assert expand_home("/srv/work/**", HOME) == "/srv/work/**"

    def test_inner_tilde_untouched(self) -> None:
        assert expand_home("/srv/~x", HOME) == "/srv/~x"


class TestCompilePath:
    def test_literal_matches_itself(self) -> None:
        matcher = compile_path("/home/u/project.v2")
        assert matches("/home/u/project.v2", matcher) is True

    def test_literal_dot_is_escaped(self) -> None:
        matcher = compile_path("/home/u/project.v2")
        assert matches("/home/u/projectXv2", matcher) is False

    def test_literal_rejects_other_paths(self) -> None:
        matcher = compile_path("/home/u/project")
        assert matches("/home/u/other", matcher) is False
        assert matches("/srv/home/u/project", matcher) is False

    def test_single_star_stops_at_separator(self) -> None:
        matcher = compile_path("/home/*/work")
        assert matches("/home/u/work", matcher) is True
        assert matches("/home/u/x/work", matcher) is False

    def test_double_star_any_depth(self) -> None:
        matcher = compile_path("/home/**/work")
        assert matches("/home/u/a/b/work", matcher) is True

    def test_question_mark(self) -> None:
        matcher = compile_path("/repo?")
        assert matches("/repo1", matcher) is True
        assert matches("/repo/", matcher) is False

    def test_prefix_anchored_only(self) -> None:
        matcher = compile_path("/work/**")
        assert matches("/work/a/b", matcher) is True
        assert matches("/work-other", matcher) is True
        assert matches("/srv/work/a", matcher) is False

    def test_backslashes_normalised(self) -> None:
        assert isinstance(compile_path("C:\\work\\**"), re.Pattern)
        assert matches("C:/work/repo", compile_path("C:\\work\\**")) is True

    def test_compile_failure_never_matches(self) -> None:
        matcher = compile_path(None)  # type: ignore[arg-type]
        assert matcher is None
        assert matches("/work/x", matcher) is False


class TestScenarioHomePattern:
    def test_inside(self) -> None:
        assert path_matches("/home/u/work/proj", "~/work/**", HOME) is True

    def test_sibling_prefix_also_matches(self) -> None:
        assert path_matches("/home/u/worker/x", "~/work/**", HOME) is True

    def test_other_user(self) -> None:
        assert path_matches("/home/other", "~/work/**", HOME) is False


class TestNormalizeGitUrl:
    def test_ssh_shorthand(self) -> None:
        assert normalize_git_url("git@github.com:Acme/Repo.git") == "github.com/acme/repo"

    def test_https(self) -> None:
        assert normalize_git_url("https://github.com/acme/repo.git") == "github.com/acme/repo"

    def test_git_protocol(self) -> None:
        assert normalize_git_url("git://example.org/acme/repo") == "example.org/acme/repo"

    def test_ssh_url_with_user(self) -> None:
        assert normalize_git_url("ssh://git@gitlab.com/acme/repo.git") == "gitlab.com/acme/repo"

    def test_https_with_userinfo(self) -> None:
        assert normalize_git_url("https://token@github.com/acme/repo") == "github.com/acme/repo"

    def test_empty(self) -> None:
        assert normalize_git_url("") == ""

    def test_whitespace_trimmed(self) -> None:
        assert normalize_git_url("  github.com/acme/repo  ") == "github.com/acme/repo"


class TestCompileUrl:
    def test_full_match_required(self) -> None:
        matcher = compile_url("github.com/acme/repo")
        assert matches("github.com/acme/repo", matcher) is True
        assert matches("github.com/acme/repo-extra", matcher) is False

    def test_star_crosses_slashes(self) -> None:
        assert matches("github.com/acme/a/b", compile_url("github.com/acme/*")) is True

    def test_question_mark_single_char(self) -> None:
        matcher = compile_url("github.com/acme/repo?")
        assert matches("github.com/acme/repo1", matcher) is True
        assert matches("github.com/acme/repo12", matcher) is False

    def test_case_insensitive(self) -> None:
        assert matches("GitHub.com/ACME/repo", compile_url("github.com/acme/*")) is True

    def test_pattern_is_normalised(self) -> None:
        matcher = compile_url("git@github.com:acme/*.git")
        assert matches("github.com/acme/tool", matcher) is True

    def test_regex_characters_are_literal(self) -> None:
        matcher = compile_url("github.com/acme/a+b")
        assert matches("github.com/acme/a+b", matcher) is True
        assert matches("github.com/acme/aab", matcher) is False


class TestScenarioUrlPattern:
    def test_ssh_candidate_matches(self) -> None:
        assert url_matches("git@github.com:acme/repo.git", "github.com/acme/*") is True

    def test_other_owner_does_not_match(self) -> None:
        assert url_matches("https://github.com/other/repo", "github.com/acme/*") is False


class TestFindContext:
    def _contexts(self) -> list[Context]:
        return [
            Context(name="broken", path_patterns=["/srv/**"], url_patterns=["bad"]),
            Context(
                name="work",
                path_patterns=["~/work/**"],
                url_patterns=["github.com/acme/*"],
            ),
            Context(
                name="catchall",
                path_patterns=["/home/**"],
                url_patterns=["github.com/*"],
            ),
        ]

    def test_first_path_match_wins(self) -> None:
        found = find_context_for_path(self._contexts(), "/home/u/work/x", HOME)
        assert found is not None
        assert found.name == "work"

    def test_later_context_matches(self) -> None:
        found = find_context_for_path(self._contexts(), "/home/u/other", HOME)
        assert found is not None
        assert found.name == "catchall"

    def test_no_path_match(self) -> None:
        assert find_context_for_path(self._contexts(), "/opt/x", HOME) is None

    def test_url_match(self) -> None:
        found = find_context_for_url(self._contexts(), "git@github.com:acme/api.git")
        assert found is not None
        assert found.name == "work"

    def test_url_no_match(self) -> None:
        assert find_context_for_url(self._contexts(), "https://gitlab.com/acme/api") is None

    def test_empty_url(self) -> None:
        assert find_context_for_url(self._contexts(), "") is None

    def test_failed_pattern_does_not_stop_siblings(self) -> None:
        real_compile = compile_url

        def flaky(pattern: str):
            if pattern == "bad":
                return None
            return real_compile(pattern)

        with patch("aiogitcontext.patterns.matcher.compile_url", side_effect=flaky):
            found = find_context_for_url(self._contexts(), "github.com/acme/api")
        assert found is not None
        assert found.name == "work"
