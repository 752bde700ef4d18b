"""Tests for input validation of the lint-checks models."""

# ruff: noqa: S101, D103, INP001

from pathlib import Path

import pytest
from pydantic import ValidationError

from lint_checks.errors import ConfigurationError
from lint_checks.models import (
    Diagnostic,
    ScopeConfig,
    ScopeMode,
    Severity,
    TriggerContext,
)


@pytest.mark.parametrize(
    ("mode", "expected"),
    [
        (None, ScopeMode.COMMIT),
        ("", ScopeMode.COMMIT),
        ("commit", ScopeMode.COMMIT),
        (" all ", ScopeMode.ALL),
    ],
)
def test_scope_config_modes(mode: str | None, expected: ScopeMode) -> None:
    config = ScopeConfig.from_inputs(mode, "**/*.py", "ruff.toml")
    assert config.mode == expected
    assert config.rule_config_path == Path("ruff.toml")


def test_scope_config_unknown_mode() -> None:
    with pytest.raises(ConfigurationError, match="Unknown mode 'everything'"):
        ScopeConfig.from_inputs("everything", "**/*.py", "ruff.toml")


@pytest.mark.parametrize("mode", ["ALL", "Commit"])
def test_scope_config_modes_are_case_sensitive(mode: str) -> None:
    with pytest.raises(ConfigurationError, match="Unknown mode"):
        ScopeConfig.from_inputs(mode, "**/*.py", "ruff.toml")


@pytest.mark.parametrize("pattern", [None, "", "   "])
def test_scope_config_all_requires_pattern(pattern: str | None) -> None:
    with pytest.raises(ConfigurationError, match="pattern is required"):
        ScopeConfig.from_inputs("all", pattern, "ruff.toml")


def test_scope_config_commit_needs_no_pattern() -> None:
    config = ScopeConfig.from_inputs("commit", None, "ruff.toml", ["docs/"])
    assert config.file_pattern is None
    assert config.ignored_globs == ("docs/",)


def test_scope_config_requires_lint_file() -> None:
    with pytest.raises(ConfigurationError, match="lintFile"):
        ScopeConfig.from_inputs("commit", None, "")


def test_trigger_context_from_slug() -> None:
    context = TriggerContext.from_repository_slug("octo/hello-world", "abc123")
    assert context.repository_owner == "octo"
    assert context.repository_name == "hello-world"
    assert context.head_sha == "abc123"
    with pytest.raises(ValidationError):
        context.head_sha = "def456"  # type: ignore[misc]


@pytest.mark.parametrize(
    ("slug", "sha"),
    [("octo", "abc123"), ("octo/hello/world", "abc123"), ("octo/hello", "")],
)
def test_trigger_context_invalid(slug: str, sha: str) -> None:
    with pytest.raises(ConfigurationError):
        TriggerContext.from_repository_slug(slug, sha)


def test_diagnostic_rejects_inverted_range() -> None:
    with pytest.raises(ValidationError):
        Diagnostic(
            file_path="a.py",
            start_line=5,
            end_line=4,
            severity=Severity.ERROR,
            rule_name="F821",
            message="Undefined name",
        )
