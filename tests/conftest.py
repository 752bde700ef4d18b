"""Shared fixtures for the lint-checks tests."""

# ruff: noqa: D103, INP001

import os
from typing import Any
from unittest.mock import MagicMock

import pytest

from lint_checks.models import Diagnostic, Severity, TriggerContext


@pytest.fixture(autouse=True)
def _clean_action_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep inputs of a surrounding GitHub Actions job out of the tests."""
    for name in list(os.environ):
        if name.startswith(("INPUT_", "GH_APP_", "GH_PRIVATE_KEY")):
            monkeypatch.delenv(name)


@pytest.fixture
def context() -> TriggerContext:
    return TriggerContext(
        repository_owner="octo",
        repository_name="hello-world",
        head_sha="abc123",
    )


def make_response(
    json_data: Any,  # noqa: ANN401
    links: dict[str, dict[str, str]] | None = None,
) -> MagicMock:
    """Mimic a successful requests.Response."""
    response = MagicMock()
    response.json.return_value = json_data
    response.links = links or {}
    response.raise_for_status.return_value = None
    return response


def make_diagnostic(
    line: int = 0,
    severity: Severity = Severity.WARNING,
    file_path: str = "src/app.py",
    rule_name: str = "E501",
) -> Diagnostic:
    return Diagnostic(
        file_path=file_path,
        start_line=line,
        end_line=line,
        severity=severity,
        rule_name=rule_name,
        message=f"{rule_name} on line {line}",
    )
