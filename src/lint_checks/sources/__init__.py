"""Analysis engines able to produce diagnostics for single files."""

from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

from pydantic import BaseModel, ConfigDict

from lint_checks.models import Diagnostic


class RuleSet(BaseModel):
    """Effective rule configuration for one file."""

    model_config = ConfigDict(frozen=True)

    config_path: Path
    error_rules: tuple[str, ...] = ()


class DiagnosticSource(Protocol):
    """An analysis engine, treated as a black box returning diagnostics."""

    name: str
    file_suffixes: tuple[str, ...]

    def configure(self, config_path: Path, file_path: Path) -> RuleSet:
        """Resolve the rule configuration in effect for the given file."""
        ...

    def analyze(
        self,
        file_path: str,
        contents: str,
        rule_set: RuleSet,
    ) -> Sequence[Diagnostic]:
        """Lint the contents of one file, returning zero-based diagnostics."""
        ...
