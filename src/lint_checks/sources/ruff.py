"""Diagnostic source running ruff on single files and parsing its json output."""

import logging
import subprocess
from pathlib import Path

from pydantic import BaseModel, TypeAdapter, ValidationError
from ruff.__main__ import find_ruff_bin

from lint_checks.errors import CollectionError
from lint_checks.models import Diagnostic, Severity
from lint_checks.sources import RuleSet

# flake8's "hard error" selection: syntax errors, invalid comparisons & undefined names
DEFAULT_ERROR_RULES: tuple[str, ...] = ("E9", "F63", "F7", "F82")


class RuffLocation(BaseModel):
    """A 1-based row & column position as reported by ruff."""

    row: int
    column: int


class RuffViolation(BaseModel):
    """One entry of ruff's json output. Syntax errors come without a code."""

    code: str | None = None
    message: str
    filename: str
    location: RuffLocation
    end_location: RuffLocation
    url: str | None = None


_violations_adapter = TypeAdapter(list[RuffViolation])


class RuffDiagnosticSource:
    """Lint python files with ruff, one file per invocation."""

    name = "Ruff"
    file_suffixes: tuple[str, ...] = (".py", ".pyi")

    def __init__(
        self,
        root: Path | None = None,
        error_rules: tuple[str, ...] = DEFAULT_ERROR_RULES,
        timeout: int = 60,
    ) -> None:
        self.root = (root or Path.cwd()).resolve()
        self.error_rules = tuple(rule.strip() for rule in error_rules if rule.strip())
        self.timeout = timeout

    def configure(self, config_path: Path, file_path: Path) -> RuleSet:
        """Find the config file closest to the given file.

        A file named like ``config_path`` in a directory between the linted file and
        the directory of ``config_path`` wins, the closest one first. Otherwise, the
        given ``config_path`` itself is used.

        :raises CollectionError: if no configuration file exists at all
        """
        config_path = Path(config_path)
        configured = (self.root / config_path).resolve()
        lint_dir = configured.parent
        directory = (self.root / file_path).resolve().parent
        for candidate_dir in (directory, *directory.parents):
            # only directories below the configured one may override it
            if candidate_dir == lint_dir or not candidate_dir.is_relative_to(lint_dir):
                break
            candidate = candidate_dir / config_path.name
            if candidate.is_file():
                return RuleSet(config_path=candidate, error_rules=self.error_rules)
        if configured.is_file():
            return RuleSet(config_path=configured, error_rules=self.error_rules)
        msg = f"No rule configuration {config_path} found for {file_path}."
        raise CollectionError(msg)

    def _severity(self, code: str | None, rule_set: RuleSet) -> Severity:
        if code is None or code.startswith(rule_set.error_rules):
            return Severity.ERROR
        return Severity.WARNING

    def analyze(
        self,
        file_path: str,
        contents: str,
        rule_set: RuleSet,
    ) -> list[Diagnostic]:
        """Run ruff on the given contents, as if they were stored at ``file_path``.

        :raises CollectionError: if ruff crashes or its output cannot be parsed
        """
        command = [
            find_ruff_bin(),
            "check",
            "--output-format",
            "json",
            "--exit-zero",
            "--no-cache",
            "--config",
            str(rule_set.config_path),
            "--stdin-filename",
            file_path,
            "-",
        ]
        try:
            process = subprocess.run(  # noqa: S603
                command,
                input=contents,
                capture_output=True,
                text=True,
                check=False,
                cwd=self.root,
                timeout=self.timeout,
            )
        except (OSError, subprocess.TimeoutExpired) as exc:
            msg = f"Could not run ruff on {file_path}: {exc}"
            raise CollectionError(msg) from exc
        if process.returncode != 0:
            msg = f"ruff failed on {file_path}: {process.stderr.strip()}"
            raise CollectionError(msg)
        try:
            violations = _violations_adapter.validate_json(process.stdout or "[]")
        except ValidationError as exc:
            msg = f"Unexpected ruff output for {file_path}: {exc}"
            raise CollectionError(msg) from exc

        diagnostics: list[Diagnostic] = []
        for violation in violations:
            # ruff rows are 1-based, diagnostics are 0-based
            start_line = max(violation.location.row - 1, 0)
            end_line = max(violation.end_location.row - 1, start_line)
            diagnostics.append(
                Diagnostic(
                    file_path=file_path,
                    start_line=start_line,
                    end_line=end_line,
                    severity=self._severity(violation.code, rule_set),
                    rule_name=violation.code or "syntax-error",
                    message=violation.message,
                ),
            )
        logging.debug(
            "[lint-checks] ruff reported %d issue(s) in %s.",
            len(diagnostics),
            file_path,
        )
        return diagnostics
