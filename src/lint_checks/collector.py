"""Run the analysis engine over the files in scope and count what it finds."""

import logging
from collections.abc import Iterable, Sequence
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from lint_checks.errors import CollectionError
from lint_checks.models import Diagnostic, RunSummary, Severity
from lint_checks.sources import DiagnosticSource


class CollectionResult(BaseModel):
    """All diagnostics of a run, in file scope order, and their counts."""

    model_config = ConfigDict(frozen=True)

    diagnostics: tuple[Diagnostic, ...]
    summary: RunSummary


def summarize(diagnostics: Iterable[Diagnostic]) -> RunSummary:
    """Count the given diagnostics by severity."""
    error_count = warning_count = total = 0
    for diagnostic in diagnostics:
        total += 1
        if diagnostic.severity == Severity.ERROR:
            error_count += 1
        elif diagnostic.severity == Severity.WARNING:
            warning_count += 1
    return RunSummary(
        error_count=error_count,
        warning_count=warning_count,
        failure_count=total,
    )


def collect_diagnostics(
    scope: Sequence[str],
    rule_config_path: Path,
    source: DiagnosticSource,
    root: Path | None = None,
) -> CollectionResult:
    """Lint every file in scope, one after another.

    Any file that cannot be read or configured aborts the whole collection, so a
    partially analyzed scope can never pass a check that should have failed.

    :param scope: repository-relative paths, in the order they should be reported
    :param rule_config_path: path used to locate each file's rule configuration
    :param source: the analysis engine
    :param root: directory the scope paths are relative to, defaults to the cwd
    :raises CollectionError: if any file in scope cannot be processed
    """
    root = root or Path.cwd()
    diagnostics: list[Diagnostic] = []
    for file_path in scope:
        try:
            contents = (root / file_path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            msg = f"Could not read {file_path}: {exc}"
            raise CollectionError(msg) from exc
        rule_set = source.configure(rule_config_path, Path(file_path))
        file_diagnostics = source.analyze(file_path, contents, rule_set)
        logging.debug(
            "[lint-checks] %s: %d diagnostic(s).",
            file_path,
            len(file_diagnostics),
        )
        diagnostics.extend(file_diagnostics)

    summary = summarize(diagnostics)
    logging.info(
        "[lint-checks] Linted %d file(s): %d error(s), %d warning(s), %d total.",
        len(scope),
        summary.error_count,
        summary.warning_count,
        summary.failure_count,
    )
    return CollectionResult(diagnostics=tuple(diagnostics), summary=summary)
