"""Tests for turning diagnostics into batched check run annotations."""

# ruff: noqa: S101, D103, INP001, PLR2004

import pytest
from conftest import make_diagnostic

from lint_checks.annotations import (
    MAX_ANNOTATIONS_PER_REQUEST,
    batch_annotations,
    format_summary,
    get_conclusion,
    to_annotation,
)
from lint_checks.models import (
    AnnotationLevel,
    CheckRunConclusion,
    Diagnostic,
    RunSummary,
    Severity,
)


@pytest.mark.parametrize(
    ("severity", "expected_level"),
    [
        (Severity.WARNING, AnnotationLevel.WARNING),
        (Severity.ERROR, AnnotationLevel.FAILURE),
        (Severity.OFF, AnnotationLevel.NOTICE),
    ],
)
def test_to_annotation_level(
    severity: Severity,
    expected_level: AnnotationLevel,
) -> None:
    annotation = to_annotation(make_diagnostic(severity=severity))
    assert annotation.annotation_level == expected_level


def test_to_annotation_shifts_both_lines() -> None:
    diagnostic = Diagnostic(
        file_path="src/app.py",
        start_line=4,
        end_line=6,
        severity=Severity.ERROR,
        rule_name="F821",
        message="Undefined name `foo`",
    )
    annotation = to_annotation(diagnostic)
    assert (annotation.start_line, annotation.end_line) == (5, 7)
    assert annotation.path == "src/app.py"
    assert annotation.title == "F821"
    assert annotation.message == "Undefined name `foo`"


@pytest.mark.parametrize(
    ("num_diagnostics", "expected_sizes"),
    [
        (0, []),
        (1, [1]),
        (50, [50]),
        (51, [50, 1]),
        (120, [50, 50, 20]),
    ],
)
def test_batch_annotations_sizes(
    num_diagnostics: int,
    expected_sizes: list[int],
) -> None:
    diagnostics = [make_diagnostic(line=i) for i in range(num_diagnostics)]
    batches = batch_annotations(diagnostics)
    assert [len(batch) for batch in batches] == expected_sizes


def test_batch_annotations_keeps_order_and_is_repeatable() -> None:
    diagnostics = [make_diagnostic(line=i) for i in range(75)]
    first = batch_annotations(diagnostics)
    second = batch_annotations(diagnostics)
    assert first == second
    lines = [annotation.start_line for batch in first for annotation in batch]
    assert lines == list(range(1, 76))


@pytest.mark.parametrize("batch_size", [0, MAX_ANNOTATIONS_PER_REQUEST + 1])
def test_batch_annotations_rejects_oversized_batches(batch_size: int) -> None:
    with pytest.raises(ValueError, match="batch_size"):
        batch_annotations([make_diagnostic()], batch_size=batch_size)


@pytest.mark.parametrize(
    ("summary", "expected"),
    [
        (RunSummary(), CheckRunConclusion.SUCCESS),
        (
            RunSummary(error_count=0, warning_count=3, failure_count=3),
            CheckRunConclusion.SUCCESS,
        ),
        (
            RunSummary(error_count=1, warning_count=0, failure_count=1),
            CheckRunConclusion.FAILURE,
        ),
        (
            RunSummary(error_count=1, warning_count=7, failure_count=8),
            CheckRunConclusion.FAILURE,
        ),
    ],
)
def test_get_conclusion(summary: RunSummary, expected: CheckRunConclusion) -> None:
    assert get_conclusion(summary) == expected


def test_format_summary() -> None:
    summary = RunSummary(error_count=2, warning_count=5, failure_count=7)
    assert format_summary(summary) == "2 errors\n5 warnings"
    assert format_summary(RunSummary()) == "0 errors\n0 warnings"
