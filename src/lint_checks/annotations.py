"""Turn diagnostics into GitHub check annotations, batched as the API accepts them."""

from collections.abc import Iterable

from lint_checks.models import (
    AnnotationLevel,
    CheckAnnotation,
    CheckRunConclusion,
    Diagnostic,
    RunSummary,
    Severity,
)

# GitHub rejects check run updates carrying more annotations than this
MAX_ANNOTATIONS_PER_REQUEST = 50

SEVERITY_TO_ANNOTATION_LEVEL: dict[Severity, AnnotationLevel] = {
    Severity.WARNING: AnnotationLevel.WARNING,
    Severity.ERROR: AnnotationLevel.FAILURE,
    Severity.OFF: AnnotationLevel.NOTICE,
}


def to_annotation(diagnostic: Diagnostic) -> CheckAnnotation:
    """Convert a diagnostic into a GitHub check annotation.

    Diagnostic lines are zero-based while GitHub expects one-based lines, so both
    the start and the end line are shifted by one.
    """
    return CheckAnnotation(
        path=diagnostic.file_path,
        start_line=diagnostic.start_line + 1,
        end_line=diagnostic.end_line + 1,
        annotation_level=SEVERITY_TO_ANNOTATION_LEVEL.get(
            diagnostic.severity,
            AnnotationLevel.NOTICE,
        ),
        title=diagnostic.rule_name,
        message=diagnostic.message,
    )


def batch_annotations(
    diagnostics: Iterable[Diagnostic],
    batch_size: int = MAX_ANNOTATIONS_PER_REQUEST,
) -> list[list[CheckAnnotation]]:
    """Split the annotations for the given diagnostics into API-sized batches.

    :param diagnostics: diagnostics in reporting order
    :param batch_size: maximum annotations per batch, at most 50
    :return: batches in input order, the last one possibly shorter, none if empty
    :raises ValueError: if the batch size is outside of what GitHub accepts
    """
    if not 1 <= batch_size <= MAX_ANNOTATIONS_PER_REQUEST:
        msg = (
            f"batch_size must be between 1 and {MAX_ANNOTATIONS_PER_REQUEST}, "
            f"got {batch_size}"
        )
        raise ValueError(msg)
    batches: list[list[CheckAnnotation]] = []
    buffer: list[CheckAnnotation] = []
    for diagnostic in diagnostics:
        buffer.append(to_annotation(diagnostic))
        if len(buffer) == batch_size:
            batches.append(buffer)
            buffer = []
    if buffer:
        batches.append(buffer)
    return batches


def get_conclusion(summary: RunSummary) -> CheckRunConclusion:
    """Derive the verdict of a run from its final counts.

    Any error fails the run, warnings and notices alone never do.
    """
    if summary.error_count > 0:
        return CheckRunConclusion.FAILURE
    return CheckRunConclusion.SUCCESS


def format_summary(summary: RunSummary) -> str:
    return f"{summary.error_count} errors\n{summary.warning_count} warnings"
