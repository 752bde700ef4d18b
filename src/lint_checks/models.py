"""Model representation of lint run inputs and GitHub checks json structures."""

from enum import StrEnum
from pathlib import Path
from typing import Self

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from lint_checks.errors import ConfigurationError


class ScopeMode(StrEnum):
    """Which files a run is responsible for."""

    ALL = "all"
    COMMIT = "commit"


class Severity(StrEnum):
    """Severity of a single diagnostic, as reported by the analysis engine."""

    OFF = "off"
    WARNING = "warning"
    ERROR = "error"


class CheckRunStatus(StrEnum):
    """The lifecycle states of a check run."""

    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class CheckRunConclusion(StrEnum):
    """The valid conclusion states of a check run."""

    SUCCESS = "success"
    FAILURE = "failure"
    NEUTRAL = "neutral"
    CANCELLED = "cancelled"
    ACTION_REQUIRED = "action_required"


class AnnotationLevel(StrEnum):
    """The severity levels permitted by GitHub checks for each individual annotation."""

    NOTICE = "notice"
    WARNING = "warning"
    FAILURE = "failure"


class TriggerContext(BaseModel):
    """The commit a run was triggered for, as handed to us by the CI platform."""

    model_config = ConfigDict(frozen=True)

    repository_owner: str
    repository_name: str
    head_sha: str

    @classmethod
    def from_repository_slug(cls, slug: str, head_sha: str) -> "TriggerContext":
        """Build a context from an ``owner/name`` slug, e.g. ``$GITHUB_REPOSITORY``.

        :raises ConfigurationError: if the slug or sha is missing or malformed
        """
        owner, _, name = (slug or "").partition("/")
        if not owner or not name or "/" in name:
            msg = f"Repository must be given as 'owner/name', got {slug!r}."
            raise ConfigurationError(msg)
        if not head_sha:
            msg = "No head commit sha available for this run."
            raise ConfigurationError(msg)
        return cls(repository_owner=owner, repository_name=name, head_sha=head_sha)


class ScopeConfig(BaseModel):
    """User inputs deciding which files get linted."""

    model_config = ConfigDict(frozen=True)

    mode: ScopeMode = ScopeMode.COMMIT
    file_pattern: str | None = None
    rule_config_path: Path
    ignored_globs: tuple[str, ...] = ()

    @model_validator(mode="after")
    def _pattern_required_for_all(self) -> Self:
        if self.mode == ScopeMode.ALL and not (self.file_pattern or "").strip():
            msg = "A file pattern is required when linting in 'all' mode."
            raise ValueError(msg)
        return self

    @classmethod
    def from_inputs(
        cls,
        mode: str | None,
        pattern: str | None,
        lint_file: str | Path | None,
        ignored_globs: list[str] | None = None,
    ) -> "ScopeConfig":
        """Validate raw action inputs into a scope configuration.

        :param mode: ``all`` or ``commit``, defaults to ``commit``
        :param pattern: glob pattern, only required for ``all``
        :param lint_file: path used to locate rule configuration files
        :param ignored_globs: optional gitignore-style globs excluded from the scope
        :raises ConfigurationError: on an unknown mode or missing required input
        """
        raw_mode = (mode or "").strip() or ScopeMode.COMMIT.value
        try:
            scope_mode = ScopeMode(raw_mode)
        except ValueError:
            valid = ", ".join(m.value for m in ScopeMode)
            msg = f"Unknown mode {mode!r}, expected one of: {valid}."
            raise ConfigurationError(msg) from None
        if not lint_file:
            msg = "The lintFile input is required."
            raise ConfigurationError(msg)
        try:
            return cls(
                mode=scope_mode,
                file_pattern=pattern or None,
                rule_config_path=Path(lint_file),
                ignored_globs=tuple(ignored_globs or ()),
            )
        except ValidationError as exc:
            msg = "; ".join(err["msg"] for err in exc.errors())
            raise ConfigurationError(msg) from exc


class Diagnostic(BaseModel):
    """One finding of the analysis engine. Line numbers are 0-based."""

    model_config = ConfigDict(frozen=True)

    file_path: str
    start_line: int = Field(ge=0)
    end_line: int = Field(ge=0)
    severity: Severity
    rule_name: str
    message: str

    @model_validator(mode="after")
    def _end_not_before_start(self) -> Self:
        if self.end_line < self.start_line:
            msg = f"end_line {self.end_line} is before start_line {self.start_line}"
            raise ValueError(msg)
        return self


class RunSummary(BaseModel):
    """Aggregate counts over all diagnostics of a run."""

    model_config = ConfigDict(frozen=True)

    error_count: int = 0
    warning_count: int = 0
    failure_count: int = 0


class CheckAnnotation(BaseModel):
    """Models the json expected by GitHub checks for each individual annotation."""

    path: str
    start_line: int
    end_line: int
    annotation_level: AnnotationLevel
    message: str
    title: str | None = None
    start_column: int | None = None
    end_column: int | None = None
    raw_details: str | None = None


class CheckRunOutput(BaseModel):
    """The json format expected for the output of a Checks run."""

    title: str
    summary: str
    annotations: list[CheckAnnotation] | None = None


class PullRequest(BaseModel):
    """The few pull request fields needed to pick the files of a run."""

    number: int
    head_sha: str
    state: str = "open"
    updated_at: str = ""
