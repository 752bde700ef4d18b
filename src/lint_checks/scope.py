"""Decide which files a run has to lint."""

import glob
import logging
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Protocol

from pathspec import GitIgnoreSpec

from lint_checks.models import PullRequest, ScopeConfig, ScopeMode, TriggerContext

# build artifacts & tool caches, never linted, whatever the pattern says
IGNORED_DIRECTORIES: tuple[str, ...] = (
    ".git/",
    "node_modules/",
    "__pycache__/",
    ".venv/",
    "venv/",
    ".tox/",
    ".mypy_cache/",
    ".ruff_cache/",
    ".pytest_cache/",
    "build/",
    "dist/",
)


class RepositoryFiles(Protocol):
    """The code review platform queries needed to scope a commit."""

    def find_pull_request_for_commit(self, head_sha: str) -> PullRequest | None: ...

    def list_commit_files(self, head_sha: str) -> Sequence[str | None]: ...

    def list_pull_request_files(self, pr_number: int) -> Sequence[str | None]: ...


def _filter_ignored(paths: Iterable[str], ignored_globs: Iterable[str]) -> list[str]:
    ignore_spec = GitIgnoreSpec.from_lines(ignored_globs)
    return [path for path in paths if not ignore_spec.match_file(path)]


def _expand_pattern(pattern: str, root: Path) -> list[str]:
    """Expand a glob pattern below root, hidden files included, into sorted paths."""
    matches: set[str] = set()
    for match in glob.glob(
        pattern,
        root_dir=root,
        recursive=True,
        include_hidden=True,
    ):
        # patterns like "../*.py" must not reach outside of the working tree
        resolved = (root / match).resolve()
        if not resolved.is_relative_to(root):
            continue
        if resolved.is_file():
            matches.add(resolved.relative_to(root).as_posix())
    return sorted(matches)


def filter_by_suffix(
    filenames: Iterable[str | None],
    suffixes: Sequence[str],
) -> list[str]:
    """Keep the filenames with one of the given suffixes, dropping empty entries.

    Order is preserved, repeated names are only kept once.
    """
    selected: dict[str, None] = {}
    for filename in filenames:
        if filename and filename.endswith(tuple(suffixes)):
            selected.setdefault(filename, None)
    return list(selected)


def resolve_file_scope(
    context: TriggerContext,
    config: ScopeConfig,
    repo_api: RepositoryFiles,
    source_suffixes: Sequence[str],
    root: Path | None = None,
) -> tuple[str, ...]:
    """Resolve the files to lint for this run.

    In ``all`` mode, every file below ``root`` matching the configured pattern is in
    scope, whatever its suffix. In ``commit`` mode, the files changed by the open
    pull request whose head is the triggering commit are in scope, or, if there is
    no such pull request, the files changed by the commit alone. Those are narrowed
    down to the suffixes the analysis engine understands.

    :param context: the commit this run was triggered for
    :param config: the validated scope inputs
    :param repo_api: access to the commit & pull request file listings
    :param source_suffixes: file suffixes the analysis engine can lint
    :param root: the local working tree, defaults to the cwd
    :return: repository-relative paths, possibly none
    :raises HTTPError: if the pull request or file listings could not be fetched
    """
    root = (root or Path.cwd()).resolve()
    ignored_globs = (*IGNORED_DIRECTORIES, *config.ignored_globs)

    if config.mode == ScopeMode.ALL:
        # validated to be non-empty for this mode
        pattern = str(config.file_pattern)
        scope = _filter_ignored(_expand_pattern(pattern, root), ignored_globs)
        logging.info(
            "[lint-checks] Pattern %r matches %d file(s).",
            pattern,
            len(scope),
        )
        return tuple(scope)

    pull_request = repo_api.find_pull_request_for_commit(context.head_sha)
    if pull_request is None:
        logging.info(
            "[lint-checks] No open pull request for %s, linting the commit's files.",
            context.head_sha,
        )
        filenames = repo_api.list_commit_files(context.head_sha)
    else:
        logging.info(
            "[lint-checks] Linting the files of pull request #%d.",
            pull_request.number,
        )
        filenames = repo_api.list_pull_request_files(pull_request.number)

    scope = _filter_ignored(
        filter_by_suffix(filenames, source_suffixes),
        config.ignored_globs,
    )
    logging.info(
        "[lint-checks] %d of %d changed file(s) are in scope.",
        len(scope),
        len(filenames),
    )
    return tuple(scope)
