"""Provides the entry point of the lint-checks GitHub Action.

All options can be given as flags or through environment variables, so that the
action inputs (``INPUT_<NAME>``) and the default GitHub Actions environment
(``GITHUB_REPOSITORY``, ``GITHUB_SHA``, ...) are picked up without any flags.
"""

import logging
import sys
from argparse import Namespace
from pathlib import Path

from configargparse import ArgumentParser

from lint_checks.annotations import batch_annotations
from lint_checks.collector import collect_diagnostics
from lint_checks.errors import ConfigurationError
from lint_checks.github_api import (
    DEFAULT_API_URL,
    AppInstallation,
    CheckRunReporter,
    GitHubRepository,
    open_check_run,
)
from lint_checks.models import CheckRunConclusion, ScopeConfig, TriggerContext
from lint_checks.scope import resolve_file_scope
from lint_checks.sources.ruff import DEFAULT_ERROR_RULES, RuffDiagnosticSource


def build_parser() -> ArgumentParser:
    argparser = ArgumentParser(
        prog="lint-checks",
        description="Lint the files of a commit, pull request or glob pattern and "
        "publish the results as annotations of a GitHub check run.",
    )
    argparser.add_argument(
        "--lint-file",
        type=str,
        env_var="INPUT_LINTFILE",
        help="Rule configuration file. A file of the same name closer to a linted "
        "file takes precedence for that file.",
    )
    argparser.add_argument(
        "--token",
        type=str,
        env_var="INPUT_TOKEN",
        help="GitHub token allowed to create check runs. Alternatively, provide "
        "GitHub App credentials via --app-id, --app-install-id and --pem-path.",
    )
    argparser.add_argument(
        "--pattern",
        type=str,
        env_var="INPUT_PATTERN",
        help="Glob pattern selecting the files to lint. Required for mode 'all'.",
    )
    argparser.add_argument(
        "--mode",
        type=str,
        env_var="INPUT_MODE",
        help="'all' to lint every file matching --pattern, or 'commit' (default) to "
        "lint the files changed by the commit or its pull request.",
    )
    argparser.add_argument(
        "--ignored-globs",
        type=str,
        env_var="INPUT_IGNOREDGLOBS",
        help="Comma separated, gitignore-style globs of files never to lint.",
    )
    argparser.add_argument(
        "--error-rules",
        type=str,
        env_var="INPUT_ERRORRULES",
        default=",".join(DEFAULT_ERROR_RULES),
        help="Comma separated rule code prefixes reported as errors, failing the "
        "check run. All other rules are reported as warnings.",
    )
    argparser.add_argument(
        "--check-name",
        type=str,
        env_var="INPUT_CHECKNAME",
        default="Linter",
        help="A name for the check run. Will be shown on any respective GitHub PRs.",
    )
    argparser.add_argument(
        "--repository",
        type=str,
        env_var="GITHUB_REPOSITORY",
        help="Repository the check run belongs to, as owner/name.",
    )
    argparser.add_argument(
        "--sha",
        type=str,
        env_var="GITHUB_SHA",
        help="Revision/commit SHA hash that this check run is validating.",
    )
    argparser.add_argument(
        "--api-url",
        type=str,
        env_var="GITHUB_API_URL",
        default=DEFAULT_API_URL,
        help="Base URL of the GitHub REST API.",
    )
    argparser.add_argument(
        "--app-id",
        type=str,
        env_var="GH_APP_ID",
        help="ID of the GitHub App that is authorized to orchestrate Check Runs.",
    )
    argparser.add_argument(
        "--app-install-id",
        type=str,
        env_var="GH_APP_INSTALL_ID",
        help="ID of the repository's GitHub App installation used by the check.",
    )
    argparser.add_argument(
        "--pem-path",
        type=Path,
        env_var="GH_PRIVATE_KEY_PEM",
        help="Private key to authenticate as the GitHub App specified in --app-id.",
    )
    argparser.add_argument(
        "--log-level",
        type=str.upper,
        env_var="INPUT_LOGLEVEL",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Verbosity of the action log.",
    )
    return argparser


def split_list_input(value: str | None) -> list[str]:
    """Split a comma or newline separated action input into its items."""
    if not value:
        return []
    return [
        item.strip()
        for line in value.splitlines()
        for item in line.split(",")
        if item.strip()
    ]


def resolve_token(args: Namespace) -> str:
    """Use the given token, or authenticate as a GitHub App installation.

    :raises ConfigurationError: if neither a token nor App credentials are given
    """
    if args.token:
        return str(args.token)
    if args.app_id and args.app_install_id and args.pem_path:
        installation = AppInstallation(
            app_id=args.app_id,
            app_installation_id=args.app_install_id,
            github_base_url=args.api_url,
        )
        return installation.authenticate(args.pem_path)
    msg = "The token input is required (or GitHub App credentials)."
    raise ConfigurationError(msg)


def run(args: Namespace, root: Path | None = None) -> CheckRunConclusion:
    """Lint the files in scope and report them on a new check run.

    Inputs are validated before anything is sent to GitHub. Once the check run is
    created, it is always completed, as a failure if anything goes wrong.
    """
    scope_config = ScopeConfig.from_inputs(
        mode=args.mode,
        pattern=args.pattern,
        lint_file=args.lint_file,
        ignored_globs=split_list_input(args.ignored_globs),
    )
    context = TriggerContext.from_repository_slug(args.repository, args.sha)
    token = resolve_token(args)

    source = RuffDiagnosticSource(
        root=root,
        error_rules=tuple(split_list_input(args.error_rules)),
    )
    repo_api = GitHubRepository(context, token, api_url=args.api_url)
    reporter = CheckRunReporter(
        context,
        token,
        check_name=args.check_name,
        api_url=args.api_url,
    )

    with open_check_run(reporter):
        scope = resolve_file_scope(
            context,
            scope_config,
            repo_api,
            source.file_suffixes,
            root=root,
        )
        result = collect_diagnostics(
            scope,
            scope_config.rule_config_path,
            source,
            root=root,
        )
        return reporter.report(
            result.summary,
            batch_annotations(result.diagnostics),
            title=f"{source.name} Check Results",
        )


def set_failed(message: str) -> None:
    """Mark the action step as failed, with the message shown as an error."""
    logging.fatal("[lint-checks] %s", message)
    escaped = message.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")
    print(f"::error::{escaped}")  # noqa: T201


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=args.log_level, format="%(levelname)s %(message)s")
    try:
        conclusion = run(args)
    except Exception as exc:  # noqa: BLE001
        set_failed(f"Action failed with error {exc}")
        return 1
    logging.info("[lint-checks] Check run concluded with %s.", conclusion.value)
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
