"""Utility functions to help interface with the GitHub checks & pulls APIs."""

import logging
import time
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any

import jwt
from requests import Response, get, patch, post

from lint_checks.annotations import format_summary, get_conclusion
from lint_checks.errors import CheckRunStateError
from lint_checks.models import (
    CheckAnnotation,
    CheckRunConclusion,
    CheckRunOutput,
    CheckRunStatus,
    PullRequest,
    RunSummary,
    TriggerContext,
)

DEFAULT_API_URL = "https://api.github.com"
ACCEPT_JSON = "application/vnd.github+json"
FILES_PER_PAGE = 100


def _get_auth_headers(token: str, accept_type: str = ACCEPT_JSON) -> dict[str, str]:
    return {
        "Accept": f"{accept_type}",
        "Authorization": f"Bearer {token}",
    }


def _gen_github_timestamp() -> str:
    """Generate a timestamp for the current moment in the GitHub-expected format."""
    return datetime.now().astimezone().replace(microsecond=0).isoformat()


class AppInstallation:
    """Local installation of a GitHub app, identified by App ID and Installation ID."""

    def __init__(
        self,
        app_id: str,
        app_installation_id: str,
        github_base_url: str = DEFAULT_API_URL,
    ) -> None:
        self.app_id = app_id
        self.app_installation_id = app_installation_id
        self.github_base_url = github_base_url.rstrip("/")

    def _generate_app_jwt_from_pem(
        self,
        pem_filepath: Path,
        ttl_seconds: int = 600,
    ) -> str:
        with pem_filepath.open("rb") as pem_file:
            priv_key = pem_file.read()
        now = int(time.time())
        jwt_payload = {
            "iat": now,
            "exp": now + ttl_seconds,
            "iss": self.app_id,
        }
        return str(jwt.encode(jwt_payload, priv_key, algorithm="RS256"))

    def authenticate(self, app_privkey_pem: Path, timeout: int = 10) -> str:
        """Authenticate this App installation with GitHub and get an access token.

        :param app_privkey_pem: private key for this app in PEM format
        :param timeout: request timeout in seconds, optional, defaults to 10
        :return: the GitHub App installation access token
        """
        app_jwt: str = self._generate_app_jwt_from_pem(app_privkey_pem)
        url: str = (
            f"{self.github_base_url}/app/installations/{self.app_installation_id}"
            "/access_tokens"
        )
        response: Response = post(
            url,
            headers=_get_auth_headers(app_jwt),
            timeout=timeout,
        )
        response.raise_for_status()
        return str(response.json().get("token"))


class GitHubRepository:
    """Read-only queries about the commits and pull requests of one repository."""

    def __init__(
        self,
        context: TriggerContext,
        token: str,
        api_url: str = DEFAULT_API_URL,
        timeout: int = 10,
    ) -> None:
        self.repo_url = (
            f"{api_url.rstrip('/')}/repos/"
            f"{context.repository_owner}/{context.repository_name}"
        )
        self.headers = _get_auth_headers(token)
        self.timeout = timeout

    def _get_paginated(
        self,
        url: str,
        params: dict[str, Any] | None = None,
    ) -> Iterator[Any]:
        """Yield each page's json, following the ``Link: rel="next"`` header."""
        next_url: str | None = url
        while next_url:
            response: Response = get(
                next_url,
                params=params,
                headers=self.headers,
                timeout=self.timeout,
            )
            response.raise_for_status()
            yield response.json()
            next_url = response.links.get("next", {}).get("url")
            # the next link already carries the query string
            params = None

    def find_pull_request_for_commit(self, head_sha: str) -> PullRequest | None:
        """Find the open pull request whose head is the given commit, if any.

        If several open pull requests share this head, the most recently updated
        one is used.

        :param head_sha: the commit sha the run was triggered for
        :return: the matching pull request, or None for e.g. a first push on a branch
        :raises HTTPError: in case the GitHub API could not be queried
        """
        candidates: list[PullRequest] = [
            PullRequest(
                number=pull["number"],
                head_sha=pull["head"]["sha"],
                state=pull["state"],
                updated_at=pull.get("updated_at") or "",
            )
            for page in self._get_paginated(
                f"{self.repo_url}/commits/{head_sha}/pulls",
                {"per_page": FILES_PER_PAGE},
            )
            for pull in page
            if pull.get("state") == "open" and pull["head"]["sha"] == head_sha
        ]
        if not candidates:
            return None
        candidates.sort(key=lambda pull: pull.updated_at, reverse=True)
        if len(candidates) > 1:
            logging.warning(
                "[lint-checks] Commit %s is the head of %d open pull requests (%s), "
                "using the most recently updated one, #%d.",
                head_sha,
                len(candidates),
                ", ".join(f"#{pull.number}" for pull in candidates),
                candidates[0].number,
            )
        return candidates[0]

    def list_commit_files(self, head_sha: str) -> list[str | None]:
        """List the files touched by a single commit, removed files excluded."""
        return [
            file_entry.get("filename")
            for page in self._get_paginated(
                f"{self.repo_url}/commits/{head_sha}",
                {"per_page": FILES_PER_PAGE},
            )
            for file_entry in page.get("files") or []
            if file_entry.get("status") != "removed"
        ]

    def list_pull_request_files(self, pr_number: int) -> list[str | None]:
        """List the files touched across all commits of a pull request."""
        return [
            file_entry.get("filename")
            for page in self._get_paginated(
                f"{self.repo_url}/pulls/{pr_number}/files",
                {"per_page": FILES_PER_PAGE},
            )
            for file_entry in page
            if file_entry.get("status") != "removed"
        ]


class CheckRunReporter:
    """Handler to start, annotate & finish an individual GitHub Checks run.

    A run moves from ``queued``/``in_progress`` to ``completed`` exactly once.
    Every request is sent sequentially and never retried.
    """

    def __init__(
        self,
        context: TriggerContext,
        token: str,
        check_name: str = "Linter",
        api_url: str = DEFAULT_API_URL,
        timeout: int = 10,
    ) -> None:
        self.context = context
        self.check_name = check_name
        self.repo_url = (
            f"{api_url.rstrip('/')}/repos/"
            f"{context.repository_owner}/{context.repository_name}"
        )
        self.headers = _get_auth_headers(token)
        self.timeout = timeout
        self.current_run_id: str | None = None
        self.status: CheckRunStatus | None = None

    @property
    def is_completed(self) -> bool:
        return self.status == CheckRunStatus.COMPLETED

    def _ensure_open(self) -> None:
        if self.current_run_id is None:
            msg = "No check run has been started yet."
            raise CheckRunStateError(msg)
        if self.is_completed:
            msg = f"Check run {self.current_run_id} is already completed."
            raise CheckRunStateError(msg)

    def start_check_run(
        self,
        status: CheckRunStatus = CheckRunStatus.IN_PROGRESS,
    ) -> str:
        """Start a run of this check for the head commit of the trigger context.

        :param status: initial status, either queued or in_progress
        :return: the id GitHub assigned to the new check run
        :raises HTTPError: in case the GitHub API could not start the check run
        """
        if self.current_run_id is not None:
            msg = f"Check run {self.current_run_id} was already started."
            raise CheckRunStateError(msg)
        if status == CheckRunStatus.COMPLETED:
            msg = "A check run cannot be started as completed."
            raise CheckRunStateError(msg)
        json_payload: dict[str, str] = {
            "name": self.check_name,
            "head_sha": self.context.head_sha,
            "status": status.value,
        }
        if status == CheckRunStatus.IN_PROGRESS:
            json_payload["started_at"] = _gen_github_timestamp()
        response: Response = post(
            f"{self.repo_url}/check-runs",
            json=json_payload,
            headers=self.headers,
            timeout=self.timeout,
        )
        response.raise_for_status()
        self.current_run_id = str(response.json().get("id"))
        self.status = status
        logging.info(
            "[lint-checks] Started check run %s (%s) for %s.",
            self.current_run_id,
            self.check_name,
            self.context.head_sha,
        )
        return self.current_run_id

    def update_check_run(
        self,
        output: CheckRunOutput,
        conclusion: CheckRunConclusion | None = None,
    ) -> None:
        """Update the current check run, completing it if a conclusion is given.

        GitHub appends the annotations of every update to the run, so each call
        should only carry the annotations not sent before.

        :param output: title, summary and (at most 50) annotations for this update
        :param conclusion: if set, the run is completed with this conclusion
        :raises HTTPError: in case the GitHub API rejected the update
        """
        self._ensure_open()
        json_payload: dict[str, Any] = {
            "name": self.check_name,
            "output": output.model_dump(mode="json", exclude_none=True),
        }
        if conclusion is None:
            json_payload["status"] = CheckRunStatus.IN_PROGRESS.value
        else:
            json_payload["status"] = CheckRunStatus.COMPLETED.value
            json_payload["conclusion"] = conclusion.value
            json_payload["completed_at"] = _gen_github_timestamp()
        response: Response = patch(
            f"{self.repo_url}/check-runs/{self.current_run_id}",
            json=json_payload,
            headers=self.headers,
            timeout=self.timeout,
        )
        response.raise_for_status()
        self.status = (
            CheckRunStatus.IN_PROGRESS if conclusion is None else CheckRunStatus.COMPLETED
        )

    def finish_check_run(
        self,
        output: CheckRunOutput,
        conclusion: CheckRunConclusion,
    ) -> None:
        """Finish the currently running check run.

        :param output: the final output of this check run
        :param conclusion: the overall verdict to be fed back, e.g. for PR approval
        """
        self.update_check_run(output, conclusion)
        logging.info(
            "[lint-checks] Finished check run %s with conclusion %s.",
            self.current_run_id,
            conclusion.value,
        )

    def report(
        self,
        summary: RunSummary,
        batches: Sequence[Sequence[CheckAnnotation]],
        title: str,
    ) -> CheckRunConclusion:
        """Post all annotation batches and complete the run.

        The conclusion is derived once from the final summary. All but the last
        batch are sent as intermediate updates without a conclusion, the last
        batch completes the run. Without any batch, a single completing update
        without an annotations field is sent.

        :param summary: counts over all diagnostics of this run
        :param batches: annotations, pre-split into batches the API accepts
        :param title: title of the check run output
        :return: the conclusion the run was completed with
        """
        conclusion = get_conclusion(summary)
        summary_text = format_summary(summary)
        last_index = len(batches) - 1
        for index, batch in enumerate(batches):
            output = CheckRunOutput(
                title=title,
                summary=summary_text,
                annotations=list(batch),
            )
            if index < last_index:
                logging.info(
                    "[lint-checks] Sending annotation batch %d/%d.",
                    index + 1,
                    len(batches),
                )
                self.update_check_run(output)
            else:
                self.finish_check_run(output, conclusion)
        if not batches:
            self.finish_check_run(
                CheckRunOutput(title=title, summary=summary_text),
                conclusion,
            )
        return conclusion


@contextmanager
def open_check_run(
    reporter: CheckRunReporter,
    status: CheckRunStatus = CheckRunStatus.IN_PROGRESS,
) -> Iterator[CheckRunReporter]:
    """Start a check run and guarantee it is completed when the block exits.

    An exception escaping the block completes the run as a failure carrying the
    error message, then propagates. A block that exits cleanly without having
    completed the run completes it as neutral.
    """
    reporter.start_check_run(status)
    try:
        yield reporter
    except BaseException as exc:
        if not reporter.is_completed:
            try:
                reporter.finish_check_run(
                    CheckRunOutput(
                        title=f"{reporter.check_name} failed",
                        summary=f"Action failed with error {exc}",
                    ),
                    CheckRunConclusion.FAILURE,
                )
            except Exception:
                logging.exception(
                    "[lint-checks] Could not complete check run %s after an error.",
                    reporter.current_run_id,
                )
        raise
    if not reporter.is_completed:
        logging.warning(
            "[lint-checks] Check run %s was not completed, closing it as neutral.",
            reporter.current_run_id,
        )
        reporter.finish_check_run(
            CheckRunOutput(
                title=f"{reporter.check_name} reported no results",
                summary="The run ended without reporting any results.",
            ),
            CheckRunConclusion.NEUTRAL,
        )
