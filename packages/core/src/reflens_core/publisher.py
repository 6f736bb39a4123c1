"""Deliver the diff report to the pull request.

Two channels:
  - an issue comment on the PR, retried with exponential backoff;
  - the configured artifact store, used both for the files a comment links
    to and as the fallback when no comment could be posted.

Neither channel can fail the run. Callers get a PublishError (comment) or an
unsuccessful UploadRecord (artifact) and decide how to degrade.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

import requests
from github import GithubException

from reflens_core.errors import PublishError, UploadError
from reflens_core.gh.pull_request import find_matching_comment, get_issue
from reflens_core.models import UploadRecord
from reflens_core.utils.retry import DEFAULT_BACKOFF, DEFAULT_DELAY_MS, DEFAULT_RETRIES, retry

logger = logging.getLogger(__name__)


@dataclass
class CommentOutcome:
    comment_id: int | None
    url: str | None = None
    attempts: int = 1
    reused: bool = False  # an earlier attempt had already created the comment


class Publisher:
    def __init__(
        self,
        repo,
        store,
        retries: int = DEFAULT_RETRIES,
        delay_ms: int = DEFAULT_DELAY_MS,
        backoff: float = DEFAULT_BACKOFF,
        sleep: Callable[[float], None] | None = None,
    ):
        self.repo = repo
        self.store = store
        self.retries = retries
        self.delay_ms = delay_ms
        self.backoff = backoff
        self._sleep = sleep

    @property
    def can_comment(self) -> bool:
        return self.repo is not None

    def publish_comment(self, body: str, pr_number: int) -> CommentOutcome:
        """Post ``body`` on PR ``pr_number``, retrying transient failures.

        Before every retry the PR's comments are searched for one identical to
        ``body``: a request that timed out client-side may still have created
        the comment, and posting it again would duplicate it.
        """
        if self.repo is None:
            raise PublishError(None, "GitHub token not provided")

        attempts = 0

        def _attempt(attempt: int):
            nonlocal attempts
            attempts = attempt
            issue = get_issue(self.repo, pr_number)
            if attempt > 1:
                existing = find_matching_comment(issue, body)
                if existing is not None:
                    logger.info("Comment %s from an earlier attempt already exists", existing.id)
                    return existing, True
            return issue.create_comment(body), False

        kwargs = {"retries": self.retries, "delay_ms": self.delay_ms, "backoff": self.backoff}
        if self._sleep is not None:
            kwargs["sleep"] = self._sleep
        try:
            comment, reused = retry(_attempt, **kwargs)
        except GithubException as e:
            message = e.data.get("message", str(e)) if isinstance(e.data, dict) else str(e)
            raise PublishError(e.status, message) from e
        except requests.RequestException as e:
            raise PublishError(None, str(e)) from e

        return CommentOutcome(
            comment_id=getattr(comment, "id", None),
            url=getattr(comment, "html_url", None),
            attempts=attempts,
            reused=reused,
        )

    def upload_artifact(self, path: Path, name: str) -> UploadRecord:
        """Persist ``path`` to the artifact store; never raises."""
        try:
            record = self.store.upload(Path(path), name)
        except UploadError as e:
            logger.warning("Failed to upload artifact %s: %s", name, e.detail)
            return UploadRecord(name=name, success=False, error=e.detail)
        logger.info("Uploaded artifact %s (%d bytes).", record.name, record.size)
        return record

    def artifact_link(self, name: str) -> str | None:
        """URL a comment can use to point at an uploaded artifact, if the store has one."""
        return self.store.link(name)
