from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path

from github import Github

logger = logging.getLogger(__name__)

PULL_REQUEST_EVENTS = ("pull_request", "pull_request_target")


@dataclass(frozen=True)
class ComparisonContext:
    """The two revisions to compare and the PR to comment on."""

    base_sha: str
    head_sha: str
    pr_number: int


def get_repo(repo_name: str, token: str):
    return Github(token).get_repo(repo_name)


def get_issue(repo, pr_number: int):
    # PR conversation comments live on the issue side of the API.
    return repo.get_issue(pr_number)


def is_pull_request_event(event_name: str | None) -> bool:
    return event_name in PULL_REQUEST_EVENTS


def load_event_payload(event_path: str | None) -> dict:
    """Read the webhook payload GitHub Actions writes to GITHUB_EVENT_PATH."""
    if not event_path:
        return {}
    path = Path(event_path)
    if not path.exists():
        logger.warning("Event payload %s does not exist", event_path)
        return {}
    with open(path, encoding="utf-8") as f:
        return json.load(f) or {}


def context_from_payload(payload: dict) -> ComparisonContext | None:
    """Build a ComparisonContext from a pull_request event payload, or None."""
    pr = payload.get("pull_request")
    if not pr:
        return None
    try:
        return ComparisonContext(
            base_sha=pr["base"]["sha"],
            head_sha=pr["head"]["sha"],
            pr_number=int(pr["number"]),
        )
    except (KeyError, TypeError, ValueError):
        logger.warning("Pull request payload is missing base/head SHAs or a number")
        return None


def find_matching_comment(issue, body: str):
    """Return an existing comment on ``issue`` whose body is exactly ``body``."""
    for comment in issue.get_comments():
        if (comment.body or "") == body:
            return comment
    return None
