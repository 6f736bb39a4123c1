"""GitHub token resolution.

Resolution order (stops at first success):
  1. The action's ``github-token`` input (INPUT_GITHUB-TOKEN)
  2. GITHUB_TOKEN environment variable (CI / explicit override)
  3. `gh auth token` (GitHub CLI session, for local runs)
"""

from __future__ import annotations

import logging
import os
import subprocess

logger = logging.getLogger(__name__)

_INPUT_VARS = ("INPUT_GITHUB-TOKEN", "INPUT_GITHUB_TOKEN")


def resolve_github_token() -> str | None:
    """Return a GitHub token or None if no source is available.

    Never raises. Without a token the run still analyses and stages
    artifacts; it just cannot comment on the PR.
    """
    for var in (*_INPUT_VARS, "GITHUB_TOKEN"):
        token = os.environ.get(var, "").strip()
        if token:
            return token

    try:
        result = subprocess.run(
            ["gh", "auth", "token"],
            capture_output=True,
            text=True,
            timeout=5,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired):
        # gh is not installed or timed out.
        return None
    if result.returncode == 0 and result.stdout.strip():
        logger.debug("Resolved GitHub token via gh CLI session.")
        return result.stdout.strip()
    return None
