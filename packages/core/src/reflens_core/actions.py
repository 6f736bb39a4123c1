"""GitHub Actions workflow-command helpers."""

from __future__ import annotations

import logging
import os
import sys

logger = logging.getLogger(__name__)


def is_github_actions() -> bool:
    return os.environ.get("GITHUB_ACTIONS") == "true"


def set_output(name: str, value: str) -> None:
    """Expose ``name=value`` as a step output; logged only outside of Actions."""
    logger.info("Output %s=%s", name, value)
    output_file = os.environ.get("GITHUB_OUTPUT")
    if not output_file:
        return
    with open(output_file, "a", encoding="utf-8") as f:
        f.write(f"{name}={value}\n")


def set_failed(message: str) -> None:
    """Annotate the workflow run with an error. The caller sets the exit code."""
    if is_github_actions():
        # Workflow commands must be single-line; encode as the runner expects.
        escaped = message.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")
        print(f"::error::{escaped}", file=sys.stdout, flush=True)
