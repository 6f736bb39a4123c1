"""Scoped revision switching for the shared working copy.

Comparative runs analyse two revisions of the same checkout one after the
other. RefSwitcher is the only thing allowed to move the working copy, and
``preserved()`` guarantees it ends up back on the revision it started from
no matter how the enclosing block exits.
"""

from __future__ import annotations

import logging
import subprocess
from contextlib import contextmanager
from typing import Iterator

from reflens_core.errors import CheckoutError, RefResolutionError
from reflens_core.utils.timing import timed

logger = logging.getLogger(__name__)


class RefSwitcher:
    def __init__(self, repo_root: str, git: str = "git"):
        self.repo_root = repo_root
        self._git = git
        self._switched = False

    def capture_current(self) -> str:
        """Return the SHA the working copy currently points at."""
        try:
            result = subprocess.run(
                [self._git, "rev-parse", "HEAD"],
                cwd=self.repo_root,
                capture_output=True,
                text=True,
            )
        except OSError as e:
            raise RefResolutionError(self.repo_root, str(e)) from e
        sha = result.stdout.strip()
        if result.returncode != 0 or not sha:
            raise RefResolutionError(self.repo_root, result.stderr.strip() or "git rev-parse returned no revision")
        return sha

    def checkout(self, revision: str) -> None:
        """Force the working copy to ``revision``, discarding local changes."""
        logger.info("Checking out ref %s", revision)
        self._switched = True
        self._force_checkout(revision)

    def restore(self, original: str) -> bool:
        """Put the working copy back on ``original``.

        Never raises: by the time this runs the process is on its way out and
        a restore failure must not mask whatever outcome came before it.
        """
        try:
            with timed(f"restore original ref {original}"):
                self._force_checkout(original)
        except CheckoutError as e:
            logger.warning("Failed to restore original ref: %s", e)
            return False
        self._switched = False
        return True

    @contextmanager
    def preserved(self) -> Iterator[str]:
        """Capture the current revision and restore it when the block exits.

        Restoration runs exactly once, on success, on any exception and on
        KeyboardInterrupt. If nothing inside the block checked anything out
        the working copy was never moved and the restore is skipped.
        """
        original = self.capture_current()
        logger.debug("Captured original ref %s", original)
        try:
            yield original
        finally:
            if self._switched:
                self.restore(original)
            else:
                logger.debug("Working copy never left %s; nothing to restore", original)

    def _force_checkout(self, revision: str) -> None:
        try:
            result = subprocess.run(
                [self._git, "checkout", "--force", revision],
                cwd=self.repo_root,
                capture_output=True,
                text=True,
            )
        except OSError as e:
            raise CheckoutError(revision, None, str(e)) from e
        if result.returncode != 0:
            raise CheckoutError(revision, result.returncode, result.stderr.strip())
