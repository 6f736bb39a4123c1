"""Abstract artifact store interface.

An artifact store keeps files a PR comment cannot hold inline: the full
markdown report when it is too large, the HTML report the comment links to,
and the comment body itself when posting failed. The orchestrator depends on
BaseArtifactStore, not on a concrete backend.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path

    from reflens_core.models import UploadRecord


class BaseArtifactStore(ABC):
    """Pluggable persistence for report files.

    Implementations must be usable from CI where no interactive credentials
    exist: all auth happens via constructor arguments resolved at init time.
    """

    @abstractmethod
    def upload(self, path: Path, name: str) -> UploadRecord:
        """Persist ``path`` under ``name``.

        Raises UploadError on failure; a returned record always has success=True.
        """

    def link(self, name: str) -> str | None:
        """Return a URL a comment can use to reach ``name``, if one exists."""
        return None

    def close(self) -> None:
        """Release any resources held by the store.

        Default is a no-op so callers can always call close() safely.
        """
