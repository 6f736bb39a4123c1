"""No-op artifact store: used when ``artifact_store: none`` is configured.

Every upload fails with UploadError, so a compact comment honestly reports
that the full report could not be uploaded.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from reflens_core.errors import UploadError
from reflens_store.base import BaseArtifactStore

if TYPE_CHECKING:
    from pathlib import Path

    from reflens_core.models import UploadRecord


class NoOpArtifactStore(BaseArtifactStore):
    def upload(self, path: Path, name: str) -> UploadRecord:
        raise UploadError(name, "no artifact store configured")
