"""LocalArtifactStore: stage files for the workflow's upload-artifact step.

Files are copied into a single directory (``.structuralens/artifacts`` by
default). A later ``actions/upload-artifact`` step publishes that directory
with the workflow run. GitHub has no direct URL for an individual artifact,
so links point at the run's artifacts section.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from reflens_core.errors import UploadError
from reflens_core.models import UploadRecord
from reflens_store.base import BaseArtifactStore

logger = logging.getLogger(__name__)


def run_artifacts_url(server_url: str | None, repository: str | None, run_id: str | None) -> str | None:
    if not repository or not run_id:
        return None
    server = (server_url or "https://github.com").rstrip("/")
    return f"{server}/{repository}/actions/runs/{run_id}#artifacts"


class LocalArtifactStore(BaseArtifactStore):
    def __init__(
        self,
        artifact_dir: str | Path = ".structuralens/artifacts",
        repository: str | None = None,
        run_id: str | None = None,
        server_url: str | None = None,
    ):
        self.artifact_dir = Path(artifact_dir)
        self._run_url = run_artifacts_url(server_url, repository, run_id)

    def upload(self, path: Path, name: str) -> UploadRecord:
        dest = self.artifact_dir / name
        try:
            self.artifact_dir.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(path, dest)
            size = dest.stat().st_size
        except OSError as e:
            raise UploadError(name, str(e)) from e
        logger.debug("Staged %s at %s", name, dest)
        return UploadRecord(name=name, size=size, success=True, url=self._run_url)

    def link(self, name: str) -> str | None:
        if not (self.artifact_dir / name).exists():
            return None
        return self._run_url
