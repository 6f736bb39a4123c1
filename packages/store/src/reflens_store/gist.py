"""GistArtifactStore: linkable report artifacts via secret GitHub Gists.

Each upload creates one secret Gist holding the file. Unlike workflow-run
artifacts, a Gist has a stable URL, so a PR comment can link straight to the
HTML report rather than to the run page.

The built-in Actions GITHUB_TOKEN has no Gist scope: use a PAT with the
``gist`` scope stored as a repository secret.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from github import Github, GithubException, InputFileContent

from reflens_core.errors import UploadError
from reflens_core.models import UploadRecord
from reflens_store.base import BaseArtifactStore

logger = logging.getLogger(__name__)


class GistArtifactStore(BaseArtifactStore):
    def __init__(self, token: str, description: str = "StructuraLens report"):
        self._gh = Github(token)
        self._description = description
        self._links: dict[str, str] = {}

    def upload(self, path: Path, name: str) -> UploadRecord:
        try:
            content = Path(path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise UploadError(name, f"could not read {path}: {e}") from e

        try:
            gist = self._gh.get_user().create_gist(
                False,
                {name: InputFileContent(content)},
                f"{self._description}: {name}",
            )
        except GithubException as e:
            detail = f"{type(e).__name__} (HTTP {e.status})"
            if os.environ.get("GITHUB_ACTIONS") == "true" and e.status in (403, 404):
                detail += "; the built-in GITHUB_TOKEN does not have Gist permissions"
            raise UploadError(name, detail) from e

        self._links[name] = gist.html_url
        logger.debug("Created gist %s for %s", gist.id, name)
        return UploadRecord(name=name, size=len(content.encode("utf-8")), success=True, url=gist.html_url)

    def link(self, name: str) -> str | None:
        return self._links.get(name)
