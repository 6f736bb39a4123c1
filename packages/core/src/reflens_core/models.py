"""Data carried between the stages of a run.

Kept free of any GitHub or subprocess knowledge so the store layer can
import UploadRecord without pulling in the orchestrator.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

# Report formats understood by the analyzer executable.
FORMAT_JSON = "json"
FORMAT_HTML = "html"
FORMAT_MARKDOWN = "markdown"

DIFF_FORMATS = (FORMAT_JSON, FORMAT_HTML, FORMAT_MARKDOWN)
ANALYZE_FORMATS = (FORMAT_JSON, FORMAT_HTML)


@dataclass(frozen=True)
class Report:
    """A single-revision analysis report written by the analyzer."""

    path: Path
    format: str
    revision: str | None = None  # None when analysing the tree as-is


@dataclass(frozen=True)
class DiffArtifact:
    """A diff between two reports, in one output format."""

    path: Path
    format: str
    base: Path
    head: Path


@dataclass
class StageResult:
    """Outcome of an optional stage that may fail without failing the run."""

    name: str
    ok: bool
    path: Path | None = None
    error: str | None = None


@dataclass
class UploadRecord:
    """Whether a file made it into the artifact store.

    ``url`` is the link a comment may reference; it is None when the store
    has nothing linkable (local stores outside of Actions, failed uploads).
    """

    name: str
    size: int = 0
    success: bool = False
    url: str | None = None
    error: str | None = None
