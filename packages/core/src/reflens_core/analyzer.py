"""Thin wrappers around the StructuraLens CLI.

The analyzer is an opaque executable:
    analyze <target> --format {json|html} --out <path>
    diff --base <a> --head <b> --format {json|html|markdown} --out <path> [--max-projects N]

Output is streamed straight to our own stdout/stderr so the CI log shows the
tool's progress as it happens.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

from reflens_core.errors import AnalysisExecutionError, DiffExecutionError
from reflens_core.models import ANALYZE_FORMATS, DIFF_FORMATS, FORMAT_MARKDOWN, DiffArtifact, Report

logger = logging.getLogger(__name__)


def run_cli(cli_path: str, args: list[str], cwd: str | Path) -> None:
    """Run the CLI and raise AnalysisExecutionError on any failure."""
    command = [str(cli_path), *args]
    logger.info("Running: %s", " ".join(command))
    try:
        result = subprocess.run(command, cwd=str(cwd))
    except OSError as e:
        raise AnalysisExecutionError(command, None, str(e)) from e
    if result.returncode != 0:
        raise AnalysisExecutionError(command, result.returncode)


class AnalysisRunner:
    """Produces one report for whatever revision is currently checked out."""

    def __init__(self, cli_path: str):
        self.cli_path = cli_path

    def analyze(self, target: str, fmt: str, out_path: Path, cwd: str | Path, revision: str | None = None) -> Report:
        if fmt not in ANALYZE_FORMATS:
            raise ValueError(f"Unknown analyze format: {fmt!r}. Choose one of {', '.join(ANALYZE_FORMATS)}.")
        out_path = Path(out_path)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        run_cli(self.cli_path, ["analyze", target, "--format", fmt, "--out", str(out_path)], cwd)
        return Report(path=out_path, format=fmt, revision=revision)


class DiffReportBuilder:
    """Renders the difference between two structured reports."""

    def __init__(self, cli_path: str):
        self.cli_path = cli_path

    def diff(
        self,
        base: Path,
        head: Path,
        fmt: str,
        out_path: Path,
        cwd: str | Path,
        max_projects: int | None = None,
    ) -> DiffArtifact:
        if fmt not in DIFF_FORMATS:
            raise ValueError(f"Unknown diff format: {fmt!r}. Choose one of {', '.join(DIFF_FORMATS)}.")
        out_path = Path(out_path)
        args = ["diff", "--base", str(base), "--head", str(head), "--format", fmt, "--out", str(out_path)]
        # Only the markdown renderer enumerates projects.
        if fmt == FORMAT_MARKDOWN and max_projects is not None:
            args += ["--max-projects", str(max_projects)]
        try:
            run_cli(self.cli_path, args, cwd)
        except AnalysisExecutionError as e:
            raise DiffExecutionError(fmt, e.returncode, str(e)) from e
        return DiffArtifact(path=out_path, format=fmt, base=Path(base), head=Path(head))
