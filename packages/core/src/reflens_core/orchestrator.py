"""Top-level control flow for a StructuraLens run.

    resolve mode → acquire CLI → capture original ref
        comparative:      checkout base → analyze → checkout head → analyze
                          → json diff → html diff → markdown diff → comment
        single revision:  analyze json and/or html in place
    → emit outputs → restore original ref

Fatal errors propagate to the caller as ReflensError subclasses. Optional
stages (html diff, markdown diff, uploads, the comment itself) are caught
where they happen, logged, and recorded on RunOutputs so the run can still
succeed with less output.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from reflens_core.actions import set_output
from reflens_core.analyzer import AnalysisRunner, DiffReportBuilder
from reflens_core.comment import (
    COMMENT_CHAR_BUFFER,
    COMMENT_CHAR_LIMIT,
    CommentPayload,
    compose_comment,
    needs_compaction,
    safe_limit,
)
from reflens_core.config import resolve_workdir
from reflens_core.errors import DiffExecutionError, MissingComparisonContextError, PublishError
from reflens_core.gh.pull_request import (
    ComparisonContext,
    context_from_payload,
    is_pull_request_event,
    load_event_payload,
)
from reflens_core.git.refs import RefSwitcher
from reflens_core.models import FORMAT_HTML, FORMAT_JSON, FORMAT_MARKDOWN, StageResult, UploadRecord
from reflens_core.publisher import CommentOutcome, Publisher
from reflens_core.tool.download import download_cli
from reflens_core.utils.timing import timed

logger = logging.getLogger(__name__)

WORK_DIR_NAME = ".structuralens"
HTML_ARTIFACT_NAME = "structuralens-diff-report.html"
MARKDOWN_ARTIFACT_NAME = "structuralens-diff.md"
COMMENT_ARTIFACT_NAME = "structuralens-pr-comment.md"


@dataclass
class RunOutputs:
    """What a run produced. Paths are None for stages that did not run."""

    base_report: Path | None = None
    head_report: Path | None = None
    diff_report: Path | None = None
    diff_html: Path | None = None
    stages: list[StageResult] = field(default_factory=list)
    uploads: list[UploadRecord] = field(default_factory=list)
    comment_payload: CommentPayload | None = None
    comment: CommentOutcome | None = None

    def as_action_outputs(self) -> dict[str, str]:
        outputs = {
            "base-report-json": self.base_report,
            "head-report-json": self.head_report,
            "diff-report-json": self.diff_report,
            "diff-report-html": self.diff_html,
        }
        return {name: str(path) for name, path in outputs.items() if path is not None}


def resolve_comparison(config: dict, override: ComparisonContext | None = None) -> ComparisonContext | None:
    """Return the revisions to compare, or None for a single-revision run.

    Comparative mode needs run_diff plus either an explicit context or a
    pull request event. A pull request event without a usable payload is
    fatal: silently falling back to a single-revision run would hide it.
    """
    if not config.get("run_diff", True):
        return None
    if override is not None:
        return override
    event_name = config.get("event_name")
    if not is_pull_request_event(event_name):
        return None
    context = context_from_payload(load_event_payload(config.get("event_path")))
    if context is None:
        raise MissingComparisonContextError(event_name)
    return context


def acquire_cli(config: dict) -> str:
    if config.get("cli_path"):
        logger.info("Using StructuraLens CLI at %s", config["cli_path"])
        return str(config["cli_path"])
    with timed("StructuraLens CLI download"):
        return str(download_cli(config.get("version") or "latest", token=config.get("github_token")))


def emit_outputs(outputs: RunOutputs) -> None:
    with timed("set outputs"):
        for name, value in outputs.as_action_outputs().items():
            set_output(name, value)


def analyze_with_refs(
    switcher: RefSwitcher,
    runner: AnalysisRunner,
    target: str,
    context: ComparisonContext,
    workdir: Path,
) -> tuple[Path, Path]:
    """Analyse base then head. The caller owns restoring the original ref."""
    base_dir = workdir / WORK_DIR_NAME / "base"
    head_dir = workdir / WORK_DIR_NAME / "head"
    base_dir.mkdir(parents=True, exist_ok=True)
    head_dir.mkdir(parents=True, exist_ok=True)

    with timed("base/head analysis"):
        switcher.checkout(context.base_sha)
        with timed("base ref analyze"):
            base = runner.analyze(target, FORMAT_JSON, base_dir / "report-base.json", workdir, context.base_sha)

        switcher.checkout(context.head_sha)
        with timed("head ref analyze"):
            head = runner.analyze(target, FORMAT_JSON, head_dir / "report-head.json", workdir, context.head_sha)

    return base.path, head.path


def _optional_diff(
    differ: DiffReportBuilder,
    outputs: RunOutputs,
    name: str,
    fmt: str,
    out_path: Path,
    workdir: Path,
    max_projects: int | None = None,
) -> Path | None:
    """Run one non-essential diff; a failure is logged and recorded, never raised."""
    try:
        with timed(f"{name} diff report"):
            artifact = differ.diff(
                outputs.base_report, outputs.head_report, fmt, out_path, workdir, max_projects=max_projects
            )
    except DiffExecutionError as e:
        logger.warning("Skipping %s diff report: %s", name, e)
        outputs.stages.append(StageResult(name=f"{fmt}-diff", ok=False, error=str(e)))
        return None
    outputs.stages.append(StageResult(name=f"{fmt}-diff", ok=True, path=artifact.path))
    return artifact.path


def publish_report(
    markdown_path: Path,
    pr_number: int,
    publisher: Publisher,
    outputs: RunOutputs,
    html_url: str | None = None,
    limit: int | None = None,
) -> None:
    """Post the markdown report on the PR, degrading as far as needed.

    Oversized reports become a compact comment backed by an artifact upload.
    If no comment can be posted at all, the report itself is uploaded so the
    result is never lost.
    """
    limit = safe_limit() if limit is None else limit
    body = markdown_path.read_text(encoding="utf-8")
    logger.info("Markdown diff report length: %d chars", len(body))

    artifact_uploaded = False
    if needs_compaction(body, limit):
        logger.warning("Markdown report exceeds %d chars; posting compact summary instead.", limit)
        record = publisher.upload_artifact(markdown_path, MARKDOWN_ARTIFACT_NAME)
        outputs.uploads.append(record)
        artifact_uploaded = record.success

    payload = compose_comment(body, html_url, MARKDOWN_ARTIFACT_NAME, artifact_uploaded, limit)
    outputs.comment_payload = payload

    if not publisher.can_comment:
        logger.warning("GitHub token not provided. Skipping PR comment.")
    else:
        try:
            with timed("PR comment post"):
                outputs.comment = publisher.publish_comment(payload.body, pr_number)
            logger.info("PR comment posted (id %s).", outputs.comment.comment_id or "n/a")
        except PublishError as e:
            logger.warning("Failed to post PR comment after retries: %s", e)

    if outputs.comment is None:
        record = publisher.upload_artifact(markdown_path, COMMENT_ARTIFACT_NAME)
        outputs.uploads.append(record)
        if record.success:
            logger.info("PR comment not posted; uploaded as artifact %s (%d bytes).", record.name, record.size)


def comparative_flow(
    config: dict,
    context: ComparisonContext,
    workdir: Path,
    switcher: RefSwitcher,
    runner: AnalysisRunner,
    differ: DiffReportBuilder,
    publisher: Publisher | None,
) -> RunOutputs:
    outputs = RunOutputs()
    post_comment = bool(config.get("post_comment", True)) and publisher is not None
    out_dir = workdir / WORK_DIR_NAME

    with timed("pull request diff flow"):
        outputs.base_report, outputs.head_report = analyze_with_refs(
            switcher, runner, config["solution"], context, workdir
        )

        # The json diff is the canonical result; its failure fails the run.
        with timed("JSON diff report"):
            diff = differ.diff(outputs.base_report, outputs.head_report, FORMAT_JSON, out_dir / "diff.json", workdir)
        outputs.diff_report = diff.path

        html_url = None
        if config.get("report_html", True):
            outputs.diff_html = _optional_diff(differ, outputs, "HTML", FORMAT_HTML, out_dir / "diff.html", workdir)
            if outputs.diff_html is not None and post_comment:
                record = publisher.upload_artifact(outputs.diff_html, HTML_ARTIFACT_NAME)
                outputs.uploads.append(record)
                if record.success:
                    html_url = publisher.artifact_link(HTML_ARTIFACT_NAME)

        if post_comment:
            markdown_path = _optional_diff(
                differ,
                outputs,
                "Markdown",
                FORMAT_MARKDOWN,
                out_dir / "diff.md",
                workdir,
                max_projects=config.get("max_projects"),
            )
            if markdown_path is not None:
                limit = safe_limit(
                    config.get("comment_char_limit", COMMENT_CHAR_LIMIT),
                    config.get("comment_char_buffer", COMMENT_CHAR_BUFFER),
                )
                publish_report(markdown_path, context.pr_number, publisher, outputs, html_url, limit)

    return outputs


def single_revision_flow(config: dict, workdir: Path, runner: AnalysisRunner) -> RunOutputs:
    outputs = RunOutputs()
    target = config["solution"]
    with timed("non-PR analyze flow"):
        if config.get("report_json", True):
            with timed("JSON report"):
                report = runner.analyze(target, FORMAT_JSON, workdir / "structuralens-report.json", workdir)
            outputs.head_report = report.path
        if config.get("report_html", True):
            with timed("HTML report"):
                report = runner.analyze(target, FORMAT_HTML, workdir / "structuralens-report.html", workdir)
            outputs.diff_html = report.path
    return outputs


def run_analysis(
    config: dict,
    publisher: Publisher | None = None,
    context: ComparisonContext | None = None,
    switcher: RefSwitcher | None = None,
    runner: AnalysisRunner | None = None,
    differ: DiffReportBuilder | None = None,
) -> RunOutputs:
    """Run StructuraLens for one invocation and return what it produced.

    In comparative mode the working copy is returned to the revision it was
    on when the run started, whatever happens in between.
    """
    if not config.get("solution"):
        raise ValueError("A solution/target to analyse is required.")

    workdir = resolve_workdir(config)
    logger.info(
        "Inputs: solution=%s, run_diff=%s, post_comment=%s, report_html=%s, report_json=%s, "
        "max_projects=%s, version=%s, workdir=%s",
        config["solution"],
        config.get("run_diff"),
        config.get("post_comment"),
        config.get("report_html"),
        config.get("report_json"),
        config.get("max_projects"),
        config.get("version"),
        workdir,
    )

    with timed("StructuraLens run"):
        comparison = resolve_comparison(config, context)
        cli_path = acquire_cli(config)
        runner = runner or AnalysisRunner(cli_path)
        differ = differ or DiffReportBuilder(cli_path)

        if comparison is None:
            outputs = single_revision_flow(config, workdir, runner)
            emit_outputs(outputs)
            return outputs

        switcher = switcher or RefSwitcher(config.get("workspace") or str(workdir))
        with switcher.preserved():
            outputs = comparative_flow(config, comparison, workdir, switcher, runner, differ, publisher)
            emit_outputs(outputs)
        return outputs
