"""Fit the markdown diff report into a single PR comment.

GitHub rejects issue comments over 65536 characters. Reports under the safe
limit are posted as-is; anything larger is replaced by a compact summary that
points at the uploaded full report and keeps the first table of the original
(the per-project overview the differ always emits first).
"""

from __future__ import annotations

import re
from dataclasses import dataclass

COMMENT_CHAR_LIMIT = 65536
COMMENT_CHAR_BUFFER = 1024
SAFE_COMMENT_CHAR_LIMIT = COMMENT_CHAR_LIMIT - COMMENT_CHAR_BUFFER

FULL = "full"
COMPACT = "compact"

_TABLE_SEPARATOR_RE = re.compile(r"^\s*\|?(\s*:?-+:?\s*\|)+\s*:?-+:?\s*\|?\s*$")
_LINE_SPLIT_RE = re.compile(r"\r?\n")


@dataclass
class CommentPayload:
    body: str
    variant: str  # "full" | "compact"
    artifact_name: str | None = None
    artifact_uploaded: bool = False

    @property
    def is_compact(self) -> bool:
        return self.variant == COMPACT


def safe_limit(limit: int = COMMENT_CHAR_LIMIT, buffer: int = COMMENT_CHAR_BUFFER) -> int:
    return limit - buffer


def needs_compaction(markdown: str, limit: int = SAFE_COMMENT_CHAR_LIMIT) -> bool:
    return len(markdown) > limit


def is_table_separator(line: str) -> bool:
    """True for a markdown table separator row such as ``|---|:---:|``."""
    return bool(_TABLE_SEPARATOR_RE.match(line))


def extract_first_table(markdown: str) -> str | None:
    """Return the first markdown table in ``markdown``, or None.

    Not a markdown parser: a table is a line containing ``|`` followed by a
    separator row, plus every following line that still contains ``|``.
    """
    lines = _LINE_SPLIT_RE.split(markdown)
    for i in range(len(lines) - 1):
        if "|" not in lines[i] or not is_table_separator(lines[i + 1]):
            continue
        end = i + 2
        while end < len(lines) and "|" in lines[end]:
            end += 1
        return "\n".join(lines[i:end])
    return None


def build_report_header(html_url: str | None) -> str:
    if not html_url:
        return ""
    return f"## 📊 StructuraLens Analysis\n\n**[View Interactive HTML Report →]({html_url})**\n\n"


def build_banner(artifact_name: str, artifact_uploaded: bool) -> str:
    if artifact_uploaded:
        return (
            "**StructuraLens report too large for PR comment.** "
            f"Full markdown uploaded as artifact: `{artifact_name}`."
        )
    return (
        "**StructuraLens report too large for PR comment.** "
        "Full markdown could not be uploaded as an artifact."
    )


def _fit_table(table: str, budget: int) -> str | None:
    """Drop trailing rows until ``table`` fits in ``budget`` characters.

    The header and separator rows are never dropped; if those two alone do
    not fit, the table is left out entirely.
    """
    rows = table.split("\n")
    while len(rows) > 2 and len("\n".join(rows)) > budget:
        rows.pop()
    fitted = "\n".join(rows)
    return fitted if len(fitted) <= budget else None


def build_compact_comment(
    markdown: str,
    artifact_name: str,
    artifact_uploaded: bool,
    html_url: str | None = None,
    limit: int = SAFE_COMMENT_CHAR_LIMIT,
) -> str:
    prefix = build_report_header(html_url) + build_banner(artifact_name, artifact_uploaded)
    table = extract_first_table(markdown)
    if table is None:
        return prefix
    table = _fit_table(table, limit - len(prefix) - 2)
    if table is None:
        return prefix
    return f"{prefix}\n\n{table}"


def compose_comment(
    markdown: str,
    html_url: str | None = None,
    artifact_name: str = "structuralens-diff.md",
    artifact_uploaded: bool = False,
    limit: int = SAFE_COMMENT_CHAR_LIMIT,
) -> CommentPayload:
    """Pick the full or compact comment body for ``markdown``.

    ``artifact_uploaded`` only matters for the compact variant; the caller is
    expected to have attempted the upload once it saw needs_compaction().
    """
    if not needs_compaction(markdown, limit):
        return CommentPayload(body=build_report_header(html_url) + markdown, variant=FULL)
    body = build_compact_comment(markdown, artifact_name, artifact_uploaded, html_url, limit)
    return CommentPayload(
        body=body,
        variant=COMPACT,
        artifact_name=artifact_name,
        artifact_uploaded=artifact_uploaded,
    )
