"""run command: analyse the repository and report on the pull request."""

from __future__ import annotations

import click
from github import GithubException
from rich.console import Console

from reflens_core.actions import set_failed
from reflens_core.errors import ReflensError
from reflens_core.gh.pull_request import ComparisonContext, get_repo
from reflens_core.orchestrator import RunOutputs, run_analysis
from reflens_core.publisher import Publisher

console = Console()


def _explicit_context(base: str | None, head: str | None, pr_number: int | None) -> ComparisonContext | None:
    given = [v is not None for v in (base, head, pr_number)]
    if not any(given):
        return None
    if not all(given):
        raise click.UsageError("--base, --head and --pr must be given together.")
    return ComparisonContext(base_sha=base, head_sha=head, pr_number=pr_number)


def _comment_repo(config: dict):
    """The repository to comment on, or None when commenting is impossible."""
    token = config.get("github_token")
    repository = config.get("repository")
    if not config.get("post_comment") or not token or not repository:
        return None
    try:
        return get_repo(repository, token=token)
    except GithubException as e:
        console.print(f"[yellow]Could not open {repository} for commenting (HTTP {e.status}).[/yellow]")
        return None


def _print_summary(outputs: RunOutputs) -> None:
    for name, path in outputs.as_action_outputs().items():
        console.print(f"  [bold]{name}[/bold]: {path}")
    for stage in outputs.stages:
        if not stage.ok:
            console.print(f"  [yellow]{stage.name} skipped: {stage.error}[/yellow]")
    if outputs.comment is not None:
        console.print(f"[green]PR comment posted ({outputs.comment_payload.variant}).[/green]")
    for record in outputs.uploads:
        if record.success:
            console.print(f"  [dim]artifact {record.name} ({record.size} bytes)[/dim]")


@click.command("run")
@click.option("--solution", "solution", default=None, help="Solution or project to analyse.")
@click.option("--run-diff/--no-run-diff", default=None, help="Compare base and head on pull requests.")
@click.option("--post-comment/--no-post-comment", default=None, help="Post the markdown diff as a PR comment.")
@click.option("--report-html/--no-report-html", default=None, help="Produce the HTML report.")
@click.option("--report-json/--no-report-json", default=None, help="Produce the JSON report (single-revision runs).")
@click.option("--max-projects", type=int, default=None, help="Cap on projects listed in the markdown report.")
@click.option("--tool-version", "version", default=None, help='StructuraLens version ("latest" or e.g. 1.4.0).')
@click.option("--working-directory", default=None, help="Directory to run the analyzer in, relative to the workspace.")
@click.option("--cli-path", default=None, help="Use this StructuraLens executable instead of downloading one.")
@click.option(
    "--artifact-store",
    type=click.Choice(["local", "gist", "none"]),
    default=None,
    help="Where oversized or undeliverable reports are stored.",
)
@click.option("--repo", "repository", default=None, help="GitHub repository (owner/name). Defaults to GITHUB_REPOSITORY.")
@click.option("--base", default=None, help="Base revision. Overrides the pull request event.")
@click.option("--head", default=None, help="Head revision. Overrides the pull request event.")
@click.option("--pr", "pr_number", type=int, default=None, help="Pull request number to comment on.")
@click.pass_context
def run_cmd(
    ctx,
    solution: str | None,
    run_diff: bool | None,
    post_comment: bool | None,
    report_html: bool | None,
    report_json: bool | None,
    max_projects: int | None,
    version: str | None,
    working_directory: str | None,
    cli_path: str | None,
    artifact_store: str | None,
    repository: str | None,
    base: str | None,
    head: str | None,
    pr_number: int | None,
):
    """Run StructuraLens and report the result.

    On pull_request events (or with --base/--head/--pr) the base and head
    revisions are analysed in turn and their diff is posted on the PR. The
    working copy is always returned to the revision it started on.

    \b
    Environment variables:
      GITHUB_TOKEN         Needed to post comments and to download the CLI
      GITHUB_EVENT_NAME    pull_request / pull_request_target enable the diff flow
      GITHUB_EVENT_PATH    Event payload with the base and head SHAs
    """
    from reflens_cli.auth import resolve_github_token
    from reflens_cli.cli import build_artifact_store
    from reflens_core.config import load_config

    config_path = ctx.obj.get("config_path", ".reflens.yml") if ctx.obj else ".reflens.yml"
    config = load_config(
        config_path,
        cli_overrides={
            "solution": solution,
            "run_diff": run_diff,
            "post_comment": post_comment,
            "report_html": report_html,
            "report_json": report_json,
            "max_projects": max_projects,
            "version": version,
            "working_directory": working_directory,
            "cli_path": cli_path,
            "artifact_store": artifact_store,
        },
    )
    if repository:
        config["repository"] = repository

    if not config.get("solution"):
        raise click.UsageError("No solution given. Pass --solution or set `solution` in .reflens.yml.")

    context = _explicit_context(base, head, pr_number)

    token = resolve_github_token()
    if token:
        config["github_token"] = token

    store = build_artifact_store(config)
    ctx.call_on_close(store.close)
    publisher = Publisher(
        _comment_repo(config),
        store,
        retries=config["retries"],
        delay_ms=config["retry_delay_ms"],
        backoff=config["retry_backoff"],
    )

    try:
        outputs = run_analysis(config, publisher=publisher, context=context)
    except ReflensError as e:
        set_failed(str(e))
        console.print(f"[red]{e}[/red]")
        ctx.exit(1)

    console.print("\n[bold green]StructuraLens run complete.[/bold green]")
    _print_summary(outputs)
