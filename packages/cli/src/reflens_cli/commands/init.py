"""init command: write .reflens.yml and a GitHub Actions workflow.

The workflow checks out full history (base and head SHAs must both be
reachable), runs `reflens run` and then publishes each staged file as an
artifact of the same name, the name a compact PR comment refers readers to.
"""

from __future__ import annotations

import subprocess
from pathlib import Path

import click
import yaml
from rich.console import Console

from reflens_core.orchestrator import COMMENT_ARTIFACT_NAME, HTML_ARTIFACT_NAME, MARKDOWN_ARTIFACT_NAME

console = Console()

_WORKFLOW_TEMPLATE = """\
name: StructuraLens

on:
  pull_request:
    types: [opened, synchronize, reopened]

jobs:
  structuralens:
    runs-on: ubuntu-latest
    permissions:
      contents: read
      pull-requests: write

    steps:
      - uses: actions/checkout@v4
        with:
          fetch-depth: 0

      - name: Set up Python
        uses: actions/setup-python@v5
        with:
          python-version: "3.12"

      - name: Install reflens
        run: pip install "reflens=={version}"

      - name: Run StructuraLens
        env:
          GITHUB_TOKEN: ${{{{ secrets.GITHUB_TOKEN }}}}
        run: reflens run --solution {solution}

{upload_steps}"""

# One artifact per staged file, named after the file.
_UPLOAD_STEP_TEMPLATE = """\
      - name: Upload {name}
        if: always()
        uses: actions/upload-artifact@v4
        with:
          name: {name}
          path: {artifact_dir}/{name}
          if-no-files-found: ignore
"""

_STAGED_ARTIFACTS = (HTML_ARTIFACT_NAME, MARKDOWN_ARTIFACT_NAME, COMMENT_ARTIFACT_NAME)


@click.command("init")
@click.option("--solution", default=None, help="Solution or project to analyse.")
@click.option("--yes", "-y", is_flag=True, help="Accept defaults without prompting.")
@click.pass_context
def init_cmd(ctx, solution: str | None, yes: bool):
    """Set up reflens for this repository.

    Creates .reflens.yml and, optionally, .github/workflows/structuralens.yml.
    """
    console.print("\n[bold cyan]reflens init[/bold cyan]\n")

    repo = _detect_repo_from_git()
    if repo:
        console.print(f"[dim]Detected repository: {repo}[/dim]")

    if solution is None:
        solution = click.prompt("Solution or project to analyse", default=_guess_solution() or None)

    if yes:
        store_type = "local"
    else:
        console.print("\nArtifact store for oversized reports:")
        console.print("  [bold]local[/bold]  staged for actions/upload-artifact (default)")
        console.print("  [bold]gist[/bold]   secret Gist per report, linkable (needs a PAT with gist scope)")
        console.print("  [bold]none[/bold]   keep nothing beyond the comment")
        store_type = click.prompt("Artifact store", type=click.Choice(["local", "gist", "none"]), default="local")

    config: dict = {"solution": solution, "artifact_store": store_type}
    config_path = Path(ctx.obj.get("config_path", ".reflens.yml") if ctx.obj else ".reflens.yml")
    _write_config(config_path, config)
    console.print(f"[green]Wrote {config_path}[/green]")

    if yes or click.confirm("\nGenerate .github/workflows/structuralens.yml?", default=True):
        workflow_path = _write_workflow(solution, ".structuralens/artifacts")
        console.print(f"[green]Created {workflow_path}[/green]")

    console.print("\n[bold green]Setup complete![/bold green]")


def _detect_repo_from_git() -> str | None:
    """Try to detect the GitHub repo slug from the git remote URL."""
    try:
        result = subprocess.run(
            ["git", "remote", "get-url", "origin"],
            capture_output=True,
            text=True,
            timeout=5,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return None
    if result.returncode != 0:
        return None
    url = result.stdout.strip()
    # https://github.com/owner/repo.git and git@github.com:owner/repo.git
    if "github.com" not in url:
        return None
    slug = url.split("github.com")[-1].lstrip("/:").removesuffix(".git")
    return slug if "/" in slug else None


def _guess_solution() -> str | None:
    """Pick the first .sln (or .slnx) file in the current directory, if any."""
    for pattern in ("*.sln", "*.slnx"):
        matches = sorted(Path(".").glob(pattern))
        if matches:
            return matches[0].name
    return None


def _write_config(path: Path, config: dict) -> None:
    """Write or update the config file, preserving any existing keys."""
    existing: dict = {}
    if path.exists():
        existing = yaml.safe_load(path.read_text()) or {}
    existing.update(config)
    path.write_text(yaml.dump(existing, default_flow_style=False, sort_keys=False))


def _get_version() -> str:
    from importlib.metadata import PackageNotFoundError, version

    try:
        return version("reflens")
    except PackageNotFoundError:
        return "0.1.0"


def _write_workflow(solution: str, artifact_dir: str) -> Path:
    workflow_dir = Path(".github/workflows")
    workflow_dir.mkdir(parents=True, exist_ok=True)
    workflow_path = workflow_dir / "structuralens.yml"
    upload_steps = "\n".join(
        _UPLOAD_STEP_TEMPLATE.format(name=name, artifact_dir=artifact_dir) for name in _STAGED_ARTIFACTS
    )
    workflow_path.write_text(
        _WORKFLOW_TEMPLATE.format(version=_get_version(), solution=solution, upload_steps=upload_steps)
    )
    return workflow_path
