"""CLI entry point for reflens.

Commands:
  run   : analyse the repository (base vs head on pull requests) and report
  init  : write .reflens.yml and a GitHub Actions workflow
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from reflens_cli.commands.init import init_cmd
from reflens_cli.commands.run import run_cmd

console = Console()


def build_artifact_store(config: dict):
    """Instantiate the configured artifact store from .reflens.yml settings.

    Store selection:
      artifact_store: local → LocalArtifactStore (default; pair with actions/upload-artifact)
      artifact_store: gist  → GistArtifactStore  (requires a token with gist scope)
      artifact_store: none  → NoOpArtifactStore  (uploads always fail)
    """
    from reflens_store.noop import NoOpArtifactStore

    store_type = config.get("artifact_store", "local")

    if store_type == "gist":
        from reflens_store.gist import GistArtifactStore

        token = config.get("github_token")
        if not token:
            console.print("[yellow]Gist artifact store requires a GitHub token. Falling back to no store.[/yellow]")
            return NoOpArtifactStore()
        return GistArtifactStore(token=token)

    if store_type == "local":
        from pathlib import Path

        from reflens_core.config import resolve_workdir
        from reflens_store.local import LocalArtifactStore

        artifact_dir = Path(config.get("artifact_dir") or ".structuralens/artifacts")
        if not artifact_dir.is_absolute():
            artifact_dir = resolve_workdir(config) / artifact_dir
        return LocalArtifactStore(
            artifact_dir=artifact_dir,
            repository=config.get("repository"),
            run_id=config.get("run_id"),
            server_url=config.get("server_url"),
        )

    return NoOpArtifactStore()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False, rich_tracebacks=True)],
    )
    # PyGithub and urllib3 are chatty at DEBUG.
    logging.getLogger("github").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


@click.group()
@click.version_option(
    version=importlib.metadata.version("reflens"),
    prog_name="reflens",
)
@click.option(
    "--config",
    "config_path",
    default=".reflens.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="REFLENS_CONFIG",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.pass_context
def main(ctx: click.Context, config_path: str, verbose: bool):
    """Compare StructuraLens analyses of a pull request's base and head."""
    _configure_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


main.add_command(run_cmd)
main.add_command(init_cmd)
