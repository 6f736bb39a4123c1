import os
from pathlib import Path
from typing import Optional

import yaml

from reflens_core.comment import COMMENT_CHAR_BUFFER, COMMENT_CHAR_LIMIT
from reflens_core.utils.retry import DEFAULT_BACKOFF, DEFAULT_DELAY_MS, DEFAULT_RETRIES

DEFAULT_CONFIG: dict = {
    "solution": None,  # target passed to `analyze`; required
    "run_diff": True,
    "post_comment": True,
    "report_html": True,
    "report_json": True,
    "max_projects": 10,
    "version": "latest",
    "working_directory": ".",
    "cli_path": None,  # skip the download and use this executable
    "artifact_store": "local",  # "local" | "gist" | "none"
    "artifact_dir": ".structuralens/artifacts",
    "comment_char_limit": COMMENT_CHAR_LIMIT,
    "comment_char_buffer": COMMENT_CHAR_BUFFER,
    "retries": DEFAULT_RETRIES,
    "retry_delay_ms": DEFAULT_DELAY_MS,
    "retry_backoff": DEFAULT_BACKOFF,
}

# GitHub Action input name -> config key. Actions exposes each input as
# INPUT_<NAME> with the name upper-cased and hyphens kept.
ACTION_INPUTS: dict = {
    "solution": "solution",
    "run-diff": "run_diff",
    "post-comment": "post_comment",
    "report-html": "report_html",
    "report-json": "report_json",
    "max-projects": "max_projects",
    "version": "version",
    "working-directory": "working_directory",
}

_BOOL_KEYS = {"run_diff", "post_comment", "report_html", "report_json"}
_INT_KEYS = {"max_projects", "comment_char_limit", "comment_char_buffer", "retries", "retry_delay_ms"}


def _coerce(key: str, value):
    if key in _BOOL_KEYS and isinstance(value, str):
        # Mirrors the action's inputs: anything but the literal "false" is on.
        return value.strip().lower() != "false"
    if key in _INT_KEYS and isinstance(value, str):
        return int(value)
    return value


def read_action_inputs(environ: Optional[dict] = None) -> dict:
    """Collect non-empty GitHub Action inputs from the environment."""
    environ = os.environ if environ is None else environ
    inputs = {}
    for name, key in ACTION_INPUTS.items():
        value = environ.get(f"INPUT_{name.upper()}", "")
        if value.strip():
            inputs[key] = _coerce(key, value.strip())
    return inputs


def load_config(config_path: str = ".reflens.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .reflens.yml in the current directory
      3. GitHub Action inputs (INPUT_* environment variables)
      4. CLI argument overrides
    """
    config = dict(DEFAULT_CONFIG)

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        config.update({k: _coerce(k, v) for k, v in file_config.items()})

    config.update(read_action_inputs())

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    # Runner environment
    config["github_token"] = os.environ.get("GITHUB_TOKEN")
    config["workspace"] = os.environ.get("GITHUB_WORKSPACE") or os.getcwd()
    config["repository"] = os.environ.get("GITHUB_REPOSITORY")
    config["run_id"] = os.environ.get("GITHUB_RUN_ID")
    config["server_url"] = os.environ.get("GITHUB_SERVER_URL", "https://github.com")
    config["event_name"] = os.environ.get("GITHUB_EVENT_NAME")
    config["event_path"] = os.environ.get("GITHUB_EVENT_PATH")

    return config


def resolve_workdir(config: dict) -> Path:
    """The directory the analyzer runs in: working_directory relative to the workspace."""
    workspace = config.get("workspace") or os.getcwd()
    return (Path(workspace) / (config.get("working_directory") or ".")).resolve()
