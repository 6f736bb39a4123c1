"""Fetch the StructuraLens CLI build for the current OS and architecture.

Builds are published as GitHub release assets on andy-c-jones/StructuraLens,
one archive per platform, named ``structuralens-<platform>-<arch>-<version>``.
"""

from __future__ import annotations

import logging
import os
import platform
import tarfile
import tempfile
import zipfile
from pathlib import Path

import requests
from github import Github, GithubException

from reflens_core.errors import AssetResolutionError, PlatformUnsupportedError

logger = logging.getLogger(__name__)

TOOL_REPO = "andy-c-jones/StructuraLens"
_DOWNLOAD_TIMEOUT = 120
_CHUNK_SIZE = 1 << 16


def platform_asset_name(version: str, system: str | None = None, machine: str | None = None) -> str:
    system = (system or platform.system()).lower()
    machine = (machine or platform.machine()).lower()
    is_arm64 = machine in ("arm64", "aarch64")

    if system == "linux":
        if is_arm64:
            return f"structuralens-linux-arm64-{version}.tar.gz"
        return f"structuralens-linux-x64-{version}.tar.gz"
    if system == "darwin":
        if is_arm64:
            return f"structuralens-macos-arm64-{version}.tar.gz"
        raise PlatformUnsupportedError(system, machine)
    if system == "windows":
        return f"structuralens-windows-x64-{version}.zip"
    raise PlatformUnsupportedError(system, machine)


def cli_binary_name(system: str | None = None) -> str:
    system = (system or platform.system()).lower()
    return "StructuraLens.Cli.exe" if system == "windows" else "StructuraLens.Cli"


def _tool_repo(token: str | None):
    gh = Github(token) if token else Github()
    try:
        return gh.get_repo(TOOL_REPO)
    except GithubException as e:
        raise AssetResolutionError(TOOL_REPO, "", f"Could not open release repository (HTTP {e.status})") from e


def resolve_version(repo, version: str) -> str:
    """Turn ``latest`` into a concrete version number; pass others through."""
    if version != "latest":
        return version.removeprefix("v")
    logger.info("Resolving latest StructuraLens release")
    try:
        tag = repo.get_latest_release().tag_name
    except GithubException as e:
        raise AssetResolutionError("latest", version, f"Could not resolve latest release ({e.status})") from e
    return tag.removeprefix("v")


def find_asset(repo, version: str, asset_name: str):
    try:
        release = repo.get_release(f"v{version}")
    except GithubException as e:
        raise AssetResolutionError(asset_name, version, f"Release v{version} not found ({e.status})") from e
    for asset in release.get_assets():
        if asset.name == asset_name:
            return asset
    raise AssetResolutionError(asset_name, version)


def _download(asset, dest: Path, token: str | None) -> None:
    headers = {"Accept": "application/octet-stream"}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    try:
        with requests.get(asset.url, headers=headers, stream=True, timeout=_DOWNLOAD_TIMEOUT) as response:
            response.raise_for_status()
            with open(dest, "wb") as f:
                for chunk in response.iter_content(chunk_size=_CHUNK_SIZE):
                    f.write(chunk)
    except requests.RequestException as e:
        raise AssetResolutionError(asset.name, "", f"Download failed ({e})") from e


def extract_archive(archive: Path, dest: Path) -> Path:
    dest.mkdir(parents=True, exist_ok=True)
    try:
        if archive.name.endswith(".zip"):
            logger.info("Extracting ZIP asset")
            with zipfile.ZipFile(archive) as zf:
                zf.extractall(dest)
        else:
            logger.info("Extracting TAR asset")
            with tarfile.open(archive) as tf:
                _extract_tar(tf, dest)
    except (tarfile.TarError, zipfile.BadZipFile, OSError) as e:
        raise AssetResolutionError(archive.name, "", f"Could not extract archive ({e})") from e
    return dest


def _extract_tar(tf: tarfile.TarFile, dest: Path) -> None:
    # Extraction filters only exist from 3.10.12 / 3.11.4 on.
    if hasattr(tarfile, "data_filter"):
        tf.extractall(dest, filter="data")
    else:
        tf.extractall(dest)


def download_cli(version: str = "latest", token: str | None = None, dest_dir: str | Path | None = None) -> Path:
    """Download and unpack the CLI, returning the path to its executable."""
    repo = _tool_repo(token)
    resolved = resolve_version(repo, version)
    asset_name = platform_asset_name(resolved)
    logger.info("Downloading StructuraLens v%s asset %s", resolved, asset_name)
    asset = find_asset(repo, resolved, asset_name)

    work_dir = Path(dest_dir) if dest_dir else Path(tempfile.mkdtemp(prefix="structuralens-"))
    work_dir.mkdir(parents=True, exist_ok=True)
    archive = work_dir / asset_name
    _download(asset, archive, token)

    extracted = extract_archive(archive, work_dir / "cli")
    cli_path = extracted / cli_binary_name()
    if not cli_path.exists():
        raise AssetResolutionError(asset_name, resolved, f"CLI not found after extraction: {cli_path}")

    if os.name != "nt":
        cli_path.chmod(0o755)
    logger.info("CLI ready at %s", cli_path)
    return cli_path
