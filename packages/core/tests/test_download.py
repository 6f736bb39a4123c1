"""Tests for StructuraLens CLI acquisition."""

import io
import tarfile
import zipfile
from unittest.mock import MagicMock

import pytest
import requests
from github import GithubException

from reflens_core.errors import AssetResolutionError, PlatformUnsupportedError
from reflens_core.tool import download
from reflens_core.tool.download import (
    cli_binary_name,
    extract_archive,
    find_asset,
    platform_asset_name,
    resolve_version,
)


class TestPlatformAssetName:
    @pytest.mark.parametrize(
        "system,machine,expected",
        [
            ("Linux", "x86_64", "structuralens-linux-x64-1.2.0.tar.gz"),
            ("Linux", "aarch64", "structuralens-linux-arm64-1.2.0.tar.gz"),
            ("Darwin", "arm64", "structuralens-macos-arm64-1.2.0.tar.gz"),
            ("Windows", "AMD64", "structuralens-windows-x64-1.2.0.zip"),
        ],
    )
    def test_supported(self, system, machine, expected):
        assert platform_asset_name("1.2.0", system, machine) == expected

    def test_intel_mac_unsupported(self):
        with pytest.raises(PlatformUnsupportedError) as exc_info:
            platform_asset_name("1.2.0", "Darwin", "x86_64")
        assert exc_info.value.machine == "x86_64"

    def test_unknown_os_unsupported(self):
        with pytest.raises(PlatformUnsupportedError):
            platform_asset_name("1.2.0", "FreeBSD", "amd64")


def test_cli_binary_name():
    assert cli_binary_name("Windows") == "StructuraLens.Cli.exe"
    assert cli_binary_name("Linux") == "StructuraLens.Cli"


class TestResolveVersion:
    def test_explicit_version_passes_through(self):
        repo = MagicMock()
        assert resolve_version(repo, "v1.4.0") == "1.4.0"
        repo.get_latest_release.assert_not_called()

    def test_latest_strips_v_prefix(self):
        repo = MagicMock()
        repo.get_latest_release.return_value.tag_name = "v2.0.1"
        assert resolve_version(repo, "latest") == "2.0.1"

    def test_latest_lookup_failure(self):
        repo = MagicMock()
        repo.get_latest_release.side_effect = GithubException(404, {"message": "Not Found"}, None)
        with pytest.raises(AssetResolutionError):
            resolve_version(repo, "latest")


class TestFindAsset:
    def _asset(self, name):
        a = MagicMock()
        a.name = name
        return a

    def test_finds_named_asset(self):
        wanted = self._asset("structuralens-linux-x64-1.0.0.tar.gz")
        repo = MagicMock()
        repo.get_release.return_value.get_assets.return_value = [self._asset("other.zip"), wanted]
        assert find_asset(repo, "1.0.0", wanted.name) is wanted
        repo.get_release.assert_called_once_with("v1.0.0")

    def test_missing_asset(self):
        repo = MagicMock()
        repo.get_release.return_value.get_assets.return_value = [self._asset("other.zip")]
        with pytest.raises(AssetResolutionError, match="Release asset not found"):
            find_asset(repo, "1.0.0", "structuralens-linux-x64-1.0.0.tar.gz")

    def test_missing_release(self):
        repo = MagicMock()
        repo.get_release.side_effect = GithubException(404, {"message": "Not Found"}, None)
        with pytest.raises(AssetResolutionError) as exc_info:
            find_asset(repo, "9.9.9", "x.tar.gz")
        assert exc_info.value.version == "9.9.9"


class TestExtractArchive:
    def test_tar(self, tmp_path):
        archive = tmp_path / "cli.tar.gz"
        with tarfile.open(archive, "w:gz") as tf:
            data = b"#!/bin/sh\n"
            info = tarfile.TarInfo("StructuraLens.Cli")
            info.size = len(data)
            tf.addfile(info, io.BytesIO(data))
        out = extract_archive(archive, tmp_path / "out")
        assert (out / "StructuraLens.Cli").read_bytes() == b"#!/bin/sh\n"

    def test_zip(self, tmp_path):
        archive = tmp_path / "cli.zip"
        with zipfile.ZipFile(archive, "w") as zf:
            zf.writestr("StructuraLens.Cli.exe", b"MZ")
        out = extract_archive(archive, tmp_path / "out")
        assert (out / "StructuraLens.Cli.exe").read_bytes() == b"MZ"

    def test_tar_without_extraction_filters(self, tmp_path, monkeypatch):
        monkeypatch.delattr(tarfile, "data_filter", raising=False)
        archive = tmp_path / "cli.tar.gz"
        with tarfile.open(archive, "w:gz") as tf:
            data = b"#!/bin/sh\n"
            info = tarfile.TarInfo("StructuraLens.Cli")
            info.size = len(data)
            tf.addfile(info, io.BytesIO(data))
        out = extract_archive(archive, tmp_path / "out")
        assert (out / "StructuraLens.Cli").exists()

    @pytest.mark.parametrize("name", ["cli.tar.gz", "cli.zip"])
    def test_corrupt_archive(self, tmp_path, name):
        archive = tmp_path / name
        archive.write_bytes(b"not an archive")
        with pytest.raises(AssetResolutionError, match="Could not extract archive"):
            extract_archive(archive, tmp_path / "out")


class TestToolRepo:
    def test_lookup_failure_is_asset_resolution_error(self, mocker):
        gh = mocker.patch.object(download, "Github")
        gh.return_value.get_repo.side_effect = GithubException(403, {"message": "API rate limit exceeded"}, None)
        with pytest.raises(AssetResolutionError, match="HTTP 403"):
            download._tool_repo(None)


class TestDownloadCli:
    def _tar_bytes(self, name="StructuraLens.Cli"):
        buf = io.BytesIO()
        with tarfile.open(fileobj=buf, mode="w:gz") as tf:
            data = b"#!/bin/sh\n"
            info = tarfile.TarInfo(name)
            info.size = len(data)
            tf.addfile(info, io.BytesIO(data))
        return buf.getvalue()

    def _setup(self, mocker, payload):
        asset_name = "structuralens-linux-x64-1.0.0.tar.gz"
        asset = MagicMock()
        asset.name = asset_name
        asset.url = "https://api.github.com/repos/x/y/releases/assets/1"
        repo = MagicMock()
        repo.get_release.return_value.get_assets.return_value = [asset]
        mocker.patch.object(download, "_tool_repo", return_value=repo)
        mocker.patch.object(download.platform, "system", return_value="Linux")
        mocker.patch.object(download.platform, "machine", return_value="x86_64")

        response = MagicMock()
        response.__enter__.return_value = response
        response.iter_content.return_value = [payload]
        get = mocker.patch.object(download.requests, "get", return_value=response)
        return get

    def test_downloads_extracts_and_marks_executable(self, mocker, tmp_path):
        get = self._setup(mocker, self._tar_bytes())

        cli = download.download_cli("1.0.0", token="tok", dest_dir=tmp_path)

        assert cli == tmp_path / "cli" / "StructuraLens.Cli"
        assert cli.stat().st_mode & 0o111
        headers = get.call_args.kwargs["headers"]
        assert headers["Accept"] == "application/octet-stream"
        assert headers["Authorization"] == "Bearer tok"

    def test_missing_binary_after_extraction(self, mocker, tmp_path):
        self._setup(mocker, self._tar_bytes(name="README.md"))
        with pytest.raises(AssetResolutionError, match="CLI not found after extraction"):
            download.download_cli("1.0.0", dest_dir=tmp_path)

    def test_http_failure(self, mocker, tmp_path):
        get = self._setup(mocker, b"")
        get.side_effect = requests.ConnectionError("unreachable")
        with pytest.raises(AssetResolutionError, match="Download failed"):
            download.download_cli("1.0.0", dest_dir=tmp_path)
