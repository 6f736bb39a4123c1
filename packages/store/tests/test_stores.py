"""Tests for reflens-store artifact stores."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
from github import GithubException

from reflens_core.errors import UploadError
from reflens_store.gist import GistArtifactStore
from reflens_store.local import LocalArtifactStore, run_artifacts_url
from reflens_store.noop import NoOpArtifactStore


@pytest.fixture
def report(tmp_path):
    path = tmp_path / "diff.md"
    path.write_text("# Diff\n\n| A | B |\n|---|---|\n", encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# NoOpArtifactStore
# ---------------------------------------------------------------------------


class TestNoOpArtifactStore:
    def test_upload_always_fails(self, report):
        with pytest.raises(UploadError) as exc_info:
            NoOpArtifactStore().upload(report, "structuralens-diff.md")
        assert exc_info.value.artifact_name == "structuralens-diff.md"

    def test_no_links(self):
        assert NoOpArtifactStore().link("anything") is None

    def test_close_does_not_raise(self):
        NoOpArtifactStore().close()


# ---------------------------------------------------------------------------
# LocalArtifactStore
# ---------------------------------------------------------------------------


class TestLocalArtifactStore:
    def test_copies_file_into_artifact_dir(self, tmp_path, report):
        store = LocalArtifactStore(artifact_dir=tmp_path / "artifacts")
        record = store.upload(report, "structuralens-diff.md")

        staged = tmp_path / "artifacts" / "structuralens-diff.md"
        assert staged.read_text(encoding="utf-8") == report.read_text(encoding="utf-8")
        assert record.success is True
        assert record.size == staged.stat().st_size

    def test_link_points_at_run_artifacts(self, tmp_path, report):
        store = LocalArtifactStore(tmp_path / "artifacts", repository="owner/repo", run_id="123")
        record = store.upload(report, "structuralens-diff-report.html")
        assert record.url == "https://github.com/owner/repo/actions/runs/123#artifacts"
        assert store.link("structuralens-diff-report.html") == record.url

    def test_no_link_outside_actions(self, tmp_path, report):
        store = LocalArtifactStore(tmp_path / "artifacts")
        assert store.upload(report, "a.md").url is None

    def test_link_for_unknown_artifact(self, tmp_path):
        store = LocalArtifactStore(tmp_path / "artifacts", repository="owner/repo", run_id="123")
        assert store.link("never-uploaded.md") is None

    def test_missing_source_raises_upload_error(self, tmp_path):
        store = LocalArtifactStore(tmp_path / "artifacts")
        with pytest.raises(UploadError):
            store.upload(tmp_path / "missing.md", "missing.md")


def test_run_artifacts_url_custom_server():
    url = run_artifacts_url("https://ghe.example.com/", "owner/repo", "7")
    assert url == "https://ghe.example.com/owner/repo/actions/runs/7#artifacts"


# ---------------------------------------------------------------------------
# GistArtifactStore
# ---------------------------------------------------------------------------


class TestGistArtifactStore:
    def _store(self, gist=None, error=None):
        with patch("reflens_store.gist.Github") as mock_gh_cls:
            user = mock_gh_cls.return_value.get_user.return_value
            if error is not None:
                user.create_gist.side_effect = error
            else:
                user.create_gist.return_value = gist
            store = GistArtifactStore(token="tok")
        return store, user

    def test_upload_creates_secret_gist(self, report):
        gist = MagicMock(id="abc123", html_url="https://gist.github.com/abc123")
        store, user = self._store(gist=gist)

        record = store.upload(report, "structuralens-diff.md")

        args = user.create_gist.call_args.args
        assert args[0] is False
        assert list(args[1]) == ["structuralens-diff.md"]
        assert record.success is True
        assert record.url == "https://gist.github.com/abc123"
        assert record.size == len(report.read_bytes())
        assert store.link("structuralens-diff.md") == "https://gist.github.com/abc123"

    def test_api_failure_raises_upload_error(self, report):
        store, _ = self._store(error=GithubException(403, {"message": "Forbidden"}, None))
        with pytest.raises(UploadError) as exc_info:
            store.upload(report, "structuralens-diff.md")
        assert "403" in exc_info.value.detail

    def test_actions_token_hint(self, report, monkeypatch):
        monkeypatch.setenv("GITHUB_ACTIONS", "true")
        store, _ = self._store(error=GithubException(404, {"message": "Not Found"}, None))
        with pytest.raises(UploadError, match="Gist permissions"):
            store.upload(report, "structuralens-diff.md")

    def test_unreadable_file(self, tmp_path):
        store, user = self._store(gist=MagicMock())
        with pytest.raises(UploadError):
            store.upload(tmp_path / "missing.md", "missing.md")
        user.create_gist.assert_not_called()
