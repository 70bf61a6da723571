"""Tests for the edge-cd CLI."""

import tempfile
from pathlib import Path

import yaml
from click.testing import CliRunner

from edgecd.cli import main


def _spec_data(config_url: str = "https://git.example.com/config.git") -> dict:
    return {
        "edgeCD": {"repo": {"url": "https://git.example.com/edge-cd.git", "destinationPath": "/opt/edge-cd"}},
        "config": {"path": "node-1", "repo": {"url": config_url, "destPath": "/opt/config"}},
        "files": [{"type": "content", "content": "hello\n", "destPath": "/etc/motd"}],
    }


def _setup(tmpdir: str, monkeypatch, data: dict) -> Path:
    root = Path(tmpdir)
    spec_path = root / "config" / "node-1" / "spec.yaml"
    spec_path.parent.mkdir(parents=True)
    spec_path.write_text(yaml.safe_dump(data))
    monkeypatch.setenv("CONFIG_PATH", "node-1")
    monkeypatch.setenv("CONFIG_REPO_DEST_PATH", str(root / "config"))
    monkeypatch.setenv("EDGE_CD_COMMIT_PATH", str(root / "edge-cd-commit.txt"))
    monkeypatch.setenv("CONFIG_COMMIT_PATH", str(root / "config-commit.txt"))
    return spec_path


def test_validate_valid_spec():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "spec.yaml"
        path.write_text(yaml.safe_dump(_spec_data()))

        result = CliRunner().invoke(main, ["validate", str(path)])

        assert result.exit_code == 0
        assert "Spec is valid" in result.output


def test_validate_invalid_spec():
    with tempfile.TemporaryDirectory() as tmpdir:
        data = _spec_data()
        data["files"][0]["type"] = "symlink"
        path = Path(tmpdir) / "spec.yaml"
        path.write_text(yaml.safe_dump(data))

        result = CliRunner().invoke(main, ["validate", str(path)])

        assert result.exit_code == 1
        assert "Validation FAILED" in result.output
        assert "files[0].type" in result.output


def test_validate_unparseable_file():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "spec.yaml"
        path.write_text("edgeCD: [unclosed\n")

        result = CliRunner().invoke(main, ["validate", str(path)])

        assert result.exit_code == 1
        assert "Failed to parse" in result.output


def test_status_shows_recorded_commits(monkeypatch):
    with tempfile.TemporaryDirectory() as tmpdir:
        _setup(tmpdir, monkeypatch, _spec_data())
        (Path(tmpdir) / "edge-cd-commit.txt").write_text("abc123\n")

        result = CliRunner().invoke(main, ["status"])

        assert result.exit_code == 0
        assert "abc123" in result.output
        assert "(none)" in result.output


def test_status_local_config_repo_is_untracked(monkeypatch):
    with tempfile.TemporaryDirectory() as tmpdir:
        _setup(tmpdir, monkeypatch, _spec_data(config_url="file:///cfg"))

        result = CliRunner().invoke(main, ["status"])

        assert result.exit_code == 0
        assert "untracked" in result.output


def test_status_without_config_path(monkeypatch):
    monkeypatch.delenv("CONFIG_PATH", raising=False)

    result = CliRunner().invoke(main, ["status"])

    assert result.exit_code == 1
    assert "CONFIG_PATH" in result.output


def test_status_with_malformed_spec_exits_cleanly(monkeypatch):
    with tempfile.TemporaryDirectory() as tmpdir:
        data = _spec_data()
        data["edgeCD"]["repo"] = "https://git.example.com/edge-cd.git"
        _setup(tmpdir, monkeypatch, data)

        result = CliRunner().invoke(main, ["status"])

        assert result.exit_code == 1
        assert "Configuration error" in result.output
        assert "edgeCD.repo must be a mapping" in result.output
