"""Tests for the commit ledger."""

import tempfile
from pathlib import Path

from edgecd.sync.ledger import CommitLedger


def test_read_missing_file_returns_empty():
    with tempfile.TemporaryDirectory() as tmpdir:
        ledger = CommitLedger(Path(tmpdir) / "missing.txt")
        assert ledger.read() == ""
        assert ledger.differs_from("abc123")


def test_read_trims_whitespace():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "commit.txt"
        path.write_text("  abc123\n")
        assert CommitLedger(path).read() == "abc123"


def test_read_directory_returns_empty():
    with tempfile.TemporaryDirectory() as tmpdir:
        assert CommitLedger(tmpdir).read() == ""


def test_write_creates_parent_dirs():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "state" / "edge-cd" / "commit.txt"
        ledger = CommitLedger(path)
        ledger.write("def456")

        assert path.read_text() == "def456"
        assert ledger.read() == "def456"
        assert not ledger.differs_from("def456")
        assert ledger.differs_from("abc123")


def test_write_overwrites_previous_commit():
    with tempfile.TemporaryDirectory() as tmpdir:
        ledger = CommitLedger(Path(tmpdir) / "commit.txt")
        ledger.write("old123")
        ledger.write("new456")
        assert ledger.read() == "new456"
