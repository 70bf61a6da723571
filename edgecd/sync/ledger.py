"""Commit ledger — the last commit a tracked repository was synchronized to.

One plain-text file per repository holds the commit hash. The ledger is only
written after the step it guards has run, so the next iteration compares
against what was actually applied.
"""

from __future__ import annotations

from pathlib import Path


class CommitLedger:
    """Reads and writes the last-synchronized commit for one repository."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def read(self) -> str:
        """Return the recorded commit, or an empty string if none is readable."""
        try:
            return self.path.read_text().strip()
        except (OSError, UnicodeDecodeError):
            return ""

    def write(self, commit: str) -> None:
        """Record ``commit``, creating parent directories as needed.

        Raises:
            OSError: If the file cannot be written.
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(commit.strip())

    def differs_from(self, commit: str) -> bool:
        """True when ``commit`` is not what the ledger records (always true for an empty ledger)."""
        return self.read() != commit
