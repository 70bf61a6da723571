"""Git operations — sparse clone, sync, and commit inspection for tracked repos."""

from __future__ import annotations

import logging
from pathlib import Path

from git import InvalidGitRepositoryError, NoSuchPathError, Repo


CLONE_OPTIONS = ["--filter=blob:none", "--no-checkout"]


class GitRepoManager:
    """Keeps sparse checkouts of the edge-cd and config repositories up to date.

    Errors from git surface as ``git.GitCommandError`` (or
    ``InvalidGitRepositoryError`` when a path is not a repository); the caller
    decides whether they are fatal.
    """

    def __init__(self, logger: logging.Logger | None = None):
        self.log = logger or logging.getLogger(__name__)

    def clone_or_sync(
        self, url: str, branch: str, dest: str | Path, scope_paths: list[str]
    ) -> None:
        """Clone ``url`` into ``dest`` if it is absent, otherwise sync it in place.

        Only ``scope_paths`` are checked out (sparse checkout).
        """
        dest = Path(dest)
        if dest.exists():
            self.sync(dest, branch, scope_paths)
        else:
            self.clone(url, branch, dest, scope_paths)

    def clone(self, url: str, branch: str, dest: str | Path, scope_paths: list[str]) -> None:
        self.log.info("Cloning repository %s (branch %s) into %s", url, branch, dest)
        repo = Repo.clone_from(url, str(dest), multi_options=list(CLONE_OPTIONS))
        repo.git.sparse_checkout("init")
        repo.git.sparse_checkout("set", *scope_paths)
        repo.git.checkout(branch)
        self._fetch_and_reset(repo, branch)
        self.log.info("Repository cloned successfully into %s", dest)

    def sync(self, repo_path: str | Path, branch: str, scope_paths: list[str]) -> None:
        """Fetch ``branch`` and hard-reset the work tree to it.

        Directories that are not git work trees are left alone.
        """
        path = Path(repo_path)
        try:
            repo = Repo(path)
        except (InvalidGitRepositoryError, NoSuchPathError):
            self.log.info("Skipping git sync for non-git directory %s", path)
            return

        self.log.info("Syncing repository %s (branch %s)", path, branch)
        repo.git.sparse_checkout("set", *scope_paths)
        self._fetch_and_reset(repo, branch)
        self.log.info("Repository synced successfully: %s", path)

    def current_commit(self, repo_path: str | Path) -> str:
        """Return the hexsha of ``HEAD``."""
        commit = Repo(Path(repo_path)).head.commit.hexsha
        self.log.debug("Current commit of %s is %s", repo_path, commit)
        return commit

    def changed_files(self, repo_path: str | Path, old_commit: str, new_commit: str) -> list[str]:
        """Return the paths changed between two commits (``git diff --name-only``)."""
        output = Repo(Path(repo_path)).git.diff(old_commit, new_commit, name_only=True)
        files = [line for line in output.strip().splitlines() if line]
        self.log.info(
            "%d file(s) changed in %s between %s and %s",
            len(files), repo_path, old_commit[:7], new_commit[:7],
        )
        return files

    @staticmethod
    def _fetch_and_reset(repo: Repo, branch: str) -> None:
        repo.git.fetch("origin", branch)
        repo.git.reset("--hard", "FETCH_HEAD")
