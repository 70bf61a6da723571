"""Contracts for the collaborators the reconciler drives.

The reconciler only depends on these protocols; the concrete git, package
manager, service manager, and reboot implementations live elsewhere and any
object with the same methods can stand in for them. Every method signals
failure by raising.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

from edgecd.models import FileTarget
from edgecd.sync.drift import ReconcileResult


class RepoManager(Protocol):
    """Version control: keep a checkout in sync and inspect its history."""

    def clone_or_sync(
        self, url: str, branch: str, dest: str | Path, scope_paths: list[str]
    ) -> None:
        ...

    def current_commit(self, repo_path: str | Path) -> str:
        ...

    def changed_files(self, repo_path: str | Path, old_commit: str, new_commit: str) -> list[str]:
        ...


class PackageManager(Protocol):
    """``install`` and ``upgrade`` refresh the package index themselves."""

    def update(self) -> None:
        ...

    def install(self, packages: list[str]) -> None:
        ...

    def upgrade(self, packages: list[str]) -> None:
        ...


class ServiceManager(Protocol):
    def enable(self, service: str) -> None:
        ...

    def restart(self, service: str) -> None:
        ...

    def start(self, service: str) -> None:
        ...


class Rebooter(Protocol):
    def reboot(self) -> None:
        ...


class FileTargetReconciler(Protocol):
    def reconcile_files(
        self,
        config_repo_path: str | Path,
        config_path: str,
        targets: list[FileTarget],
    ) -> ReconcileResult:
        ...
