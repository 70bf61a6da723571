"""Package manager — run the update/install/upgrade commands declared for a distribution.

Command tables live in the edge-cd repository at
``cmd/edge-cd/package-managers/<name>.yaml``::

    update: [apt-get, update]
    install: [apt-get, install, -y]
    upgrade: [apt-get, install, -y, --only-upgrade]
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass, field
from pathlib import Path

import yaml


PACKAGE_MANAGERS_DIR = Path("cmd") / "edge-cd" / "package-managers"


@dataclass
class PackageManagerCommands:
    update: list[str] = field(default_factory=list)
    install: list[str] = field(default_factory=list)
    upgrade: list[str] = field(default_factory=list)


def load_package_manager_commands(name: str, edge_cd_repo_path: str | Path) -> PackageManagerCommands:
    """Read the command table for package manager ``name``.

    Raises:
        OSError: If the table does not exist.
        yaml.YAMLError: If it is not valid YAML.
    """
    path = Path(edge_cd_repo_path) / PACKAGE_MANAGERS_DIR / f"{name}.yaml"
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    return PackageManagerCommands(
        update=list(data.get("update") or []),
        install=list(data.get("install") or []),
        upgrade=list(data.get("upgrade") or []),
    )


class CommandPackageManager:
    """Package manager driven by a command table."""

    def __init__(
        self,
        name: str,
        commands: PackageManagerCommands,
        logger: logging.Logger | None = None,
    ):
        self.name = name
        self.commands = commands
        self.log = logger or logging.getLogger(__name__)

    @classmethod
    def from_repo(
        cls, name: str, edge_cd_repo_path: str | Path, logger: logging.Logger | None = None
    ) -> "CommandPackageManager":
        return cls(name, load_package_manager_commands(name, edge_cd_repo_path), logger=logger)

    def update(self) -> None:
        """Refresh the package index."""
        self.log.info("Updating package index (%s)", self.name)
        self._run("update", self.commands.update)

    def install(self, packages: list[str]) -> None:
        """Refresh the index, then install ``packages``."""
        if not packages:
            self.log.info("No packages to install")
            return
        self.log.info("Installing packages with %s: %s", self.name, ", ".join(packages))
        self.update()
        self._run("install", self.commands.install, packages)

    def upgrade(self, packages: list[str]) -> None:
        """Refresh the index, then upgrade ``packages``."""
        if not packages:
            self.log.info("No packages to upgrade")
            return
        self.log.info("Upgrading packages with %s: %s", self.name, ", ".join(packages))
        self.update()
        self._run("upgrade", self.commands.upgrade, packages)

    def _run(self, action: str, command: list[str], args: list[str] | None = None) -> None:
        if not command:
            raise RuntimeError(f"{action} command not configured for package manager '{self.name}'")
        argv = [*command, *(args or [])]
        try:
            subprocess.run(argv, check=True, capture_output=True, text=True)
        except subprocess.CalledProcessError as e:
            self.log.error(
                "Package %s failed (%s, exit %d): %s",
                action, self.name, e.returncode, (e.stderr or "").strip()[:500],
            )
            raise
