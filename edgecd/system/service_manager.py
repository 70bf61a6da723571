"""Service manager — enable, restart, and start services through a command table.

Command tables live in the edge-cd repository at
``cmd/edge-cd/service-managers/<name>/config.yaml``::

    commands:
      enable: [systemctl, enable, __SERVICE_NAME__]
      restart: [systemctl, restart, __SERVICE_NAME__]
      start: [systemctl, start, __SERVICE_NAME__]
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass, field
from pathlib import Path

import yaml


SERVICE_MANAGERS_DIR = Path("cmd") / "edge-cd" / "service-managers"
SERVICE_NAME_PLACEHOLDER = "__SERVICE_NAME__"


@dataclass
class ServiceManagerCommands:
    enable: list[str] = field(default_factory=list)
    restart: list[str] = field(default_factory=list)
    start: list[str] = field(default_factory=list)  # optional; some managers have no start


def load_service_manager_commands(name: str, edge_cd_repo_path: str | Path) -> ServiceManagerCommands:
    """Read the command table for service manager ``name``.

    Raises:
        OSError: If the table does not exist.
        yaml.YAMLError: If it is not valid YAML.
    """
    path = Path(edge_cd_repo_path) / SERVICE_MANAGERS_DIR / name / "config.yaml"
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    commands = data.get("commands") or {}
    return ServiceManagerCommands(
        enable=list(commands.get("enable") or []),
        restart=list(commands.get("restart") or []),
        start=list(commands.get("start") or []),
    )


def render_command(template: list[str], service: str) -> list[str]:
    """Substitute the service name into every argument of a command template."""
    return [arg.replace(SERVICE_NAME_PLACEHOLDER, service) for arg in template]


class CommandServiceManager:
    """Service manager driven by a command table."""

    def __init__(
        self,
        name: str,
        commands: ServiceManagerCommands,
        logger: logging.Logger | None = None,
    ):
        self.name = name
        self.commands = commands
        self.log = logger or logging.getLogger(__name__)

    @classmethod
    def from_repo(
        cls, name: str, edge_cd_repo_path: str | Path, logger: logging.Logger | None = None
    ) -> "CommandServiceManager":
        return cls(name, load_service_manager_commands(name, edge_cd_repo_path), logger=logger)

    def enable(self, service: str) -> None:
        self.log.info("Enabling service %s", service)
        self._run("enable", self.commands.enable, service)

    def restart(self, service: str) -> None:
        self.log.info("Restarting service %s", service)
        self._run("restart", self.commands.restart, service)

    def start(self, service: str) -> None:
        if not self.commands.start:
            self.log.info("Service manager %s has no start command, skipping", self.name)
            return
        self.log.info("Starting service %s", service)
        self._run("start", self.commands.start, service)

    def _run(self, action: str, template: list[str], service: str) -> None:
        if not template:
            raise RuntimeError(f"{action} command not configured for service manager '{self.name}'")
        try:
            subprocess.run(render_command(template, service), check=True, capture_output=True, text=True)
        except subprocess.CalledProcessError as e:
            self.log.error("Service %s failed for %s (exit %d)", action, service, e.returncode)
            raise
