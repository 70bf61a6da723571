"""Reboot trigger."""

from __future__ import annotations

import logging
import subprocess


DEFAULT_REBOOT_COMMAND = ("reboot",)


class CommandRebooter:
    """Reboots the node by running a command. Fire-and-forget: failures are only logged."""

    def __init__(self, command: tuple[str, ...] = DEFAULT_REBOOT_COMMAND, logger: logging.Logger | None = None):
        self.command = tuple(command)
        self.log = logger or logging.getLogger(__name__)

    def reboot(self) -> None:
        self.log.info("Triggering reboot: %s", " ".join(self.command))
        try:
            subprocess.run(list(self.command), check=True)
        except (OSError, subprocess.CalledProcessError) as e:
            self.log.error("Reboot command failed: %s", e)
