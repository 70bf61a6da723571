"""Runtime state — the effects accumulated during one reconciliation iteration."""

from __future__ import annotations


class RuntimeState:
    """Collects services to restart and whether the node must reboot.

    A fresh instance is created at the start of every iteration and dropped at
    the end; nothing here survives between iterations.
    """

    def __init__(self) -> None:
        self._services: set[str] = set()
        self._reboot = False

    def add_service_restart(self, name: str) -> None:
        """Schedule ``name`` for restart. Adding the same service twice is a no-op."""
        self._services.add(name)

    def services_to_restart(self) -> list[str]:
        """Return the scheduled services, sorted by name."""
        return sorted(self._services)

    @property
    def reboot(self) -> bool:
        return self._reboot

    def require_reboot(self) -> None:
        """Mark the node for reboot. There is no way to clear it within an iteration."""
        self._reboot = True

    def merge(self, services: list[str], reboot: bool) -> None:
        """Fold a batch of effects (e.g. from the file reconciler) into this state."""
        for name in services:
            self.add_service_restart(name)
        if reboot:
            self.require_reboot()
