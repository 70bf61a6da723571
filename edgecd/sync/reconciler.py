"""Reconciler — the control loop that converges this node on its spec.

Each iteration runs the same fixed sequence:

1. Sync the edge-cd (control-plane) repository
2. Sync the configuration repository (skipped for ``file://`` URLs)
3. Compare the config commit against the commit ledger
4. Install required packages, only if the config changed
5. Upgrade required packages, if auto-upgrade is on
6. Detect edge-cd self-updates and keep the edge-cd service enabled
7. Reconcile managed files
8. Reboot if any effect asked for it (ends the iteration)
9. Otherwise enable and restart every scheduled service
10. Record the config commit in the ledger

then sleeps until the next poll. A failing collaborator never aborts the
iteration: the failure is logged and the next poll re-evaluates everything.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from edgecd.config.loader import Config
from edgecd.sync.contracts import (
    FileTargetReconciler,
    PackageManager,
    Rebooter,
    RepoManager,
    ServiceManager,
)
from edgecd.sync.drift import UnknownTargetError
from edgecd.sync.ledger import CommitLedger
from edgecd.sync.runtime import RuntimeState


DEFAULT_POLLING_INTERVAL = 60
EDGE_CD_SERVICE = "edge-cd"
EDGE_CD_SCOPE = ["cmd/edge-cd"]
# Files whose change means the running agent itself is out of date.
SELF_UPDATE_PATHS = frozenset({"cmd/edge-cd/edge-cd", "cmd/edge-cd-go/main.go"})

_FAILED = object()


@dataclass
class IterationReport:
    """What a single reconciliation pass did."""

    config_changed: bool = False
    config_commit: str = ""
    edge_cd_commit: str = ""
    files_updated: int = 0
    services_restarted: list[str] = field(default_factory=list)
    rebooted: bool = False
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def summary(self) -> str:
        lines = [
            f"Config changed:     {'yes' if self.config_changed else 'no'}",
            f"Config commit:      {self.config_commit or '(untracked)'}",
            f"Edge-cd commit:     {self.edge_cd_commit or '(unknown)'}",
            f"Files updated:      {self.files_updated}",
            f"Services restarted: {', '.join(self.services_restarted) or '(none)'}",
            f"Reboot:             {'triggered' if self.rebooted else 'no'}",
            f"Errors:             {len(self.errors)}",
        ]
        return "\n".join(lines)


class Reconciler:
    """Runs reconciliation iterations against injected collaborators."""

    def __init__(
        self,
        config: Config,
        repos: RepoManager,
        packages: PackageManager,
        services: ServiceManager,
        files: FileTargetReconciler,
        rebooter: Rebooter,
        logger: logging.Logger | None = None,
    ):
        self.config = config
        self.repos = repos
        self.packages = packages
        self.services = services
        self.files = files
        self.rebooter = rebooter
        self.log = logger or logging.getLogger(__name__)
        self.config_ledger = CommitLedger(config.config_commit_path)
        self.edge_cd_ledger = CommitLedger(config.edge_cd_commit_path)

    @property
    def spec(self):
        return self.config.spec

    @property
    def polling_interval(self) -> int:
        interval = self.spec.polling_interval
        return interval if interval > 0 else DEFAULT_POLLING_INTERVAL

    @property
    def config_is_local(self) -> bool:
        return self.spec.config.repo.is_local

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    def run(self, stop_event: threading.Event) -> None:
        """Reconcile and sleep until ``stop_event`` is set."""
        while not stop_event.is_set():
            self.reconcile_once()
            self.sleep(stop_event)
        self.log.info("Shutting down gracefully")

    def sleep(self, stop_event: threading.Event) -> bool:
        """Wait one polling interval. Returns True if woken by ``stop_event``."""
        interval = self.polling_interval
        self.log.info("Sleeping for %ss", interval)
        return stop_event.wait(interval)

    def reconcile_once(self) -> IterationReport:
        """Run one full iteration and report what it did."""
        report = IterationReport()
        state = RuntimeState()

        self.sync_edge_cd_repo(report)
        self.sync_config_repo(report)

        report.config_changed = self.is_config_changed(report)
        if report.config_changed:
            self.reconcile_packages(report)
        self.reconcile_auto_upgrade(report)

        self.reconcile_edge_cd(state, report)
        files_ok = self.reconcile_files(state, report)

        if state.reboot:
            self.reboot(report)
            return report

        self.restart_services(state, report)

        if files_ok:
            self.commit_last_change(report)
        else:
            self.log.warning("Files were not fully reconciled, config commit not recorded")
        return report

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def sync_edge_cd_repo(self, report: IterationReport) -> None:
        repo = self.spec.edge_cd.repo
        self._attempt(
            report,
            "sync edge-cd repo",
            self.repos.clone_or_sync,
            repo.url,
            repo.branch,
            self.config.edge_cd_repo_path,
            list(EDGE_CD_SCOPE),
        )

    def sync_config_repo(self, report: IterationReport) -> None:
        repo = self.spec.config.repo
        if self.config_is_local:
            self.log.info("Using local file-based repository for config, skipping git sync")
            return
        self._attempt(
            report,
            "sync config repo",
            self.repos.clone_or_sync,
            repo.url,
            repo.branch,
            self.config.config_repo_path,
            [self.spec.config.path],
        )

    def is_config_changed(self, report: IterationReport | None = None) -> bool:
        """True when the config repository moved since the last recorded commit.

        Local repositories have no commit identity and always count as unchanged.
        An empty ledger counts as changed.
        """
        if self.config_is_local:
            self.log.info("Using local file-based repository, skipping commit tracking")
            return False

        report = report if report is not None else IterationReport()
        current = self._attempt(
            report, "get config commit", self.repos.current_commit, self.config.config_repo_path
        )
        if current is _FAILED:
            return False
        report.config_commit = current

        if not self.config_ledger.differs_from(current):
            self.log.info("Config already in sync at commit %s", current)
            return False

        self.log.info("Starting configuration synchronization at commit %s", current)
        return True

    def reconcile_packages(self, report: IterationReport) -> None:
        packages = self.spec.package_manager.required_packages
        if not packages:
            return
        self.log.info("Reconciling packages: %s", ", ".join(packages))
        self._attempt(report, "install packages", self.packages.install, list(packages))

    def reconcile_auto_upgrade(self, report: IterationReport) -> None:
        pkg = self.spec.package_manager
        if not pkg.auto_upgrade or not pkg.required_packages:
            return
        self.log.info("Auto-upgrading packages: %s", ", ".join(pkg.required_packages))
        self._attempt(report, "upgrade packages", self.packages.upgrade, list(pkg.required_packages))

    def reconcile_edge_cd(self, state: RuntimeState, report: IterationReport) -> None:
        """Schedule an edge-cd restart if its own entry point changed, and keep it enabled.

        A missing ledger entry (first run) never schedules a restart: there is
        no previous commit to diff against.
        """
        self.log.info("Reconciling edge-cd")
        repo_path = self.config.edge_cd_repo_path
        last = self.edge_cd_ledger.read()
        current = self._attempt(report, "get edge-cd commit", self.repos.current_commit, repo_path)

        if current is not _FAILED:
            report.edge_cd_commit = current
            if last and last != current:
                changed = self._attempt(
                    report, "diff edge-cd commits", self.repos.changed_files, repo_path, last, current
                )
                if changed is not _FAILED and SELF_UPDATE_PATHS.intersection(changed):
                    self.log.info("edge-cd entry point changed, scheduling service restart")
                    state.add_service_restart(EDGE_CD_SERVICE)

        self._attempt(report, "enable edge-cd service", self.services.enable, EDGE_CD_SERVICE)

        if current is not _FAILED:
            self._attempt(report, "record edge-cd commit", self.edge_cd_ledger.write, current)

    def reconcile_files(self, state: RuntimeState, report: IterationReport) -> bool:
        """Apply file targets and merge their effects. Returns False if the batch failed."""
        targets = self.spec.files
        if not targets:
            return True

        self.log.info("Reconciling files")
        try:
            result = self.files.reconcile_files(
                self.config.config_repo_path, self.spec.config.path, targets
            )
        except UnknownTargetError as e:
            self._record_failure(report, "reconcile files (malformed target)", e)
            return False
        except Exception as e:
            self._record_failure(report, "reconcile files", e)
            return False

        report.files_updated = len(result.updated_paths)
        state.merge(result.services_to_restart, result.requires_reboot)
        return True

    def reboot(self, report: IterationReport) -> None:
        self.log.info("Rebooting now")
        report.rebooted = True
        self._attempt(report, "reboot", self.rebooter.reboot)

    def restart_services(self, state: RuntimeState, report: IterationReport) -> None:
        services = state.services_to_restart()
        if not services:
            return

        self.log.info("Restarting services: %s", ", ".join(services))
        for service in services:
            # Enable first so the service also comes back after a reboot.
            self._attempt(report, f"enable service {service}", self.services.enable, service)
            restarted = self._attempt(
                report, f"restart service {service}", self.services.restart, service
            )
            if restarted is not _FAILED:
                report.services_restarted.append(service)

    def commit_last_change(self, report: IterationReport) -> None:
        if self.config_is_local:
            return

        current = self._attempt(
            report, "get config commit", self.repos.current_commit, self.config.config_repo_path
        )
        if current is _FAILED:
            return
        if self._attempt(report, "record config commit", self.config_ledger.write, current) is _FAILED:
            return

        report.config_commit = current
        self.log.info("Synced commit %s successfully", current)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _attempt(self, report: IterationReport, action: str, fn: Callable[..., Any], *args: Any) -> Any:
        """Call a collaborator; on failure log it, note it in the report, and return ``_FAILED``."""
        try:
            return fn(*args)
        except Exception as e:
            self._record_failure(report, action, e)
            return _FAILED

    def _record_failure(self, report: IterationReport, action: str, error: Exception) -> None:
        self.log.error("Failed to %s: %s", action, error)
        report.errors.append(f"{action}: {error}")
