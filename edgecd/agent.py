"""Agent — wire the collaborators together and run the reconciliation loop.

The loop runs in a worker thread while the main thread waits for SIGINT or
SIGTERM; either signal sets the stop event, which also cuts the current sleep
short.
"""

from __future__ import annotations

import logging
import signal
import threading

from edgecd.config.loader import Config
from edgecd.sync.drift import FileReconciler
from edgecd.sync.reconciler import Reconciler
from edgecd.system.package_manager import CommandPackageManager
from edgecd.system.reboot import CommandRebooter
from edgecd.system.service_manager import CommandServiceManager
from edgecd.utils.git_ops import GitRepoManager
from edgecd.utils.lock import ProcessLock

logger = logging.getLogger(__name__)

STOP_SIGNALS = (signal.SIGINT, signal.SIGTERM)


def build_reconciler(config: Config, log: logging.Logger | None = None) -> Reconciler:
    """Create a ``Reconciler`` backed by git, the command tables, and the real filesystem.

    Raises:
        OSError: If a package or service manager command table is missing.
        yaml.YAMLError: If a command table is not valid YAML.
    """
    spec = config.spec
    return Reconciler(
        config,
        repos=GitRepoManager(logger=log),
        packages=CommandPackageManager.from_repo(
            spec.package_manager.name, config.edge_cd_repo_path, logger=log
        ),
        services=CommandServiceManager.from_repo(
            spec.service_manager.name, config.edge_cd_repo_path, logger=log
        ),
        files=FileReconciler(logger=log),
        rebooter=CommandRebooter(logger=log),
        logger=log,
    )


def run_agent(config: Config, reconciler: Reconciler | None = None) -> None:
    """Run the agent until SIGINT or SIGTERM, holding the process lock throughout.

    Raises:
        LockHeldError: If another agent is already running on this node.
    """
    reconciler = reconciler or build_reconciler(config)
    stop_event = threading.Event()

    def _handle_signal(signum, frame):
        logger.info("Received shutdown signal %s", signal.Signals(signum).name)
        stop_event.set()

    with ProcessLock(config.lock_path):
        previous = {sig: signal.signal(sig, _handle_signal) for sig in STOP_SIGNALS}
        worker = threading.Thread(
            target=reconciler.run, args=(stop_event,), name="edgecd-reconciler", daemon=True
        )
        try:
            logger.info(
                "Starting edge-cd (config repo %s, polling every %ss)",
                config.spec.config.repo.url, reconciler.polling_interval,
            )
            worker.start()
            while worker.is_alive():
                worker.join(timeout=1.0)
        finally:
            stop_event.set()
            for sig, handler in previous.items():
                signal.signal(sig, handler)

    logger.info("edge-cd stopped")
