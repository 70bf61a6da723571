"""Drift detection — bring managed files in line with the configuration repository.

A target has drifted when its destination is missing or its bytes differ from
the desired bytes. Comparison is byte-exact: no hashing, no mtime or size
shortcuts. On drift the destination is rewritten and its mode set, and the
target's sync effect is reported back to the caller.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path

from edgecd.models import (
    DirectoryCopy,
    FileCopy,
    FileTarget,
    InlineContent,
    SyncEffect,
)

logger = logging.getLogger(__name__)

DEFAULT_FILE_MODE = 0o644
DEFAULT_DIRECTORY_MODE = 0o755
MAX_MODE = 0o7777
OCTAL_MODE = re.compile(r"[0-7]+")


class UnknownTargetError(TypeError):
    """A file target is not one of the known variants."""


@dataclass
class ReconcileResult:
    """Effects requested by the targets that drifted during one call.

    ``services_to_restart`` is not deduplicated; that is the job of the
    runtime state the result is merged into.
    """

    services_to_restart: list[str] = field(default_factory=list)
    requires_reboot: bool = False
    updated_paths: list[Path] = field(default_factory=list)

    def record(self, dest: Path, effect: SyncEffect | None) -> None:
        self.updated_paths.append(dest)
        if effect is None:
            return
        self.services_to_restart.extend(effect.restart_services)
        if effect.reboot:
            self.requires_reboot = True


def files_equal(path_a: str | Path, path_b: str | Path) -> bool:
    """Byte-for-byte comparison. A file that cannot be read is never equal."""
    try:
        return Path(path_a).read_bytes() == Path(path_b).read_bytes()
    except OSError:
        return False


def parse_file_mode(
    mode: str,
    default: int = DEFAULT_FILE_MODE,
    log: logging.Logger | None = None,
) -> int:
    """Parse an octal mode string such as ``"755"``.

    Empty strings give ``default``. Strings that are not plain octal digits, or fall outside
    ``0..0o7777``, log a warning and give ``default``.
    """
    if not mode:
        return default
    value = int(mode, 8) if OCTAL_MODE.fullmatch(mode) else -1
    if not 0 <= value <= MAX_MODE:
        (log or logger).warning(
            "Invalid file mode %r, using default %s", mode, oct(default)
        )
        return default
    return value


def _raise_walk_error(error: OSError) -> None:
    # An unreadable subtree must fail the batch, not read as "in sync".
    raise error


class FileReconciler:
    """Applies ``FileTarget`` entries from the configuration repository."""

    def __init__(self, logger: logging.Logger | None = None):
        self.log = logger or logging.getLogger(__name__)

    def reconcile_files(
        self,
        config_repo_path: str | Path,
        config_path: str,
        targets: list[FileTarget],
    ) -> ReconcileResult:
        """Reconcile every target, in declaration order.

        Args:
            config_repo_path: Local checkout of the configuration repository.
            config_path: This node's directory inside that repository; source
                paths are relative to it.
            targets: The declared file targets.

        Raises:
            UnknownTargetError: If a target is not a known variant. Targets
                before it have already been applied.
            OSError: If a source cannot be read or a drifted destination cannot be written.
        """
        source_root = Path(config_repo_path) / config_path
        result = ReconcileResult()

        for target in targets:
            if isinstance(target, FileCopy):
                self._reconcile_file(source_root, target, result)
            elif isinstance(target, DirectoryCopy):
                self._reconcile_directory(source_root, target, result)
            elif isinstance(target, InlineContent):
                self._reconcile_content(target, result)
            else:
                raise UnknownTargetError(f"Unknown file target: {target!r}")

        return result

    def _reconcile_file(self, source_root: Path, target: FileCopy, result: ReconcileResult) -> None:
        src = source_root / target.src_path
        dest = Path(target.dest_path)
        mode = parse_file_mode(target.file_mode, DEFAULT_FILE_MODE, self.log)
        if self._copy_if_drifted(src, dest, mode):
            result.record(dest, target.sync_effect)

    def _reconcile_directory(
        self, source_root: Path, target: DirectoryCopy, result: ReconcileResult
    ) -> None:
        src_root = source_root / target.src_path
        dest_root = Path(target.dest_path)
        mode = parse_file_mode(target.file_mode, DEFAULT_DIRECTORY_MODE, self.log)

        if not src_root.is_dir():
            raise FileNotFoundError(f"Source directory not found: {src_root}")

        dest_root.mkdir(parents=True, exist_ok=True)

        for dirpath, dirnames, filenames in os.walk(src_root, onerror=_raise_walk_error):
            dirnames.sort()
            rel_dir = Path(dirpath).relative_to(src_root)
            for name in dirnames:
                (dest_root / rel_dir / name).mkdir(parents=True, exist_ok=True)
            for name in sorted(filenames):
                src = Path(dirpath) / name
                dest = dest_root / rel_dir / name
                # Each drifted file reports the directory's effect on its own.
                if self._copy_if_drifted(src, dest, mode):
                    result.record(dest, target.sync_effect)

    def _reconcile_content(self, target: InlineContent, result: ReconcileResult) -> None:
        dest = Path(target.dest_path)
        desired = target.content.encode("utf-8")

        try:
            if dest.read_bytes() == desired:
                return
        except OSError:
            pass  # missing or unreadable destination is drift

        self.log.info("Drift detected: updating file %s", dest)
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_bytes(desired)
        os.chmod(dest, parse_file_mode(target.file_mode, DEFAULT_FILE_MODE, self.log))
        result.record(dest, target.sync_effect)

    def _copy_if_drifted(self, src: Path, dest: Path, mode: int) -> bool:
        """Copy ``src`` over ``dest`` when their bytes differ. Returns True if copied."""
        if files_equal(src, dest):
            return False

        self.log.info("Drift detected: updating file %s", dest)
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_bytes(src.read_bytes())
        os.chmod(dest, mode)
        return True
