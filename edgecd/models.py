"""Core data models for the edge-cd desired-state document.

Covers: the control-plane and configuration repositories, package and service
manager selection, logging, and the managed file targets with their sync effects.
The models are read-only for the reconciliation core; only the config loader
builds them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Union

DEFAULT_BRANCH = "main"
DEFAULT_SPEC_FILE = "spec.yaml"
DEFAULT_FILE_MODE = "644"
DEFAULT_DIRECTORY_MODE = "755"
LOCAL_URL_SCHEME = "file://"


class FileType(Enum):
    """Discriminator used by the ``files`` section of the spec."""

    FILE = "file"  # Copy a single file from the config repo
    DIRECTORY = "directory"  # Mirror a directory tree from the config repo
    CONTENT = "content"  # Write literal inline content


# --- Repositories ---


@dataclass
class RepoConfig:
    """The edge-cd control-plane repository (uses ``destinationPath``)."""

    url: str
    branch: str = DEFAULT_BRANCH
    destination_path: str = ""


@dataclass
class ConfigRepo:
    """The user configuration repository (uses ``destPath``)."""

    url: str
    branch: str = DEFAULT_BRANCH
    dest_path: str = ""

    @property
    def is_local(self) -> bool:
        return is_local_url(self.url)


@dataclass
class EdgeCDSection:
    repo: RepoConfig
    commit_path: str = ""


@dataclass
class ConfigSection:
    path: str
    repo: ConfigRepo
    spec: str = DEFAULT_SPEC_FILE
    commit_path: str = ""


# --- Managers ---


@dataclass
class ServiceManagerSection:
    name: str = ""


@dataclass
class PackageManagerSection:
    name: str = ""
    auto_upgrade: bool = False
    required_packages: list[str] = field(default_factory=list)


@dataclass
class LogSection:
    format: str = ""  # console | json


# --- File targets ---


@dataclass
class SyncEffect:
    """What to do when a managed file changes."""

    restart_services: list[str] = field(default_factory=list)
    reboot: bool = False


@dataclass
class FileCopy:
    """Copy ``src_path`` (relative to the config path) to ``dest_path``."""

    src_path: str
    dest_path: str
    file_mode: str = DEFAULT_FILE_MODE
    sync_effect: SyncEffect | None = None

    type = FileType.FILE


@dataclass
class DirectoryCopy:
    """Mirror the tree under ``src_path`` into ``dest_path``, file by file."""

    src_path: str
    dest_path: str
    file_mode: str = DEFAULT_DIRECTORY_MODE
    sync_effect: SyncEffect | None = None

    type = FileType.DIRECTORY


@dataclass
class InlineContent:
    """Write ``content`` verbatim to ``dest_path``."""

    content: str
    dest_path: str
    file_mode: str = DEFAULT_FILE_MODE
    sync_effect: SyncEffect | None = None

    type = FileType.CONTENT


FileTarget = Union[FileCopy, DirectoryCopy, InlineContent]


# --- Spec ---


@dataclass
class Spec:
    """The complete desired state of one node."""

    edge_cd: EdgeCDSection
    config: ConfigSection
    polling_interval: int = 0
    service_manager: ServiceManagerSection = field(default_factory=ServiceManagerSection)
    package_manager: PackageManagerSection = field(default_factory=PackageManagerSection)
    files: list[FileTarget] = field(default_factory=list)
    log: LogSection = field(default_factory=LogSection)
    extra_envs: list[dict[str, str]] = field(default_factory=list)


def is_local_url(url: str) -> bool:
    """True for repositories that live on the local filesystem (no fetch, no commit tracking)."""
    return url.startswith(LOCAL_URL_SCHEME)


def parse_spec(data: dict) -> Spec:
    """Build a ``Spec`` from a parsed YAML document.

    The document is expected to have passed ``validate_spec`` already; missing
    optional keys fall back to their defaults.
    """
    edge_cd = data.get("edgeCD") or {}
    edge_repo = edge_cd.get("repo") or {}
    config = data.get("config") or {}
    config_repo = config.get("repo") or {}
    pkg = data.get("packageManager") or {}
    svc = data.get("serviceManager") or {}
    log = data.get("log") or {}

    return Spec(
        edge_cd=EdgeCDSection(
            repo=RepoConfig(
                url=edge_repo.get("url", ""),
                branch=edge_repo.get("branch") or DEFAULT_BRANCH,
                destination_path=edge_repo.get("destinationPath", ""),
            ),
            commit_path=edge_cd.get("commitPath", ""),
        ),
        config=ConfigSection(
            path=config.get("path", ""),
            spec=config.get("spec") or DEFAULT_SPEC_FILE,
            repo=ConfigRepo(
                url=config_repo.get("url", ""),
                branch=config_repo.get("branch") or DEFAULT_BRANCH,
                dest_path=config_repo.get("destPath", ""),
            ),
            commit_path=config.get("commitPath", ""),
        ),
        polling_interval=int(data.get("pollingIntervalSecond") or 0),
        service_manager=ServiceManagerSection(name=svc.get("name", "")),
        package_manager=PackageManagerSection(
            name=pkg.get("name", ""),
            auto_upgrade=bool(pkg.get("autoUpgrade", False)),
            required_packages=list(pkg.get("requiredPackages") or []),
        ),
        files=[parse_file_target(f) for f in data.get("files") or []],
        log=LogSection(format=log.get("format", "")),
        extra_envs=list(data.get("extraEnvs") or []),
    )


def parse_file_target(data: dict) -> FileTarget:
    """Build the matching ``FileTarget`` variant from one ``files`` entry.

    Raises:
        ValueError: If ``type`` is not one of file, directory, content.
    """
    try:
        file_type = FileType(data.get("type", ""))
    except ValueError:
        raise ValueError(f"Unknown file type: {data.get('type')!r}")

    effect = _parse_sync_effect(data.get("syncBehavior"))
    mode = str(data.get("fileMod") or "")

    if file_type is FileType.CONTENT:
        return InlineContent(
            content=data.get("content", ""),
            dest_path=data.get("destPath", ""),
            file_mode=mode or DEFAULT_FILE_MODE,
            sync_effect=effect,
        )
    if file_type is FileType.DIRECTORY:
        return DirectoryCopy(
            src_path=data.get("srcPath", ""),
            dest_path=data.get("destPath", ""),
            file_mode=mode or DEFAULT_DIRECTORY_MODE,
            sync_effect=effect,
        )
    return FileCopy(
        src_path=data.get("srcPath", ""),
        dest_path=data.get("destPath", ""),
        file_mode=mode or DEFAULT_FILE_MODE,
        sync_effect=effect,
    )


def _parse_sync_effect(data: dict | None) -> SyncEffect | None:
    if not data:
        return None
    return SyncEffect(
        restart_services=list(data.get("restartServices") or []),
        reboot=bool(data.get("reboot", False)),
    )
