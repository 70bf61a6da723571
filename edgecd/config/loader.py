"""Config loader — read the spec from the config repository and compute runtime paths."""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

import yaml

from edgecd.config.validator import validate_spec
from edgecd.models import DEFAULT_SPEC_FILE, Spec, parse_spec

DEFAULT_CONFIG_REPO_DEST_PATH = "/usr/local/src/edge-cd-config"
DEFAULT_EDGE_CD_REPO_PATH = "/usr/local/src/edge-cd"
DEFAULT_LOCK_DIRNAME = "/tmp/edge-cd"
DEFAULT_EDGE_CD_COMMIT_PATH = "/tmp/edge-cd/edge-cd-last-synchronized-commit.txt"
DEFAULT_CONFIG_COMMIT_PATH = "/tmp/edge-cd/config-last-synchronized-commit.txt"
DEFAULT_LOG_FORMAT = "console"
LOCK_FILE_NAME = "edge-cd.lock"

_ZERO_PREFIXED = re.compile(r"0[0-7_]+")


class ConfigError(ValueError):
    """The configuration could not be loaded. Fatal at startup."""


class SpecLoader(yaml.SafeLoader):
    """SafeLoader that keeps zero-prefixed numbers such as ``0644`` as strings.

    YAML 1.1 reads an unquoted ``fileMod: 0644`` as the octal integer 420;
    file modes must reach the drift engine exactly as written.
    """


def _construct_int(loader: SpecLoader, node: yaml.ScalarNode):
    if _ZERO_PREFIXED.fullmatch(node.value):
        return loader.construct_scalar(node)
    return loader.construct_yaml_int(node)


SpecLoader.add_constructor("tag:yaml.org,2002:int", _construct_int)


def read_spec_document(stream):
    """Parse a spec document with ``SpecLoader``."""
    return yaml.load(stream, Loader=SpecLoader)


@dataclass
class Config:
    """The parsed spec plus every path the agent needs at runtime."""

    spec: Spec
    lock_path: Path
    edge_cd_repo_path: Path
    edge_cd_commit_path: Path
    config_repo_path: Path
    config_commit_path: Path
    config_spec_path: Path
    log_format: str = DEFAULT_LOG_FORMAT


def resolve_value(env_value: str | None, yaml_value: str | None, default: str) -> str:
    """Return the first non-empty value with precedence env > yaml > default."""
    if env_value:
        return env_value
    if yaml_value:
        return yaml_value
    return default


def load_config(environ: Mapping[str, str] | None = None) -> Config:
    """Load the edge-cd configuration.

    ``CONFIG_PATH`` (the node's directory inside the config repository) is
    required; everything else has a default.

    Args:
        environ: Environment to read from. Defaults to ``os.environ``.

    Raises:
        ConfigError: If ``CONFIG_PATH`` is unset, or the spec file is missing,
            is not valid YAML, or fails validation.
    """
    env = os.environ if environ is None else environ

    config_path = env.get("CONFIG_PATH", "")
    if not config_path:
        raise ConfigError("CONFIG_PATH environment variable must be set")

    spec_file = resolve_value(env.get("CONFIG_SPEC_FILE"), None, DEFAULT_SPEC_FILE)
    config_repo_path = Path(
        resolve_value(env.get("CONFIG_REPO_DEST_PATH"), None, DEFAULT_CONFIG_REPO_DEST_PATH)
    )
    spec_path = config_repo_path / config_path / spec_file

    spec = load_spec(spec_path)

    lock_dir = resolve_value(env.get("LOCK_FILE_DIRNAME"), None, DEFAULT_LOCK_DIRNAME)

    return Config(
        spec=spec,
        lock_path=Path(lock_dir) / LOCK_FILE_NAME,
        edge_cd_repo_path=Path(resolve_value(
            env.get("EDGE_CD_REPO_DESTINATION_PATH"),
            spec.edge_cd.repo.destination_path,
            DEFAULT_EDGE_CD_REPO_PATH,
        )),
        edge_cd_commit_path=Path(resolve_value(
            env.get("EDGE_CD_COMMIT_PATH"),
            spec.edge_cd.commit_path,
            DEFAULT_EDGE_CD_COMMIT_PATH,
        )),
        config_repo_path=config_repo_path,
        config_commit_path=Path(resolve_value(
            env.get("CONFIG_COMMIT_PATH"),
            spec.config.commit_path,
            DEFAULT_CONFIG_COMMIT_PATH,
        )),
        config_spec_path=spec_path,
        log_format=resolve_value(env.get("LOG_FORMAT"), spec.log.format, DEFAULT_LOG_FORMAT),
    )


def load_spec(spec_path: str | Path) -> Spec:
    """Read, validate, and parse a spec file.

    Raises:
        ConfigError: If the file cannot be read, parsed, or validated.
    """
    path = Path(spec_path)
    try:
        with open(path) as f:
            data = read_spec_document(f)
    except OSError as e:
        raise ConfigError(f"Failed to read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse config file {path}: {e}") from e

    issues = validate_spec(data)
    if issues:
        raise ConfigError("Invalid configuration: " + "; ".join(issues))

    return parse_spec(data)
