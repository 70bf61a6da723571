"""Validator — check an edge-cd spec document for correctness.

Runs before any model is built, so every message refers to the YAML keys the
operator actually wrote.
"""

from __future__ import annotations

from edgecd.models import FileType

VALID_FILE_TYPES = [t.value for t in FileType]
SOURCED_FILE_TYPES = {FileType.FILE.value, FileType.DIRECTORY.value}
OPTIONAL_SECTIONS = ["packageManager", "serviceManager", "log"]


def validate_spec(data: object) -> list[str]:
    """Validate a parsed spec document.

    Returns a list of issues found. Empty list means valid.
    """
    if not isinstance(data, dict):
        return ["Spec must be a mapping at the top level"]

    issues: list[str] = []

    edge_cd = data.get("edgeCD")
    if not isinstance(edge_cd, dict):
        issues.append("Missing required section: edgeCD")
    else:
        repo = edge_cd.get("repo") or {}
        if not isinstance(repo, dict):
            issues.append("edgeCD.repo must be a mapping")
        else:
            if not repo.get("url"):
                issues.append("edgeCD.repo.url is required")
            if not repo.get("destinationPath"):
                issues.append("edgeCD.repo.destinationPath is required")

    config = data.get("config")
    if not isinstance(config, dict):
        issues.append("Missing required section: config")
    else:
        if not config.get("path"):
            issues.append("config.path is required")
        repo = config.get("repo") or {}
        if not isinstance(repo, dict):
            issues.append("config.repo must be a mapping")
        else:
            if not repo.get("url"):
                issues.append("config.repo.url is required")
            if not repo.get("destPath"):
                issues.append("config.repo.destPath is required")

    for section in OPTIONAL_SECTIONS:
        value = data.get(section)
        if value is not None and not isinstance(value, dict):
            issues.append(f"{section} must be a mapping")

    interval = data.get("pollingIntervalSecond")
    if interval is not None and (isinstance(interval, bool) or not isinstance(interval, int)):
        issues.append(f"pollingIntervalSecond must be an integer, got {interval!r}")

    pkg = data.get("packageManager")
    packages = pkg.get("requiredPackages") if isinstance(pkg, dict) else None
    if packages is not None and (
        not isinstance(packages, list) or not all(isinstance(p, str) for p in packages)
    ):
        issues.append("packageManager.requiredPackages must be a list of strings")

    files = data.get("files") or []
    if not isinstance(files, list):
        issues.append("files must be a list")
        files = []

    for i, entry in enumerate(files):
        issues.extend(_validate_file_entry(i, entry))

    return issues


def _validate_file_entry(index: int, entry: object) -> list[str]:
    where = f"files[{index}]"
    if not isinstance(entry, dict):
        return [f"{where} must be a mapping"]

    issues: list[str] = []
    file_type = entry.get("type")
    if not file_type:
        issues.append(f"{where}.type is required")
    elif file_type not in VALID_FILE_TYPES:
        issues.append(f"{where}.type must be one of: {', '.join(VALID_FILE_TYPES)}")

    if not entry.get("destPath"):
        issues.append(f"{where}.destPath is required")

    if file_type in SOURCED_FILE_TYPES and not entry.get("srcPath"):
        issues.append(f"{where}.srcPath is required for type '{file_type}'")
    if file_type == FileType.CONTENT.value:
        content = entry.get("content")
        if not content:
            issues.append(f"{where}.content is required for type 'content'")
        elif not isinstance(content, str):
            issues.append(f"{where}.content must be a string")

    mode = entry.get("fileMod")
    if mode is not None and (isinstance(mode, bool) or not isinstance(mode, (str, int))):
        issues.append(f"{where}.fileMod must be an octal string such as \"644\"")

    behavior = entry.get("syncBehavior")
    if behavior is not None:
        if not isinstance(behavior, dict):
            issues.append(f"{where}.syncBehavior must be a mapping")
        else:
            services = behavior.get("restartServices")
            if services is not None and not isinstance(services, list):
                issues.append(f"{where}.syncBehavior.restartServices must be a list")

    return issues
