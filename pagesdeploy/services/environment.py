"""Resolve the settings for a publishing run from the environment and project files.

Every value follows the same precedence: an explicit ``PAGES_*`` environment
variable, then the optional YAML configuration file, then a computed fallback
(``git config``, ``cargo metadata`` or ``Cargo.toml``). A fallback that fails
leaves the value unset; the stage that needs it reports the problem.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
import subprocess
from typing import Any, Mapping

import tomli
import yaml

from pagesdeploy.models.deploy import (
    ALWAYS_PRESERVED,
    DEFAULT_BRANCH,
    DEFAULT_BUILD_COMMAND,
    DEFAULT_REMOTE,
    DEFAULT_STATIC_ASSETS,
    DeployConfig,
    DeployError,
    ErrorKind,
)
from pagesdeploy.services.git import GitRunner


logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".pages.yml"
MANIFEST_FILENAME = "Cargo.toml"

_ENV_SOURCE_DIR = "PAGES_SOURCE_DIR"
_ENV_TARGET_DIR = "PAGES_TARGET_DIR"
_ENV_CRATE_NAME = "PAGES_CRATE_NAME"
_ENV_BRANCH = "PAGES_BRANCH"
_ENV_CONFIG = "PAGES_CONFIG"
_ENV_KEEP_WORKDIR = "PAGES_KEEP_WORKDIR"

_STRING_KEYS = {"branch", "remote", "target_dir", "crate_name"}
_LIST_KEYS = {"static_assets", "preserve", "build_command"}


def _env_value(environ: Mapping[str, str], key: str) -> str | None:
    value = environ.get(key)
    if value is None:
        return None
    value = value.strip()
    return value or None


def _env_bool(environ: Mapping[str, str], key: str, default: bool = False) -> bool:
    value = environ.get(key)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def load_config_file(path: Path) -> dict[str, Any]:
    """Parse the YAML configuration file at ``path`` and validate its keys."""

    try:
        payload = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise DeployError(ErrorKind.CONFIG, f"Unable to read config file {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise DeployError(ErrorKind.CONFIG, f"Config file {path} is not valid YAML: {exc}") from exc

    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise DeployError(ErrorKind.CONFIG, f"Config file {path} must contain a mapping")

    unknown = sorted(set(payload) - _STRING_KEYS - _LIST_KEYS)
    if unknown:
        raise DeployError(ErrorKind.CONFIG, f"Unknown keys in {path}: {', '.join(map(str, unknown))}")

    for key in _STRING_KEYS & set(payload):
        value = payload[key]
        if not isinstance(value, str) or not value.strip():
            raise DeployError(ErrorKind.CONFIG, f"'{key}' in {path} must be a non-empty string")
        payload[key] = value.strip()

    for key in _LIST_KEYS & set(payload):
        value = payload[key]
        if not isinstance(value, list) or not all(isinstance(item, str) and item.strip() for item in value):
            raise DeployError(ErrorKind.CONFIG, f"'{key}' in {path} must be a list of strings")
        payload[key] = [item.strip() for item in value]

    if "build_command" in payload and not payload["build_command"]:
        raise DeployError(ErrorKind.CONFIG, f"'build_command' in {path} cannot be empty")

    return payload


def read_manifest_name(manifest: Path) -> str | None:
    """Return ``[package].name`` from a Cargo manifest, or ``None`` if unavailable."""

    try:
        with manifest.open("rb") as handle:
            data = tomli.load(handle)
    except (OSError, tomli.TOMLDecodeError) as exc:
        logger.debug("Unable to read crate name from %s: %s", manifest, exc)
        return None

    package = data.get("package")
    if not isinstance(package, dict):
        return None
    name = package.get("name")
    if isinstance(name, str) and name.strip():
        return name.strip()
    return None


def query_target_directory(source_dir: Path, cargo_executable: str = "cargo") -> Path | None:
    """Ask ``cargo metadata`` where build output is written."""

    try:
        result = subprocess.run(
            [cargo_executable, "metadata", "--format-version", "1", "--no-deps"],
            cwd=source_dir,
            text=True,
            check=False,
            capture_output=True,
        )
    except OSError as exc:
        logger.debug("Unable to run %s metadata: %s", cargo_executable, exc)
        return None

    if result.returncode != 0:
        logger.debug("cargo metadata failed: %s", result.stderr.strip())
        return None

    try:
        payload = json.loads(result.stdout)
    except json.JSONDecodeError as exc:
        logger.debug("cargo metadata returned invalid JSON: %s", exc)
        return None

    target = payload.get("target_directory") if isinstance(payload, dict) else None
    if isinstance(target, str) and target:
        return Path(target)
    return None


def _locate_config_file(source_dir: Path, environ: Mapping[str, str]) -> Path | None:
    explicit = _env_value(environ, _ENV_CONFIG)
    if explicit:
        path = Path(explicit)
        if not path.is_absolute():
            path = source_dir / path
        if not path.is_file():
            raise DeployError(ErrorKind.CONFIG, f"Config file {path} does not exist")
        return path

    candidate = source_dir / CONFIG_FILENAME
    return candidate if candidate.is_file() else None


def resolve_config(
    *,
    source_dir: Path | None = None,
    environ: Mapping[str, str] | None = None,
    git: GitRunner | None = None,
    cargo_executable: str = "cargo",
) -> DeployConfig:
    """Build the :class:`DeployConfig` for this invocation."""

    environ = os.environ if environ is None else environ
    git = git or GitRunner()

    if source_dir is None:
        source_value = _env_value(environ, _ENV_SOURCE_DIR)
        source_dir = Path(source_value) if source_value else Path.cwd()
    source_dir = source_dir.resolve()

    config_path = _locate_config_file(source_dir, environ)
    file_settings = load_config_file(config_path) if config_path else {}
    if config_path:
        logger.debug("Loaded settings from %s", config_path)

    remote_name = file_settings.get("remote", DEFAULT_REMOTE)
    branch = _env_value(environ, _ENV_BRANCH) or file_settings.get("branch", DEFAULT_BRANCH)

    try:
        remote_url = git.remote_url(source_dir, remote_name)
    except DeployError as exc:
        logger.debug("Unable to query remote '%s': %s", remote_name, exc)
        remote_url = None
    if remote_url is None:
        logger.debug("No URL found for remote '%s' in %s", remote_name, source_dir)

    target_value = _env_value(environ, _ENV_TARGET_DIR) or file_settings.get("target_dir")
    if target_value:
        target_dir: Path | None = Path(target_value)
        if not target_dir.is_absolute():
            target_dir = source_dir / target_dir
    else:
        target_dir = query_target_directory(source_dir, cargo_executable)

    crate_name = (
        _env_value(environ, _ENV_CRATE_NAME)
        or file_settings.get("crate_name")
        or read_manifest_name(source_dir / MANIFEST_FILENAME)
    )

    preserve = frozenset(ALWAYS_PRESERVED) | frozenset(file_settings.get("preserve", ()))

    return DeployConfig(
        source_dir=source_dir,
        remote_url=remote_url,
        target_dir=target_dir,
        crate_name=crate_name,
        branch=branch,
        remote_name=remote_name,
        static_assets=tuple(file_settings.get("static_assets", DEFAULT_STATIC_ASSETS)),
        preserve=preserve,
        build_command=tuple(file_settings.get("build_command", DEFAULT_BUILD_COMMAND)),
        keep_workdir_on_failure=_env_bool(environ, _ENV_KEEP_WORKDIR),
    )


__all__ = ["CONFIG_FILENAME", "load_config_file", "query_target_directory", "read_manifest_name", "resolve_config"]
