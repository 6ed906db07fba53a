"""Data structures shared by the documentation publishing pipelines."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path


DEFAULT_BRANCH = "gh-pages"
DEFAULT_REMOTE = "origin"
NOJEKYLL_MARKER = ".nojekyll"
CNAME_FILE = "CNAME"

DEFAULT_STATIC_ASSETS: tuple[str, ...] = (
    "static.files",
    "crates.js",
    "search-index.js",
    "search.desc",
    "src-files.js",
    "help.html",
    "settings.html",
    "src",
)

# Entries a purge never removes from the publishing branch checkout.
ALWAYS_PRESERVED: tuple[str, ...] = (".git", ".gitignore", NOJEKYLL_MARKER, CNAME_FILE)

DEFAULT_BUILD_COMMAND: tuple[str, ...] = ("cargo", "+nightly", "doc", "--no-deps", "--all-features")


class DeployMode(str, Enum):
    """Operating mode selected on the command line."""

    SETUP = "setup"
    DEPLOY = "deploy"


class ErrorKind(str, Enum):
    """Category of a :class:`DeployError`, used to pick how it is reported."""

    USAGE = "usage"
    CONFIG = "config"
    PRECONDITION = "precondition"
    BUILD = "build"
    PUBLISH = "publish"


class DeployError(RuntimeError):
    """Fatal failure raised by any pipeline stage."""

    def __init__(self, kind: ErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind


@dataclass(slots=True, frozen=True)
class DeployConfig:
    """Resolved settings for a single publishing run."""

    source_dir: Path
    remote_url: str | None
    target_dir: Path | None
    crate_name: str | None
    branch: str = DEFAULT_BRANCH
    remote_name: str = DEFAULT_REMOTE
    static_assets: tuple[str, ...] = DEFAULT_STATIC_ASSETS
    preserve: frozenset[str] = field(default_factory=lambda: frozenset(ALWAYS_PRESERVED))
    build_command: tuple[str, ...] = DEFAULT_BUILD_COMMAND
    keep_workdir_on_failure: bool = False

    @property
    def crate_dir_name(self) -> str:
        """Return the directory rustdoc writes the crate's pages into."""

        return self.require_crate_name().replace("-", "_")

    @property
    def doc_root(self) -> Path:
        """Return ``<target>/doc``, the root of the rustdoc output."""

        if self.target_dir is None:
            raise DeployError(
                ErrorKind.CONFIG,
                "Unable to determine the build target directory; set PAGES_TARGET_DIR",
            )
        return self.target_dir / "doc"

    @property
    def doc_dir(self) -> Path:
        return self.doc_root / self.crate_dir_name

    def require_crate_name(self) -> str:
        if not self.crate_name:
            raise DeployError(
                ErrorKind.CONFIG,
                "Unable to determine the crate name; set PAGES_CRATE_NAME or add a name to Cargo.toml",
            )
        return self.crate_name

    def require_remote_url(self) -> str:
        if not self.remote_url:
            raise DeployError(
                ErrorKind.PRECONDITION,
                f"No URL configured for remote '{self.remote_name}' in {self.source_dir}",
            )
        return self.remote_url


@dataclass(slots=True)
class DeployResult:
    """Outcome returned by the publisher after a pipeline completes."""

    mode: DeployMode
    branch: str
    remote_url: str
    commit_hash: str | None
    changed: bool
    published_at: datetime
