"""Publisher that pushes generated crate documentation to a static-hosting branch."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
import logging
from pathlib import Path
import shutil
from typing import Protocol

from pagesdeploy.models.deploy import (
    CNAME_FILE,
    NOJEKYLL_MARKER,
    DeployConfig,
    DeployError,
    DeployMode,
    DeployResult,
    ErrorKind,
)
from pagesdeploy.services.builder import CargoDocBuilder
from pagesdeploy.services.git import GitRunner
from pagesdeploy.services.workspace import remove_tree, scoped_workdir


logger = logging.getLogger(__name__)


class SupportsDocBuild(Protocol):
    """Interface of :class:`CargoDocBuilder` relied upon by the publisher."""

    def build(self, config: DeployConfig) -> None:
        """Generate documentation or raise :class:`DeployError`."""


@dataclass(slots=True)
class PagesPublisher:
    """Run the setup and update pipelines for the publishing branch."""

    config: DeployConfig
    builder: SupportsDocBuild = field(default_factory=CargoDocBuilder)
    git: GitRunner = field(default_factory=GitRunner)

    def run(self, mode: DeployMode) -> DeployResult:
        if mode is DeployMode.SETUP:
            return self.setup()
        return self.deploy()

    def setup(self) -> DeployResult:
        """Create the publishing branch as a single orphan commit and push it."""

        config = self.config
        if not self.git.is_work_tree(config.source_dir):
            raise DeployError(ErrorKind.PRECONDITION, f"{config.source_dir} is not a git repository")

        url = config.require_remote_url()
        if self.git.remote_branch_exists(config.source_dir, url, config.branch):
            raise DeployError(
                ErrorKind.PRECONDITION,
                f"Branch '{config.branch}' already exists on {config.remote_name}; "
                "run without --setup to update it",
            )

        crate = config.require_crate_name()
        self.builder.build(config)

        with scoped_workdir(keep_on_failure=config.keep_workdir_on_failure) as workdir:
            workdir.mkdir(parents=True)
            self.git.run("init", "--quiet", cwd=workdir)
            self.git.run("checkout", "--orphan", config.branch, cwd=workdir)

            self._populate(workdir)

            self.git.run("add", "--all", cwd=workdir)
            self.git.run("commit", "--quiet", "-m", f"Initial documentation for {crate}", cwd=workdir)
            commit_hash = self.git.head(workdir)

            self.git.run("remote", "add", config.remote_name, url, cwd=workdir)
            logger.info("Pushing %s to %s", config.branch, url)
            self.git.run("push", "--force", "--set-upstream", config.remote_name, config.branch, cwd=workdir)

        logger.info("Created branch '%s' for %s", config.branch, crate, extra={"event": "success"})
        return DeployResult(
            mode=DeployMode.SETUP,
            branch=config.branch,
            remote_url=url,
            commit_hash=commit_hash,
            changed=True,
            published_at=datetime.now(timezone.utc),
        )

    def deploy(self) -> DeployResult:
        """Replace the content of the existing publishing branch with fresh docs."""

        config = self.config
        url = config.require_remote_url()
        if not self.git.remote_branch_exists(config.source_dir, url, config.branch):
            raise DeployError(
                ErrorKind.PRECONDITION,
                f"Branch '{config.branch}' does not exist on {config.remote_name}; run with --setup first",
            )

        crate = config.require_crate_name()
        self.builder.build(config)

        with scoped_workdir(keep_on_failure=config.keep_workdir_on_failure) as workdir:
            self.git.run(
                "clone", "--quiet", "--single-branch", "--origin", config.remote_name,
                "--branch", config.branch, url, str(workdir),
                cwd=config.source_dir,
            )

            self._purge(workdir)
            self._populate(workdir)

            self.git.run("add", "--all", cwd=workdir)
            changed = self.git.has_staged_changes(workdir)
            if changed:
                self.git.run("commit", "--quiet", "-m", f"Update documentation for {crate}", cwd=workdir)
                logger.info("Pushing %s to %s", config.branch, url)
                self.git.run("push", config.remote_name, config.branch, cwd=workdir)
            else:
                logger.info("Documentation unchanged; nothing to push")
            commit_hash = self.git.head(workdir)

        if changed:
            logger.info("Updated branch '%s' for %s", config.branch, crate, extra={"event": "success"})
        else:
            logger.info("Branch '%s' already up to date", config.branch, extra={"event": "success"})
        return DeployResult(
            mode=DeployMode.DEPLOY,
            branch=config.branch,
            remote_url=url,
            commit_hash=commit_hash,
            changed=changed,
            published_at=datetime.now(timezone.utc),
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _purge(self, workdir: Path) -> None:
        """Remove every top-level entry that is not on the preserve list."""

        for entry in sorted(workdir.iterdir()):
            if entry.name in self.config.preserve:
                continue
            logger.debug("Removing stale entry %s", entry.name)
            remove_tree(entry)

    def _populate(self, workdir: Path) -> None:
        """Copy static assets, the crate docs and marker files into ``workdir``."""

        config = self.config
        doc_root = config.doc_root

        for name in config.static_assets:
            source = doc_root / name
            if source.exists():
                _copy_entry(source, workdir / name)
            else:
                logger.debug("Static asset %s not generated; skipping", name)

        _copy_entry(config.doc_dir, workdir / config.crate_dir_name)

        (workdir / NOJEKYLL_MARKER).write_text("", encoding="utf-8")

        cname = config.source_dir / CNAME_FILE
        if cname.is_file():
            shutil.copyfile(cname, workdir / CNAME_FILE)


def _copy_entry(source: Path, destination: Path) -> None:
    """Copy a file or directory tree, replacing anything already at ``destination``."""

    remove_tree(destination)
    if source.is_dir():
        shutil.copytree(source, destination)
    else:
        shutil.copy2(source, destination)
