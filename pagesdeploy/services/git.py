"""Thin wrapper around the ``git`` executable used by the publishing pipelines."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
import subprocess

from pagesdeploy.models.deploy import DeployError, ErrorKind


logger = logging.getLogger(__name__)

# ``git ls-remote --exit-code`` returns this status when no ref matched.
LS_REMOTE_NO_MATCH = 2


@dataclass(slots=True)
class GitRunner:
    """Execute Git commands and raise :class:`DeployError` on failure."""

    git_executable: str = "git"

    def run(self, *args: str, cwd: Path, kind: ErrorKind = ErrorKind.PUBLISH) -> subprocess.CompletedProcess[str]:
        """Execute a Git command within ``cwd`` and raise on a non-zero exit."""

        result = self.call(*args, cwd=cwd)
        if result.returncode != 0:
            command = " ".join(args)
            raise DeployError(kind, f"git {command} failed: {result.stderr.strip()}")
        return result

    def call(self, *args: str, cwd: Path) -> subprocess.CompletedProcess[str]:
        """Execute a Git command and return the completed process regardless of status."""

        logger.debug("git %s (cwd=%s)", " ".join(args), cwd)
        try:
            return subprocess.run(
                [self.git_executable, *args],
                cwd=cwd,
                text=True,
                check=False,
                capture_output=True,
            )
        except OSError as exc:
            raise DeployError(ErrorKind.PRECONDITION, f"Unable to run {self.git_executable}: {exc}") from exc

    def output(self, *args: str, cwd: Path) -> str | None:
        """Return stripped stdout for a successful command, ``None`` otherwise."""

        result = self.call(*args, cwd=cwd)
        if result.returncode != 0:
            return None
        return result.stdout.strip() or None

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def is_work_tree(self, path: Path) -> bool:
        return self.output("rev-parse", "--is-inside-work-tree", cwd=path) == "true"

    def remote_url(self, path: Path, remote: str) -> str | None:
        return self.output("config", "--get", f"remote.{remote}.url", cwd=path)

    def remote_branch_exists(self, path: Path, url: str, branch: str) -> bool:
        """Return ``True`` when ``branch`` is present in the repository at ``url``."""

        result = self.call("ls-remote", "--exit-code", "--heads", url, branch, cwd=path)
        if result.returncode == 0:
            return True
        if result.returncode == LS_REMOTE_NO_MATCH:
            return False
        raise DeployError(ErrorKind.PUBLISH, f"git ls-remote {url} failed: {result.stderr.strip()}")

    def has_staged_changes(self, path: Path) -> bool:
        result = self.call("diff", "--cached", "--quiet", cwd=path)
        if result.returncode not in (0, 1):
            raise DeployError(ErrorKind.PUBLISH, f"git diff --cached failed: {result.stderr.strip()}")
        return result.returncode == 1

    def head(self, path: Path) -> str:
        return self.run("rev-parse", "HEAD", cwd=path).stdout.strip()
