"""Shared fixtures for exercising the publishing pipelines against real Git repositories."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from pathlib import Path
import subprocess
from typing import Iterator

import pytest

from pagesdeploy.models.deploy import DeployConfig


CRATE_NAME = "demo-crate"
CRATE_DIR = "demo_crate"


def git(*args: str, cwd: Path) -> str:
    """Run a Git command for test setup and return its stripped stdout."""

    result = subprocess.run(
        ["git", *args],
        cwd=cwd,
        check=True,
        text=True,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
    )
    return result.stdout.strip()


@pytest.fixture(autouse=True)
def git_identity(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Isolate Git from the developer's configuration and provide a commit identity."""

    global_config = tmp_path / "gitconfig"
    global_config.write_text("", encoding="utf-8")
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", str(global_config))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Docs Bot")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "docs-bot@example.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Docs Bot")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "docs-bot@example.com")
    for key in ("PAGES_SOURCE_DIR", "PAGES_TARGET_DIR", "PAGES_CRATE_NAME", "PAGES_BRANCH", "PAGES_CONFIG"):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture()
def remote_repo(tmp_path: Path) -> Path:
    """Return a bare repository standing in for the hosting remote."""

    path = tmp_path / "remote.git"
    path.mkdir()
    git("init", "--bare", "--quiet", cwd=path)
    return path


@pytest.fixture()
def crate_repo(tmp_path: Path, remote_repo: Path) -> Path:
    """Return a crate checkout whose ``origin`` points at :func:`remote_repo`."""

    path = tmp_path / "crate"
    path.mkdir()
    git("init", "--quiet", cwd=path)
    git("remote", "add", "origin", str(remote_repo), cwd=path)
    (path / "Cargo.toml").write_text(
        f'[package]\nname = "{CRATE_NAME}"\nversion = "0.1.0"\nedition = "2021"\n',
        encoding="utf-8",
    )
    return path


@pytest.fixture()
def deploy_config(crate_repo: Path, remote_repo: Path) -> DeployConfig:
    return DeployConfig(
        source_dir=crate_repo,
        remote_url=str(remote_repo),
        target_dir=crate_repo / "target",
        crate_name=CRATE_NAME,
    )


@dataclass(slots=True)
class StubDocBuilder:
    """Builder that writes a canned rustdoc layout instead of invoking cargo."""

    version: str = "v1"
    fail_with: Exception | None = None
    calls: list[DeployConfig] = field(default_factory=list, init=False)

    def build(self, config: DeployConfig) -> None:
        self.calls.append(config)
        if self.fail_with is not None:
            raise self.fail_with

        doc_root = config.doc_root
        crate_dir = doc_root / config.crate_dir_name
        (doc_root / "static.files").mkdir(parents=True, exist_ok=True)
        (doc_root / "static.files" / "rustdoc.css").write_text("body {}\n", encoding="utf-8")
        crate_dir.mkdir(parents=True, exist_ok=True)
        (crate_dir / "index.html").write_text(f"<html>{self.version}</html>\n", encoding="utf-8")
        (doc_root / "crates.js").write_text(f'window.ALL_CRATES = ["{config.crate_dir_name}"];\n', encoding="utf-8")


@pytest.fixture()
def doc_builder() -> StubDocBuilder:
    return StubDocBuilder()


@pytest.fixture()
def make_builder() -> type[StubDocBuilder]:
    return StubDocBuilder


@pytest.fixture()
def run_git():
    """Expose :func:`git` to test modules."""

    return git


@pytest.fixture()
def remote_tree(tmp_path: Path, remote_repo: Path):
    """Return a helper listing the top-level entries of a branch on the remote."""

    def _list(branch: str = "gh-pages") -> set[str]:
        output = git("ls-tree", "--name-only", branch, cwd=remote_repo)
        return set(output.splitlines())

    return _list


@pytest.fixture(autouse=True)
def reset_package_logger() -> Iterator[None]:
    """Undo console handlers installed by the CLI so ``caplog`` keeps seeing records."""

    logger = logging.getLogger("pagesdeploy")
    handlers = list(logger.handlers)
    level = logger.level
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = True
