"""Disposable staging directory for the publishing branch checkout."""

from __future__ import annotations

from contextlib import contextmanager
import logging
from pathlib import Path
import shutil
import tempfile
from typing import Iterator


logger = logging.getLogger(__name__)

WORKDIR_PREFIX = "pagesdeploy-"
WORKTREE_NAME = "pages"


def remove_tree(path: Path) -> None:
    """Delete ``path`` and everything beneath it if it exists."""

    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    elif path.exists() or path.is_symlink():
        path.unlink()


@contextmanager
def scoped_workdir(*, keep_on_failure: bool = False) -> Iterator[Path]:
    """Yield a fresh, not-yet-created worktree path inside a private temp directory.

    The directory is unique per invocation. It is removed when the block exits
    normally; when the block raises it is removed too, unless ``keep_on_failure``
    is set, in which case the location is logged so it can be inspected.
    """

    root = Path(tempfile.mkdtemp(prefix=WORKDIR_PREFIX))
    worktree = root / WORKTREE_NAME
    logger.debug("Using work directory %s", worktree)
    try:
        yield worktree
    except BaseException:
        if keep_on_failure:
            logger.warning("Leaving work directory %s for inspection", worktree)
        else:
            shutil.rmtree(root, ignore_errors=True)
        raise
    shutil.rmtree(root)
