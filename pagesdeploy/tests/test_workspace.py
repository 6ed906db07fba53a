from __future__ import annotations

from pathlib import Path

import pytest

from pagesdeploy.services.workspace import remove_tree, scoped_workdir


def test_workdir_removed_after_success() -> None:
    with scoped_workdir() as workdir:
        workdir.mkdir()
        (workdir / "index.html").write_text("ok", encoding="utf-8")
        root = workdir.parent

    assert not root.exists()


def test_workdir_removed_after_failure() -> None:
    with pytest.raises(RuntimeError):
        with scoped_workdir() as workdir:
            workdir.mkdir()
            root = workdir.parent
            raise RuntimeError("push rejected")

    assert not root.exists()


def test_workdir_kept_for_inspection_when_requested(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level("WARNING", logger="pagesdeploy.services.workspace")

    with pytest.raises(RuntimeError):
        with scoped_workdir(keep_on_failure=True) as workdir:
            workdir.mkdir()
            raise RuntimeError("push rejected")

    try:
        assert workdir.exists()
        assert str(workdir) in caplog.text
    finally:
        remove_tree(workdir.parent)


def test_workdirs_are_unique_per_invocation() -> None:
    with scoped_workdir() as first, scoped_workdir() as second:
        assert first != second
        assert not first.exists()


def test_remove_tree_handles_files_directories_and_missing(tmp_path: Path) -> None:
    directory = tmp_path / "dir"
    (directory / "nested").mkdir(parents=True)
    file = tmp_path / "file.txt"
    file.write_text("x", encoding="utf-8")

    remove_tree(directory)
    remove_tree(file)
    remove_tree(tmp_path / "missing")

    assert not directory.exists()
    assert not file.exists()
