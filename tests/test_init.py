import os
import stat
from pathlib import Path

import pytest

from arcam.commands.init import clone_mode, initialization, make_executable, walk_dir


def test_walk_dir_collects_files_and_dirs(tmp_path):
    (tmp_path / "a" / "b").mkdir(parents=True)
    (tmp_path / "a" / "b" / "deep.txt").write_text("x")
    (tmp_path / "top.txt").write_text("y")
    os.symlink("missing-target", tmp_path / "broken")

    files, dirs = walk_dir(tmp_path)

    assert sorted(dirs) == [Path("a"), Path("a/b")]
    assert sorted(files) == sorted([Path("a/b/deep.txt"), Path("top.txt"), Path("broken")])


def test_walk_dir_lists_parent_before_child(tmp_path):
    (tmp_path / "p" / "q").mkdir(parents=True)
    _, dirs = walk_dir(tmp_path)
    assert dirs.index(Path("p")) < dirs.index(Path("p/q"))


def test_walk_dir_symlink_to_dir_is_a_file(tmp_path):
    (tmp_path / "real").mkdir()
    os.symlink(tmp_path / "real", tmp_path / "link")
    files, dirs = walk_dir(tmp_path)
    assert Path("link") in files
    assert Path("link") not in dirs


def test_walk_dir_reports_invalid_types(tmp_path, capsys):
    os.mkfifo(tmp_path / "pipe")
    files, dirs = walk_dir(tmp_path)
    assert files == [] and dirs == []
    assert "Invalid file type" in capsys.readouterr().err


def test_walk_dir_empty(tmp_path):
    assert walk_dir(tmp_path) == ([], [])


def test_make_executable_adds_execute_bits(tmp_path):
    path = tmp_path / "script.sh"
    path.write_text("#!/bin/sh\n")
    os.chmod(path, 0o600)

    make_executable(path)

    mode = stat.S_IMODE(os.stat(path).st_mode)
    assert mode & 0o111 == 0o111
    assert mode & 0o600 == 0o600
    assert mode & 0o066 == 0


def test_clone_mode_copies_permissions(tmp_path):
    source = tmp_path / "source"
    dest = tmp_path / "dest"
    source.write_text("a")
    dest.write_text("b")
    os.chmod(source, 0o640)
    os.chmod(dest, 0o600)

    clone_mode(source, dest)

    assert stat.S_IMODE(os.stat(dest).st_mode) == stat.S_IMODE(os.stat(source).st_mode)


def test_initialization_requires_host_user(monkeypatch):
    monkeypatch.delenv("HOST_USER", raising=False)
    with pytest.raises(RuntimeError, match="HOST_USER is undefined"):
        initialization()


def test_initialization_requires_uid(monkeypatch):
    monkeypatch.setenv("HOST_USER", "tester")
    monkeypatch.delenv("HOST_USER_UID", raising=False)
    with pytest.raises(RuntimeError, match="HOST_USER_UID is undefined"):
        initialization()