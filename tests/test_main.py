import os

import pytest

from arcam.main import main


def _fake_podman(directory, exit_status):
    directory.mkdir(exist_ok=True)
    script = directory / "podman"
    script.write_text(f"#!/bin/sh\nexit {exit_status}\n")
    script.chmod(0o755)
    return directory


@pytest.fixture
def app_dir(tmp_path, monkeypatch):
    path = tmp_path / "app"
    path.mkdir()
    monkeypatch.setenv("ARCAM_DIR", str(path))
    monkeypatch.delenv("ARCAM_CONTAINER", raising=False)
    monkeypatch.delenv("ARCAM_IMAGE", raising=False)
    return path


def _use_path(monkeypatch, directory):
    monkeypatch.setenv("PATH", f"{directory}{os.pathsep}/usr/bin{os.pathsep}/bin")


def test_missing_podman_is_an_error(tmp_path, monkeypatch, app_dir, capsys):
    empty = tmp_path / "empty"
    empty.mkdir()
    monkeypatch.setenv("PATH", str(empty))
    assert main(["config", "--example"]) == 1
    assert "Error: Could not find podman in PATH" in capsys.readouterr().err


def test_config_example(tmp_path, monkeypatch, app_dir, capsys):
    _use_path(monkeypatch, _fake_podman(tmp_path / "bin", 0))
    assert main(["config", "--example"]) == 0
    out = capsys.readouterr().out
    assert out.count("-- EXAMPLE --") == 2
    assert "docker.io/library/debian:latest" in out
    assert str(app_dir) in out


def test_completion_script_needs_no_engine(tmp_path, monkeypatch, capsys):
    empty = tmp_path / "empty"
    empty.mkdir()
    monkeypatch.setenv("PATH", str(empty))
    assert main(["completion", "--shell", "bash"]) == 0
    assert "complete -F _arcam arcam" in capsys.readouterr().out


def test_completion_helper_lists_configs(tmp_path, monkeypatch, app_dir, capsys):
    _use_path(monkeypatch, _fake_podman(tmp_path / "bin", 0))
    configs = app_dir / "configs"
    configs.mkdir()
    (configs / "devbox.toml").write_text("")
    assert main(["completion", "config"]) == 0
    assert capsys.readouterr().out.splitlines() == ["@devbox"]


@pytest.mark.parametrize("status, expected", [(0, 0), (1, 1)])
def test_exists_exit_code(tmp_path, monkeypatch, app_dir, status, expected):
    _use_path(monkeypatch, _fake_podman(tmp_path / "bin", status))
    assert main(["exists", "somebox"]) == expected


def test_exists_engine_error(tmp_path, monkeypatch, app_dir, capsys):
    _use_path(monkeypatch, _fake_podman(tmp_path / "bin", 2))
    assert main(["exists", "somebox"]) == 1
    assert capsys.readouterr().err.startswith("Error:")


def test_dry_run_kill_logs_command(tmp_path, monkeypatch, app_dir, caplog):
    _use_path(monkeypatch, _fake_podman(tmp_path / "bin", 1))
    assert main(["--dry-run", "kill", "-y", "somebox"]) == 0
    assert "somebox" in caplog.text
    assert "stop" in caplog.text


def test_invalid_arguments_exit():
    with pytest.raises(SystemExit) as info:
        main(["no-such-command"])
    assert info.value.code == 2