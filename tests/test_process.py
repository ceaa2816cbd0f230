import logging
import subprocess
import sys

import pytest

from arcam.process import (
    CommandError,
    exit_code,
    format_command,
    log_command,
    run_output,
    run_status,
    spawn,
)

MISSING = "/nonexistent/definitely-not-a-program"


def test_format_command_joins_args():
    assert format_command(["podman", "ps", "-a"]) == "podman ps -a"


def test_format_command_empty_raises():
    with pytest.raises(ValueError):
        format_command([])


@pytest.mark.parametrize("code", [0, 3, 255])
def test_exit_code_in_range_kept(code):
    assert exit_code(code) == code


@pytest.mark.parametrize("code", [-9, 256, None])
def test_exit_code_out_of_range_is_one(code):
    assert exit_code(code) == 1


def test_log_command_logs(caplog):
    caplog.set_level(logging.DEBUG, logger="arcam.process")
    text = log_command(["echo", "hi"], logging.INFO)
    assert text == format_command(["echo", "hi"])
    assert any(text in record.getMessage() for record in caplog.records)


def test_run_output_captures_stdout():
    result = run_output([sys.executable, "-c", "print('hi')"])
    assert result.stdout.strip() == b"hi"
    assert result.returncode == 0


def test_run_output_failure_unchecked():
    result = run_output([sys.executable, "-c", "import sys; sys.exit(3)"])
    assert result.returncode == 3


def test_run_output_failure_checked():
    with pytest.raises(CommandError) as info:
        run_output([sys.executable, "-c", "import sys; sys.exit(3)"], check=True)
    assert info.value.returncode == 3


def test_run_output_missing_program():
    with pytest.raises(FileNotFoundError):
        run_output([MISSING])
    with pytest.raises(CommandError) as info:
        run_output([MISSING], check=True)
    assert info.value.returncode is None


def test_run_status_returns_code():
    result = run_status([sys.executable, "-c", "import sys; sys.exit(2)"])
    assert result.returncode == 2
    with pytest.raises(CommandError):
        run_status([sys.executable, "-c", "import sys; sys.exit(2)"], check=True)


def test_spawn_pipes_stdin():
    child = spawn(
        [sys.executable, "-c", "import sys; sys.stdout.write(sys.stdin.read().upper())"],
        stdin=subprocess.PIPE,
        stdout=subprocess.PIPE,
    )
    out, _ = child.communicate(b"abc")
    assert out == b"ABC"


def test_spawn_missing_program():
    with pytest.raises(CommandError):
        spawn([MISSING])