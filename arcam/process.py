"""Running external commands with logging."""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Sequence
from os import PathLike
from typing import Any

_log = logging.getLogger(__name__)

Args = Sequence[str | PathLike]


class CommandError(RuntimeError):
    """Raised when a command cannot be started or exits unsuccessfully."""

    def __init__(self, command: str, returncode: int | None = None):
        self.command = command
        self.returncode = returncode
        if returncode is None:
            message = f"Command {command!r} failed"
        else:
            message = f"Command {command!r} failed with code {returncode}"
        super().__init__(message)


def _argv(args: Args) -> list[str]:
    argv = [str(arg) for arg in args]
    if not argv:
        raise ValueError("empty command")
    return argv


def format_command(args: Args) -> str:
    """Return the command as a single readable line."""
    program, *rest = _argv(args)
    return f"{program} {' '.join(rest)}"


def exit_code(returncode: int | None) -> int:
    """Map a return code to a process exit code, 1 for signals and out of range codes."""
    if returncode is None or not 0 <= returncode <= 255:
        return 1
    return returncode


def log_command(args: Args, level: int = logging.DEBUG) -> str:
    """Log the command at ``level`` and return its readable form."""
    command = format_command(args)
    _log.log(level, "Command %r", command)
    return command


def run_output(
    args: Args, level: int = logging.DEBUG, check: bool = False
) -> subprocess.CompletedProcess:
    """Run a command capturing its output.

    With ``check`` a non-zero exit or a failure to start raises CommandError,
    otherwise a failure to start raises OSError.
    """
    argv = _argv(args)
    command = format_command(argv)
    try:
        result = subprocess.run(argv, capture_output=True)
    except OSError as err:
        _log.log(level, "Command %r (output)\n  ERROR: %r", command, err)
        if check:
            raise CommandError(command) from err
        raise

    _log.log(
        level,
        "Command %r (output)\n  STDOUT: %r\n  STDERR: %r\n  STATUS: %r",
        command,
        result.stdout.decode("utf-8", errors="replace"),
        result.stderr.decode("utf-8", errors="replace"),
        result.returncode,
    )
    if check and result.returncode != 0:
        raise CommandError(command, result.returncode)
    return result


def run_status(
    args: Args, level: int = logging.DEBUG, check: bool = False
) -> subprocess.CompletedProcess:
    """Run a command attached to the current terminal."""
    argv = _argv(args)
    command = format_command(argv)
    try:
        result = subprocess.run(argv)
    except OSError as err:
        _log.log(level, "Command %r (status)\n  ERROR %r", command, err)
        if check:
            raise CommandError(command) from err
        raise

    _log.log(level, "Command %r (status)\n  STATUS: %r", command, result.returncode)
    if check and result.returncode != 0:
        raise CommandError(command, result.returncode)
    return result


def spawn(args: Args, level: int = logging.DEBUG, **kwargs: Any) -> subprocess.Popen:
    """Start a command without waiting for it; extra arguments go to Popen."""
    argv = _argv(args)
    command = format_command(argv)
    try:
        child = subprocess.Popen(argv, **kwargs)
    except OSError as err:
        _log.log(level, "Command %r (spawn)\n  ERROR %r", command, err)
        raise CommandError(command) from err
    _log.log(level, "Command %r (spawn)", command)
    return child