"""Command line entry point."""

from __future__ import annotations

import logging
import sys
from collections.abc import Sequence

from arcam.cli import (
    TRACE,
    Cli,
    CompletionArgs,
    ConfigArgs,
    ExecArgs,
    ExistsArgs,
    InitArgs,
    KillArgs,
    ListArgs,
    LogsArgs,
    ShellArgs,
    StartArgs,
    parse_args,
)
from arcam.commands.completion import shell_completion_generation, shell_completion_helper
from arcam.commands.config_cmd import config_command
from arcam.commands.exec_cmd import container_exec
from arcam.commands.exists import container_exists
from arcam.commands.init import container_init
from arcam.commands.kill import kill_container
from arcam.commands.listing import print_containers
from arcam.commands.logs import print_logs
from arcam.commands.shell import open_shell
from arcam.commands.start import start_container
from arcam.context import Context
from arcam.engine import Podman
from arcam.util import executable_in_path, is_in_container

_HANDLERS = {
    StartArgs: start_container,
    ShellArgs: open_shell,
    ExecArgs: container_exec,
    ConfigArgs: config_command,
    ListArgs: print_containers,
    LogsArgs: print_logs,
    KillArgs: kill_container,
}


def _context(cli: Cli) -> Context:
    if not executable_in_path("podman"):
        raise RuntimeError("Could not find podman in PATH")
    return Context.from_current_user(cli.dry_run, Podman())


def _run(cli: Cli) -> int:
    command = cli.command
    match command:
        case CompletionArgs(complete=None):
            shell_completion_generation(command)
            return 0
        case CompletionArgs():
            shell_completion_helper(_context(cli), command)
            return 0
        case InitArgs():
            if not is_in_container():
                raise RuntimeError("Running init outside a container is dangerous, qutting..")
            container_init()
            return 0
        case ExistsArgs():
            return 0 if container_exists(_context(cli), command) else 1
    _HANDLERS[type(command)](_context(cli), command)
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Run the command line and return the exit code."""
    cli = parse_args(argv)
    logging.addLevelName(TRACE, "TRACE")
    logging.basicConfig(format="%(levelname)s %(name)s: %(message)s")
    logging.getLogger().setLevel(cli.log_level)

    try:
        return _run(cli)
    except Exception as err:
        print(f"Error: {err}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())