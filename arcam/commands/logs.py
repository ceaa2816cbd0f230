"""Showing container logs through journalctl."""

from __future__ import annotations

import logging

from arcam.cli import LogsArgs
from arcam.context import Context
from arcam.process import run_status


def print_logs(ctx: Context, args: LogsArgs) -> list[str]:
    """Show the container's journal and return the command used."""
    name = args.name
    if not name:
        containers = ctx.cwd_containers()
        if not containers:
            raise LookupError("Could not find a running container in current directory")
        name = containers[0]

    print("The logs may be empty if the container name is not valid")

    argv = ["journalctl", "-t", name]
    if args.follow:
        argv.append("--follow")

    run_status(argv, logging.DEBUG)
    return argv