"""Stopping a running container."""

from __future__ import annotations

import logging

from arcam.cli import KillArgs
from arcam.constants import APP_NAME, CONTAINER_LABEL_APP
from arcam.context import Context
from arcam.process import log_command, run_output
from arcam.util import prompt


def kill_container(ctx: Context, args: KillArgs) -> list[str]:
    """Stop the container, asking first unless ``yes``; return the engine command used."""
    name = args.name
    if not name:
        containers = ctx.cwd_containers()
        if not containers:
            raise LookupError("Could not find a running container in current directory")
        name = containers[0]
    elif not ctx.dry_run:
        if not ctx.engine.container_exists(name):
            raise LookupError(f"Container {name!r} does not exist")

        infos = ctx.engine.inspect_containers([name])
        if not infos or CONTAINER_LABEL_APP not in infos[0].labels:
            raise LookupError(f"Container {name!r} is not owned by {APP_NAME}")

    if not args.yes and not prompt(f"Are you sure you want to kill container {name!r} ?"):
        raise RuntimeError("Cancelled by user.")

    argv = ctx.engine.command("container", "stop", "--time", str(args.timeout), name)

    if ctx.dry_run:
        log_command(argv, logging.ERROR)
    else:
        run_output(argv, logging.DEBUG, check=True)
    return argv