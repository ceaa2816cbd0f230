"""Executing a command inside a running container as the user."""

from __future__ import annotations

import logging
import os

from arcam.cli import ExecArgs
from arcam.constants import APP_NAME, CONTAINER_LABEL_CONTAINER_DIR
from arcam.context import Context
from arcam.process import log_command, run_status


def container_exec(ctx: Context, args: ExecArgs) -> list[str]:
    """Run the command in the container and return the engine command used."""
    name = ctx.resolve_container(args.name)

    infos = ctx.engine.inspect_containers([name])
    if not infos:
        raise LookupError(f"Container {name!r} does not exist")

    ws_dir = infos[0].labels.get(CONTAINER_LABEL_CONTAINER_DIR)
    if ws_dir is None:
        raise LookupError(f"Container {name!r} is not owned by {APP_NAME}")

    term = os.environ.get("TERM", "xterm")
    argv = ctx.engine.command(
        "exec",
        "-it",
        f"--workdir={ws_dir}",
        f"--user={ctx.user}",
        f"--env=TERM={term}",
    )

    if args.shell is not None:
        argv += [f"--env=SHELL={args.shell}", name, args.shell]
        if args.login:
            argv.append("-l")
        argv += ["-c", " ".join(args.command)]
    else:
        argv += [name, *args.command]

    if ctx.dry_run:
        log_command(argv, logging.ERROR)
    else:
        run_status(argv, logging.DEBUG, check=True)
    return argv