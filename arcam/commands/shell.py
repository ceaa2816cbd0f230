"""Opening an interactive shell inside a running container."""

from __future__ import annotations

import logging
import os

from arcam.cli import ShellArgs
from arcam.constants import APP_NAME, CONTAINER_LABEL_CONTAINER_DIR, CONTAINER_LABEL_USER_SHELL
from arcam.context import Context
from arcam.process import log_command, run_status


def open_shell(ctx: Context, args: ShellArgs) -> list[str]:
    """Open the container's default shell and return the engine command used."""
    name = ctx.resolve_container(args.name)

    infos = ctx.engine.inspect_containers([name])
    if not infos:
        raise LookupError(f"Container {name!r} does not exist")
    labels = infos[0].labels

    ws_dir = labels.get(CONTAINER_LABEL_CONTAINER_DIR)
    if ws_dir is None:
        raise LookupError(f"Container {name!r} is not owned by {APP_NAME}")

    user_shell = labels.get(CONTAINER_LABEL_USER_SHELL)
    if user_shell is None:
        raise LookupError(
            f"Container {name!r} does not have label {CONTAINER_LABEL_USER_SHELL!r}"
        )

    term = os.environ.get("TERM", "xterm")
    # a login sh always sources ~/.profile, even when the shell is not posix
    argv = ctx.engine.command(
        "exec",
        "-it",
        f"--env=TERM={term}",
        f"--env=HOME=/home/{ctx.user}",
        f"--env=SHELL={user_shell}",
        "--workdir",
        ws_dir,
        "--user",
        ctx.user,
        name,
        "sh",
        "-l",
        "-c",
        f"exec {user_shell}",
    )

    if ctx.dry_run:
        log_command(argv, logging.ERROR)
    else:
        run_status(argv, logging.DEBUG, check=True)
    return argv