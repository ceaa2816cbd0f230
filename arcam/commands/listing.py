"""Listing the application's running containers."""

from __future__ import annotations

import json
import logging
from os import PathLike
from pathlib import Path

from arcam.cli import ListArgs
from arcam.constants import APP_NAME, CONTAINER_LABEL_HOST_DIR
from arcam.context import Context
from arcam.process import log_command, run_output, run_status


def _quote(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


def format_listing(output: str, cwd: str | PathLike) -> str:
    """Format tab separated ``name image host_dir ports`` lines for display."""
    cwd = Path(cwd)
    blocks = []
    for line in output.splitlines():
        columns = line.lstrip().split("\t")
        if len(columns) < 4:
            raise ValueError(f"Malformed container listing line {line!r}")
        name, image, ws, ports = columns[:4]

        marker = "*" if Path(ws) == cwd else " "
        lines = [
            f"Container {_quote(name)} at {_quote(ws)} {marker}",
            f"  image: {_quote(image)}",
        ]
        if ports:
            lines.append(f"  ports: {ports}")
        blocks.append("\n".join(lines) + "\n")
    return "\n".join(blocks)


def print_containers(ctx: Context, args: ListArgs) -> list[str]:
    """Print the running containers and return the engine command used."""
    argv = ctx.engine.command(
        "container",
        "ls",
        "--filter",
        f"label={APP_NAME}",
        "--format",
        "{{.Names}}\t{{.Image}}\t{{.Labels." + CONTAINER_LABEL_HOST_DIR + "}}\t{{.Ports}}",
    )
    if args.here:
        argv += ["--filter", f"label={CONTAINER_LABEL_HOST_DIR}={ctx.cwd}"]

    if ctx.dry_run:
        log_command(argv, logging.ERROR)
    elif args.raw:
        run_status(argv, logging.DEBUG, check=True)
    else:
        result = run_output(argv, logging.DEBUG)
        print(format_listing(result.stdout.decode("utf-8", errors="replace"), ctx.cwd), end="")
    return argv