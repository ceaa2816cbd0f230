"""Checking whether a container exists."""

from __future__ import annotations

from arcam.cli import ExistsArgs
from arcam.context import Context


def container_exists(ctx: Context, args: ExistsArgs) -> bool:
    """Return whether the named container, or one in the current directory, exists."""
    if not args.name:
        try:
            return bool(ctx.cwd_containers())
        except Exception:
            return False
    return ctx.engine.container_exists(args.name)