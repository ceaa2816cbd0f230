"""Small helpers for prompting and inspecting the environment."""

import os
import shutil
import sys

_CONTAINER_MARKERS = ("/run/.containerenv", "/.dockerenv")


def prompt(message: str) -> bool:
    """Ask a yes/no question, defaulting to no."""
    print(f"{message} [y/N] ", end="", flush=True)
    answer = sys.stdin.readline()
    return answer.strip().lower() in ("y", "yes")


def executable_in_path(cmd: str) -> bool:
    """Return whether ``cmd`` is an executable found in PATH."""
    return shutil.which(cmd) is not None


def is_in_container() -> bool:
    """Return whether the process runs inside a container."""
    return (
        any(os.path.exists(marker) for marker in _CONTAINER_MARKERS)
        or "container" in os.environ
    )