"""Helpers used while assembling the engine command that starts a container."""

from __future__ import annotations

import logging
import os
import random
import subprocess
from collections.abc import Iterable
from os import PathLike
from pathlib import Path
from typing import TYPE_CHECKING

from arcam.constants import APP_NAME, ENV_CONTAINER_SUFFIX, ENV_WAYLAND_DISPLAY
from arcam.process import exit_code, spawn

if TYPE_CHECKING:
    from arcam.cli import StartArgs
    from arcam.context import Context

_log = logging.getLogger(__name__)

_TERMINFO_DIRS = ("/usr/share/terminfo", "/usr/lib/terminfo", "/etc/terminfo")

_ADJECTIVES = (
    "agile", "ancient", "bold", "brave", "bright", "calm", "clever", "cosmic",
    "curious", "daring", "eager", "electric", "fancy", "fearless", "fierce",
    "gentle", "gleaming", "golden", "grumpy", "happy", "hidden", "humble",
    "jolly", "keen", "lively", "lucky", "mellow", "mighty", "misty", "nimble",
    "noble", "patient", "proud", "quiet", "rapid", "restless", "shiny", "silent",
    "sleepy", "swift", "tidy", "vivid", "wandering", "wise", "witty", "zealous",
)


def get_hostname() -> str:
    """Return the host name, from HOSTNAME or the ``hostname`` command."""
    from_env = os.environ.get("HOSTNAME")
    if from_env is not None:
        _log.debug("Getting hostname from environ")
        return from_env

    _log.debug("Getting hostname using hostname command")
    try:
        result = subprocess.run(["hostname"], capture_output=True)
    except OSError as err:
        raise RuntimeError("Could not call hostname") from err

    hostname = result.stdout.decode("utf-8", errors="replace")
    if result.returncode != 0 or not hostname:
        raise RuntimeError("Unable to get hostname from host")
    return hostname.strip()


def generate_name() -> str:
    """Return a random container name made of an adjective and a suffix."""
    adjective = random.choice(_ADJECTIVES)
    suffix = os.environ.get(ENV_CONTAINER_SUFFIX, APP_NAME)
    return f"{adjective}-{suffix}"


def find_terminfo() -> list[str]:
    """Return engine arguments mounting the host terminfo directories."""
    _log.debug("Looking for terminfo directories on host system")
    existing = [path for path in _TERMINFO_DIRS if os.path.exists(path)]
    for path in existing:
        _log.debug("Found %r", path)

    args = [f"--volume={path}:/host{path}:ro" for path in existing]
    dirs = [f"/host{path}" for path in existing] + existing
    args.append(f"--env=TERMINFO_DIRS={':'.join(dirs)}")
    return args


def resolve_capabilities(capabilities: Iterable[str]) -> list[str]:
    """Turn ``CAP`` / ``!CAP`` entries into add/drop arguments, later ones winning."""
    caps: dict[str, bool] = {}
    for entry in capabilities:
        if entry.startswith("!"):
            caps[entry[1:]] = False
        else:
            caps[entry] = True
    return [f"--cap-add={cap}" if add else f"--cap-drop={cap}" for cap, add in caps.items()]


def mount_wayland(ctx: Context, args: StartArgs) -> list[str]:
    """Arguments passing the wayland socket and fonts into the container."""
    if not args.wayland:
        return []

    display = os.environ.get(ENV_WAYLAND_DISPLAY) or os.environ.get("WAYLAND_DISPLAY")
    if display is None:
        raise RuntimeError(
            "Could not pass through wayland socket as WAYLAND_DISPLAY is not defined"
        )

    socket_path = f"/run/user/{ctx.user_id}/{display}"
    if not os.path.exists(socket_path):
        raise FileNotFoundError(f"Could not find the wayland socket {socket_path!r}")
    _log.debug("Found wayland socket at %r", socket_path)

    result = [
        f"--volume={socket_path}:{socket_path}",
        f"--env=WAYLAND_DISPLAY={display}",
        "--volume=/usr/share/fonts:/usr/share/fonts/host:ro",
    ]

    dot_fonts = ctx.user_home / ".fonts"
    if dot_fonts.exists():
        result.append(f"--volume={dot_fonts}:/usr/share/fonts/host_dot:ro")

    local_fonts = ctx.user_home / ".local" / "share" / "fonts"
    if local_fonts.exists():
        result.append(f"--volume={local_fonts}:/usr/share/fonts/host_local:ro")

    return result


def mount_additional_mounts(ws_dir: str | PathLike, mounts: Iterable[str]) -> list[str]:
    """Arguments mounting each directory under the workspace directory."""
    result = []
    for mount in mounts:
        path = Path(mount)
        if not path.exists():
            raise FileNotFoundError(f"Mountpoint {mount!r} does not exist")
        if not path.is_dir():
            raise NotADirectoryError(f"Mountpoint {mount!r} is not a directory")

        absolute = path.resolve()
        _log.debug("Mounting additional mount %r", str(absolute))
        result.append(f"--volume={absolute}:{ws_dir}/{absolute.name}")
    return result


def mount_audio(ctx: Context, args: StartArgs) -> list[str]:
    """Arguments passing the pulseaudio socket into the container."""
    if not args.audio:
        return []

    socket_path = f"/run/user/{ctx.user_id}/pulse/native"
    if not os.path.exists(socket_path):
        raise FileNotFoundError("Could not find pulseaudio socket to pass to the container")
    _log.debug("Pulseaudio socket found at %r", socket_path)
    return [
        f"--volume={socket_path}:{socket_path}",
        f"--env=PULSE_SERVER=unix:{socket_path}",
    ]


def mount_ssh_agent(ctx: Context, args: StartArgs) -> list[str]:
    """Arguments passing the ssh-agent socket into the container."""
    if not args.ssh_agent:
        return []

    sock = os.environ.get("SSH_AUTH_SOCK")
    if sock is None:
        raise RuntimeError("Could not pass through ssh-agent as SSH_AUTH_SOCK is not defined")
    if not os.path.exists(sock):
        raise FileNotFoundError(f"Socket does not exist at {sock!r} (ssh-agent)")

    _log.debug("ssh-agent socket found at %r", sock)
    return [
        f"--volume={sock}:/run/user/{ctx.user_id}/ssh-auth",
        f"--env=SSH_AUTH_SOCK=/run/user/{ctx.user_id}/ssh-auth",
    ]


def mount_session_bus(ctx: Context, args: StartArgs) -> list[str]:
    """Arguments passing the D-Bus session bus socket into the container."""
    if not args.session_bus:
        return []

    address = os.environ.get("DBUS_SESSION_BUS_ADDRESS")
    if address is None:
        raise RuntimeError(
            "Could not pass through session bus as DBUS_SESSION_BUS_ADDRESS is not defined"
        )
    if not address.startswith("unix:path="):
        raise ValueError(f"Invalid format for DBUS_SESSION_BUS_ADDRESS={address!r}")

    sock = address.removeprefix("unix:path=")
    if not os.path.exists(sock):
        raise FileNotFoundError(f"Socket does not exist at {sock!r} (session bus)")

    _log.debug("Session dbus socket found at %r", sock)
    return [
        f"--volume={sock}:/run/user/{ctx.user_id}/bus",
        f"--env=DBUS_SESSION_BUS_ADDRESS=unix:path=/run/user/{ctx.user_id}/bus",
    ]


def write_to_file(ctx: Context, container: str, path: str | PathLike, content: str) -> None:
    """Write ``content`` to ``path`` inside the container as root."""
    _log.debug("Writing data to file %r", str(path))
    child = spawn(
        ctx.engine.command("exec", "-i", "--user", "root", container, "tee", str(path)),
        logging.DEBUG,
        stdin=subprocess.PIPE,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
    )
    child.communicate(content.encode("utf-8"))
    if child.returncode != 0:
        raise RuntimeError(
            f"Error writing to file {str(path)!r} in container ({exit_code(child.returncode)})"
        )