"""Initialization that runs inside the container as its entrypoint."""

from __future__ import annotations

import logging
import os
import shutil
import stat
import subprocess
import sys
import time
from os import PathLike
from pathlib import Path

from arcam.constants import (
    APP_NAME,
    ARCAM_DIR,
    FLAG_FILE_INIT,
    FLAG_FILE_PRE_INIT,
    FULL_VERSION,
    INIT_D_DIR,
)
from arcam.process import CommandError, run_status

_SKEL_DIR = Path("/etc/skel")

_ASROOT_SCRIPT = """#!/bin/sh
set -e

if command -v sudo >/dev/null; then
    sudo -u root -g root -- "$@"
else
    su -c "$*" -g root root
fi
"""


def walk_dir(root: str | PathLike) -> tuple[list[Path], list[Path]]:
    """Walk ``root`` recursively, returning (files and symlinks, directories) relative to it.

    Directories are listed before their contents; other file types are reported
    on stderr and skipped.
    """
    root = Path(root)
    files: list[Path] = []
    dirs: list[Path] = []

    def walk(directory: Path) -> None:
        try:
            entries = list(os.scandir(directory))
        except OSError as err:
            print(f"Error while reading directory: {err}", file=sys.stderr)
            return

        for entry in entries:
            path = Path(entry.path)
            relative = path.relative_to(root)
            try:
                if entry.is_dir(follow_symlinks=False):
                    dirs.append(relative)
                    walk(path)
                elif entry.is_file(follow_symlinks=False) or entry.is_symlink():
                    files.append(relative)
                else:
                    print(f"Invalid file type at {str(relative)!r}", file=sys.stderr)
            except OSError as err:
                print(f"Could not determine file type: {err}", file=sys.stderr)

    walk(root)
    return files, dirs


def clone_mode(source: str | PathLike, dest: str | PathLike) -> None:
    """Give ``dest`` the same permission bits as ``source``."""
    mode = os.lstat(source).st_mode
    os.chmod(dest, stat.S_IMODE(mode))


def make_executable(path: str | PathLike) -> None:
    """Add execute permission for everyone, like ``chmod +x``."""
    mode = os.stat(path).st_mode
    os.chmod(path, stat.S_IMODE(mode) | 0o111)


def _required_env(name: str) -> str:
    value = os.environ.get(name)
    if value is None:
        raise RuntimeError(f"{name} is undefined")
    return value


def _setup_user(user: str, uid: str, home: str, shell: str) -> None:
    found = subprocess.run(["getent", "passwd", user], capture_output=True).returncode == 0

    if not found:
        print(f"Creating user {user!r}")
        argv = [
            "useradd",
            "--shell", shell,
            "--home-dir", home,
            "--uid", uid,
            "--user-group",
            "--no-create-home",
            user,
        ]
    else:
        print(f"Modifying user {user!r}")
        argv = ["usermod", "--home", home, "--shell", shell, user]

    try:
        run_status(argv, logging.DEBUG, check=True)
    except CommandError as err:
        raise RuntimeError("Error while setting up the user") from err


def _copy_skel(home: Path, uid: int, gid: int) -> None:
    files, dirs = walk_dir(_SKEL_DIR)

    for directory in dirs:
        source = _SKEL_DIR / directory
        dest = home / directory
        if not dest.exists():
            dest.mkdir()
        os.chown(dest, uid, gid)
        clone_mode(source, dest)

    for file in files:
        source = _SKEL_DIR / file
        dest = home / file
        # copying fails on broken symlinks, so recreate them instead
        if source.is_symlink():
            os.symlink(os.readlink(source), dest)
        else:
            shutil.copy(source, dest)
        os.lchown(dest, uid, gid)


def _run_init_scripts(user: str, has_sudo: bool) -> None:
    init_dir = Path(INIT_D_DIR)
    if not init_dir.exists():
        return

    scripts: list[Path] = []
    for entry in os.scandir(init_dir):
        try:
            executable = os.stat(entry.path).st_mode & 0o111 != 0
        except OSError:
            executable = False
        if not executable:
            make_executable(entry.path)

        if entry.is_file(follow_symlinks=False) or entry.is_symlink():
            scripts.append(Path(entry.path))

    for script in sorted(scripts, key=lambda p: p.name):
        print(f"Executing script {str(script)!r}")
        if has_sudo:
            argv = ["sudo", "-u", user, str(script)]
        else:
            argv = ["su", user, "-c", str(script)]
        try:
            run_status(argv, logging.DEBUG, check=True)
        except CommandError as err:
            raise RuntimeError(f"Script {str(script)!r} has failed") from err


def initialization() -> None:
    """Set up the host user, home directory, sudo and run the init scripts."""
    print(f"{APP_NAME} {FULL_VERSION}")

    user = _required_env("HOST_USER")
    uid = _required_env("HOST_USER_UID")
    gid = _required_env("HOST_USER_GID")
    uid_n = int(uid)
    gid_n = int(gid)

    home = Path("/home") / user
    shell = "/bin/bash" if Path("/bin/bash").exists() else "/bin/sh"

    _setup_user(user, uid, str(home), shell)

    print("Setting up the user home")
    if not home.exists():
        try:
            home.mkdir()
        except OSError as err:
            raise RuntimeError("Failed to create user home") from err
    try:
        os.chown(home, uid_n, gid_n)
    except OSError as err:
        raise RuntimeError("Failed to chown user home directory") from err

    print("Recreating font cache")
    try:
        result = run_status(["fc-cache"], logging.DEBUG)
    except OSError:
        # some images do not ship fc-cache
        print("Failed to execute fc-cache, ignoring error..")
    else:
        if result.returncode != 0:
            raise RuntimeError("Failed to regenerate font cache")

    _copy_skel(home, uid_n, gid_n)

    runtime_dir = _required_env("XDG_RUNTIME_DIR")
    os.makedirs(runtime_dir, exist_ok=True)
    os.chown(runtime_dir, uid_n, gid_n)
    os.chmod(runtime_dir, 0o700)

    has_sudo = Path("/bin/sudo").exists()
    if has_sudo:
        print("Enabling passwordless sudo for everyone")
        with open("/etc/sudoers", "a", encoding="utf-8") as sudoers:
            sudoers.write("Defaults !fqdn\n")
            sudoers.write("ALL ALL = (ALL) NOPASSWD: ALL\n")
    else:
        print("Sudo not found, enabling passwordless su")
        code = subprocess.run(["passwd", "-d", "root"]).returncode
        if code != 0:
            raise RuntimeError(f"Error while setting passwd for root ({code})")

    _run_init_scripts(user, has_sudo)

    Path(FLAG_FILE_INIT).write_text("y")
    print("Initialization finished")


def container_init() -> None:
    """Entrypoint of the container: wait for pre-init, initialize, then idle forever."""
    for directory in (ARCAM_DIR, INIT_D_DIR, "/tmp/.X11-unix"):
        path = Path(directory)
        if not path.exists():
            path.mkdir()

    asroot = Path("/bin/asroot")
    asroot.write_text(_ASROOT_SCRIPT)
    make_executable(asroot)

    pre_init = Path(FLAG_FILE_PRE_INIT)
    pre_init.write_text("y")
    while pre_init.exists():
        time.sleep(0.5)

    initialization()

    # the container's init process ends this
    while True:
        time.sleep(60)