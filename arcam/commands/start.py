"""Starting a new container in the current directory."""

from __future__ import annotations

import dataclasses
import logging
import os
import random
import re
import sys
import time
from collections.abc import Callable
from pathlib import PurePosixPath

from arcam.cli import ConfigArgKind, ShellArgs, StartArgs
from arcam.commands.shell import open_shell
from arcam.commands.start_util import (
    find_terminfo,
    generate_name,
    get_hostname,
    mount_additional_mounts,
    mount_audio,
    mount_session_bus,
    mount_ssh_agent,
    mount_wayland,
    resolve_capabilities,
    write_to_file,
)
from arcam.config import config_from_file
from arcam.constants import (
    APP_NAME,
    ARCAM_EXE,
    CONTAINER_LABEL_CONTAINER_DIR,
    CONTAINER_LABEL_HOST_DIR,
    CONTAINER_LABEL_USER_SHELL,
    ENGINE_ERR_MSG,
    ENV_EXE_PATH,
    ENV_VERSION,
    FLAG_FILE_INIT,
    FLAG_FILE_PRE_INIT,
    INIT_D_DIR,
    VERSION,
)
from arcam.context import Context
from arcam.process import exit_code, log_command, run_output

_log = logging.getLogger(__name__)

_VAR_RE = re.compile(
    r"\$(?:\{(?P<braced>[A-Za-z0-9_]+)(?::-(?P<default>[^}]*))?\}|(?P<plain>[A-Za-z0-9_]+))"
)

Lookup = Callable[[str], "str | None"]


def expand_vars(text: str, lookup: Lookup) -> str:
    """Expand ``$VAR``, ``${VAR}`` and ``${VAR:-default}``; unknown variables stay as written."""

    def replace(match: re.Match) -> str:
        name = match.group("braced") or match.group("plain")
        value = lookup(name)
        if value is not None:
            return value
        default = match.group("default")
        if default is not None:
            return expand_vars(default, lookup)
        return match.group(0)

    return _VAR_RE.sub(replace, text)


def _context_lookup(ctx: Context, container_name: str) -> Lookup:
    def lookup(name: str) -> str | None:
        match name:
            case "USER":
                return ctx.user
            case "PWD" | "CWD":
                return str(ctx.cwd)
            case "HOME":
                return str(ctx.user_home)
            case "CONTAINER" | "CONTAINER_NAME":
                return container_name
            case "RAND" | "RANDOM":
                return str(random.getrandbits(32))
        value = os.environ.get(name)
        if value is None:
            _log.warning("Could not expand %r in config", name)
        return value

    return lookup


def _run_host_pre_init(script: str) -> None:
    """Replace this process with the host pre-init script."""
    path = f"/tmp/a{random.getrandbits(64)}"
    with open(path, "w", encoding="utf-8") as handle:
        handle.write("#!/bin/sh\n" + script)

    argv0 = sys.argv[0] if sys.argv else APP_NAME
    env = dict(os.environ)
    env[ENV_EXE_PATH] = argv0
    # skip the program name and the 'start' command
    os.execve("/bin/sh", ["/bin/sh", path, *sys.argv[2:]], env)


def _container_file_exists(ctx: Context, container_id: str, path: str) -> bool:
    _log.debug("Testing for existance of %r", path)
    try:
        result = run_output(ctx.engine.command("exec", container_id, "test", "-f", path))
    except OSError as err:
        raise RuntimeError(ENGINE_ERR_MSG) from err

    code = exit_code(result.returncode)
    match code:
        case 0:
            return True
        case 1:
            return False
        case 125:
            raise RuntimeError("Container has exited unexpectedly (125)")
        case 127:
            raise RuntimeError("Unknown command used during container initialization check")
    raise RuntimeError(f"Unknown error during container initialization ({code})")


def start_container(ctx: Context, args: StartArgs) -> list[str]:
    """Start a container for the current directory and return the engine command used."""
    args = dataclasses.replace(
        args,
        env=list(args.env),
        ports=list(args.ports),
        capabilities=list(args.capabilities),
        engine_args=list(args.engine_args),
    )
    executable_path = ctx.executable_path()

    # /ws/ prefix keeps the workspace apart from home dirs like ~/.config
    ws_dir = ctx.user_home / "ws"
    main_project_dir = f"{ws_dir}/{ctx.cwd.name}"

    cwd_containers = ctx.cwd_containers()
    if cwd_containers:
        raise RuntimeError(
            "There are containers running in current directory: "
            f"{' '.join(cwd_containers)!r}"
        )

    container_name = args.name if args.name is not None else generate_name()
    persist: list[tuple[str, str]] = []
    persist_user: list[tuple[str, str]] = []
    _log.debug("Container name set to %r", container_name)

    if args.config.kind is ConfigArgKind.IMAGE:
        container_image = str(args.config.value)
        on_init_pre = ""
        on_init_post = ""
    else:
        if args.config.kind is ConfigArgKind.FILE:
            _log.debug("Loading config file %r", str(args.config.value))
            config = config_from_file(args.config.value)
        else:
            _log.debug("Loading config @%r", str(args.config.value))
            config = ctx.find_config(str(args.config.value))

        if config.host_pre_init is not None and os.environ.get(ENV_EXE_PATH) is None:
            _run_host_pre_init(config.host_pre_init)

        container_image = config.image
        lookup = _context_lookup(ctx, container_name)

        args.engine_args.extend(expand_vars(arg, lookup) for arg in config.engine_args)

        if args.skel is None and config.skel is not None:
            args.skel = expand_vars(config.skel, lookup)

        args.env.extend(expand_vars(f"{key}={value}", lookup) for key, value in config.env)

        if args.shell is None:
            args.shell = config.shell
        if args.network is None:
            args.network = config.network
        if args.audio is None:
            args.audio = config.audio
        if args.wayland is None:
            args.wayland = config.wayland
        if args.ssh_agent is None:
            args.ssh_agent = config.ssh_agent
        if args.session_bus is None:
            args.session_bus = config.session_bus
        args.ports.extend(config.ports)
        args.capabilities.extend(config.capabilities)

        persist = list(config.persist)
        persist_user = list(config.persist_user)

        on_init_pre = "\n".join(args.on_init_pre) + (config.on_init_pre or "")
        on_init_post = "\n".join(args.on_init_post) + (config.on_init_post or "")

    _log.debug("Using image %r", container_image)

    if not ctx.dry_run and ctx.engine.container_exists(container_name):
        raise RuntimeError(f"Container with name {container_name!r} already exists")

    if args.shell is None:
        args.shell = "/bin/bash"
    _log.info("Using %r as the shell", args.shell)

    engine = str(ctx.engine)
    argv = ctx.engine.command(
        "run",
        "-d",
        "--rm",
        "--security-opt=label=disable",
        "--user=root",
        "--init",
        # detaching breaks things
        "--detach-keys=",
        f"--name={container_name}",
        f"--label=manager={engine}",
        f"--label={APP_NAME}={VERSION}",
        f"--label={CONTAINER_LABEL_HOST_DIR}={ctx.cwd}",
        f"--label={CONTAINER_LABEL_CONTAINER_DIR}={main_project_dir}",
        f"--label={CONTAINER_LABEL_USER_SHELL}={args.shell}",
        f"--env={APP_NAME}={APP_NAME}",
        f"--env={ENV_VERSION}={VERSION}",
        f"--env=manager={engine}",
        f"--env=CONTAINER_ENGINE={engine}",
        f"--env=CONTAINER_NAME={container_name}",
        f"--env=HOST_USER={ctx.user}",
        f"--env=HOST_USER_UID={ctx.user_id}",
        f"--env=HOST_USER_GID={ctx.user_gid}",
        f"--env=XDG_RUNTIME_DIR=/run/user/{ctx.user_id}",
        f"--volume={ctx.cwd}:{main_project_dir}",
        f"--volume={executable_path}:{ARCAM_EXE}:ro,nocopy",
        f"--entrypoint={ARCAM_EXE}",
        f"--hostname={get_hostname()}",
        "--userns=keep-id",
        "--group-add=keep-groups",
        "--ulimit=host",
        "--tz=local",
    )

    argv += [f"--env={entry}" for entry in args.env]
    argv += resolve_capabilities(args.capabilities)
    argv += mount_additional_mounts(ws_dir, args.mount)
    argv += find_terminfo()

    # --mount prevents persist entries from mounting host paths
    argv += [
        f"--mount=type=volume,source={volume},destination={path}"
        for volume, path in [*persist, *persist_user]
    ]

    if not args.network:
        argv.append("--network=none")

    argv += mount_audio(ctx, args)
    argv += mount_wayland(ctx, args)
    argv += mount_ssh_agent(ctx, args)
    argv += mount_session_bus(ctx, args)

    for container_port, host_port in args.ports:
        argv.append(f"--publish={host_port}:{container_port}/tcp")
        argv.append(f"--publish={host_port}:{container_port}/udp")

    if args.skel is not None:
        argv.append(f"--volume={args.skel}:/etc/skel:ro")

    argv += args.engine_args
    argv += [container_image, "init"]

    if ctx.dry_run:
        log_command(argv, logging.ERROR)
        return argv

    try:
        result = run_output(argv, logging.DEBUG)
    except OSError as err:
        raise RuntimeError(ENGINE_ERR_MSG) from err

    if result.returncode != 0:
        stderr = result.stderr.decode("utf-8", errors="replace")
        raise RuntimeError(f"Stderr from container init: {stderr}")

    container_id = result.stdout.decode("utf-8", errors="replace").strip()
    init_d = PurePosixPath(INIT_D_DIR)

    if on_init_pre:
        write_to_file(
            ctx, container_id, init_d / "01_on_init_pre.sh", "#!/bin/sh\nset -e\n" + on_init_pre
        )

    if persist_user:
        paths = " ".join(path for _, path in persist_user)
        script = f'#!/bin/sh\nset -e\n\nasroot chown "$USER:$USER" {paths}\n'
        write_to_file(ctx, container_id, init_d / "00_chown_persist.sh", script)

    if on_init_post:
        write_to_file(
            ctx, container_id, init_d / "99_on_init_post.sh", "#!/bin/sh\nset -e\n" + on_init_post
        )

    _log.debug("Waiting for container preinitalization")
    while not _container_file_exists(ctx, container_id, FLAG_FILE_PRE_INIT):
        time.sleep(0.1)

    ctx.engine.exec(container_id, ["rm", FLAG_FILE_PRE_INIT])

    _log.debug("Waiting for container initialization")
    while not _container_file_exists(ctx, container_id, FLAG_FILE_INIT):
        time.sleep(0.3)

    if args.enter:
        _log.debug("Launching shell")
        open_shell(ctx, ShellArgs(name=container_name))
    else:
        print(container_name)
    return argv