"""Command line interface definition and parsing."""

from __future__ import annotations

import argparse
import logging
import os
import re
import sys
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from arcam.config import Config, config_from_file
from arcam.constants import (
    APP_NAME,
    ENV_CONTAINER,
    ENV_ENTER_ON_START,
    ENV_IMAGE,
    ENV_LOG_LEVEL,
    FULL_VERSION,
)

if TYPE_CHECKING:
    from arcam.context import Context

TRACE = 5

_U32_MAX = 0xFFFFFFFF
_PORT_RE = re.compile(r"\+?[0-9]+")
_LOG_LEVELS = {
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
    "trace": TRACE,
}
_FALSY = {"", "n", "no", "f", "false", "off", "0"}
_COMPLETION_SHELLS = ("bash", "elvish", "fish", "powershell", "zsh")
_CONFIG_METAVAR = "FILE|IMAGE|@CONFIG"
_PERMISSIONS = "Permissions"

_COMMAND_ALIASES = {
    "start": "start",
    "shell": "shell",
    "enter": "shell",
    "exec": "exec",
    "exists": "exists",
    "config": "config",
    "list": "list",
    "ls": "list",
    "logs": "logs",
    "kill": "kill",
    "stop": "kill",
    "completion": "completion",
    "init": "init",
}

# options whose value is optional but must be joined with "="
_IMPLICIT_VALUES = {
    "start": {
        "--network": "true",
        "--audio": "true",
        "--wayland": "true",
        "--ssh-agent": "true",
        "--session-bus": "true",
    },
    "exec": {"--shell": "/bin/sh"},
}


class ConfigArgKind(Enum):
    """What a config argument refers to."""

    FILE = "file"
    IMAGE = "image"
    CONFIG = "config"


@dataclass(frozen=True)
class ConfigArg:
    """A config file, a plain image, or a named config."""

    kind: ConfigArgKind
    value: str | Path

    @classmethod
    def parse(cls, text: str) -> ConfigArg:
        """Classify ``text`` as a file path, an ``@config`` name or an image."""
        if text.startswith((".", "/", "~/")) or text.endswith(".toml"):
            return cls(ConfigArgKind.FILE, Path(text))
        if text.startswith("@"):
            return cls(ConfigArgKind.CONFIG, text[1:])
        return cls(ConfigArgKind.IMAGE, text)

    def into_config(self, ctx: Context) -> Config:
        """Load the configuration this argument refers to."""
        match self.kind:
            case ConfigArgKind.FILE:
                return config_from_file(self.value)
            case ConfigArgKind.IMAGE:
                return Config(image=str(self.value))
            case ConfigArgKind.CONFIG:
                return ctx.find_config(str(self.value))
        raise ValueError(f"unknown config kind {self.kind!r}")


class ShellCompletionType(Enum):
    """Values the completion helper can list."""

    CONFIG = "config"
    CONTAINER = "container"


@dataclass(kw_only=True)
class StartArgs:
    """Arguments of the start command."""

    config: ConfigArg
    enter: bool = False
    name: str | None = None
    shell: str | None = None
    skel: str | None = None
    on_init_pre: list[str] = field(default_factory=list)
    on_init_post: list[str] = field(default_factory=list)
    mount: list[str] = field(default_factory=list)
    env: list[str] = field(default_factory=list)
    network: bool | None = None
    audio: bool | None = None
    wayland: bool | None = None
    ssh_agent: bool | None = None
    session_bus: bool | None = None
    ports: list[tuple[int, int]] = field(default_factory=list)
    capabilities: list[str] = field(default_factory=list)
    engine_args: list[str] = field(default_factory=list)


@dataclass(kw_only=True)
class ShellArgs:
    """Arguments of the shell command."""

    shell: str | None = None
    name: str = ""


@dataclass(kw_only=True)
class ExecArgs:
    """Arguments of the exec command."""

    command: list[str]
    shell: str | None = None
    login: bool = False
    name: str = ""


@dataclass(kw_only=True)
class ExistsArgs:
    """Arguments of the exists command."""

    name: str = ""


@dataclass(kw_only=True)
class ConfigArgs:
    """Arguments of the config command."""

    options: bool = False
    example: bool = False
    config: ConfigArg | None = None


@dataclass(kw_only=True)
class ListArgs:
    """Arguments of the list command."""

    raw: bool = False
    here: bool = False


@dataclass(kw_only=True)
class LogsArgs:
    """Arguments of the logs command."""

    follow: bool = False
    name: str = ""


@dataclass(kw_only=True)
class KillArgs:
    """Arguments of the kill command."""

    yes: bool = False
    timeout: int = 10
    name: str = ""


@dataclass(kw_only=True)
class CompletionArgs:
    """Arguments of the completion command."""

    shell: str | None = None
    complete: ShellCompletionType | None = None


@dataclass
class InitArgs:
    """The init command takes no arguments."""


@dataclass
class Cli:
    """Parsed command line."""

    dry_run: bool
    log_level: int
    command: (
        StartArgs
        | ShellArgs
        | ExecArgs
        | ExistsArgs
        | ConfigArgs
        | ListArgs
        | LogsArgs
        | KillArgs
        | CompletionArgs
        | InitArgs
    )


def _parse_port(raw: str) -> int:
    if not _PORT_RE.fullmatch(raw) or int(raw) > _U32_MAX:
        raise ValueError(f"Invalid port {raw!r}")
    return int(raw)


def parse_ports(text: str) -> tuple[int, int]:
    """Parse ``PORT`` or ``PORT:HOST_PORT`` into a (container, host) pair."""
    left, sep, right = text.partition(":")
    if sep:
        return _parse_port(left), _parse_port(right)
    port = _parse_port(text)
    return port, port


def _port_type(text: str) -> tuple[int, int]:
    try:
        return parse_ports(text)
    except ValueError as err:
        raise argparse.ArgumentTypeError(str(err)) from err


def _log_level(text: str) -> int:
    try:
        return _LOG_LEVELS[text.lower()]
    except KeyError:
        raise argparse.ArgumentTypeError(f"invalid log level {text!r}") from None


def _bool_value(text: str) -> bool:
    match text:
        case "true":
            return True
        case "false":
            return False
    raise argparse.ArgumentTypeError(f"invalid value {text!r}, expected true or false")


def _env_flag(value: str | None) -> bool:
    return value is not None and value.lower() not in _FALSY


def _add_name(parser: argparse.ArgumentParser, env: Mapping[str, str], help_text: str | None):
    parser.add_argument(
        "name", nargs="?", default=env.get(ENV_CONTAINER, ""), metavar="CONTAINER", help=help_text
    )


def _add_start(sub, env: Mapping[str, str]) -> None:
    p = sub.add_parser(
        "start", help="Start a container in current directory, mounting it read-write",
        allow_abbrev=False,
    )
    p.set_defaults(_command="start")
    p.add_argument(
        "-E", "--enter", action="store_true", default=_env_flag(env.get(ENV_ENTER_ON_START)),
        help="Enter shell after container initialization finishes",
    )
    p.add_argument("--name", default=env.get(ENV_CONTAINER), help="Name of the new container")
    p.add_argument("--shell", help="Set container default shell")
    p.add_argument("--skel", metavar="DIR", help="Directory used as /etc/skel in the container")
    p.add_argument("--on-init-pre", action="append", metavar="COMMAND",
                   help="Run command on init, before all other scripts")
    p.add_argument("--on-init-post", action="append", metavar="COMMAND",
                   help="Run command on init, after all other scripts")
    p.add_argument("-m", "--mount", action="append", metavar="DIRECTORY",
                   help="Mount additional paths inside workspace")
    p.add_argument("-e", "--env", action="append", metavar="VAR=VALUE",
                   help="Environment variables to set inside the container")

    perms = p.add_argument_group(_PERMISSIONS)
    for flag, help_text in (
        ("--network", "Set network access permission for the container"),
        ("--audio", "Try to pass audio into the container"),
        ("--wayland", "Pass the wayland compositor through"),
        ("--ssh-agent", "Pass through ssh-agent socket"),
        ("--session-bus", "Pass through session dbus socket"),
    ):
        perms.add_argument(flag, type=_bool_value, metavar="BOOL", help=help_text)
    perms.add_argument("-p", "--port", dest="ports", action="append", type=_port_type,
                       metavar="PORT[:HOST_PORT]", help="Pass through container port to host")
    perms.add_argument("--cap", dest="capabilities", action="append", metavar="[!]CAPABILITY",
                       help="Add capabilities, or drop them by prefixing with !")

    config_help = "File, image or config to use to start a container"
    if ENV_IMAGE in env:
        p.add_argument("config", nargs="?", type=ConfigArg.parse,
                       default=ConfigArg.parse(env[ENV_IMAGE]), metavar=_CONFIG_METAVAR,
                       help=config_help)
    else:
        p.add_argument("config", type=ConfigArg.parse, metavar=_CONFIG_METAVAR, help=config_help)


def _add_commands(sub, env: Mapping[str, str]) -> None:
    _add_start(sub, env)

    p = sub.add_parser("shell", aliases=["enter"], allow_abbrev=False,
                       help="Enter the shell inside a running container")
    p.set_defaults(_command="shell")
    p.add_argument("--shell", help="Use a specific shell")
    _add_name(p, env, "Name or the ID of the container")

    p = sub.add_parser("exec", allow_abbrev=False,
                       help="Execute a command inside a running container as the user")
    p.set_defaults(_command="exec")
    p.add_argument("--shell", help="Execute the command in a shell (default /bin/sh)")
    p.add_argument("--login", action="store_true", help="Execute command in a login shell")
    _add_name(p, env, "Name or the ID of the container")

    p = sub.add_parser("exists", allow_abbrev=False, help="Check if container exists")
    p.set_defaults(_command="exists")
    _add_name(p, env, None)

    p = sub.add_parser("config", allow_abbrev=False,
                       help="Inspect a config, can be used as syntax check")
    p.set_defaults(_command="config")
    p.add_argument("-o", "--options", action="store_true", help="Show all options for a config")
    p.add_argument("-e", "--example", action="store_true", help="Show example config")
    p.add_argument("config", nargs="?", type=ConfigArg.parse, metavar=_CONFIG_METAVAR,
                   help="Path to file, name of image or @config to inspect")

    p = sub.add_parser("list", aliases=["ls"], allow_abbrev=False, help="List running containers")
    p.set_defaults(_command="list")
    p.add_argument("--raw", action="store_true", help="One container per line, tab delimited")
    p.add_argument("--here", action="store_true",
                   help="Only show containers started in this directory")

    p = sub.add_parser("logs", allow_abbrev=False, help="Show container logs in journalctl")
    p.set_defaults(_command="logs")
    p.add_argument("-f", "--follow", action="store_true", help="Follow the logs")
    _add_name(p, env, None)

    p = sub.add_parser("kill", aliases=["stop"], allow_abbrev=False,
                       help="Stop running container")
    p.set_defaults(_command="kill")
    p.add_argument("-y", "--yes", action="store_true", help="Do not ask for confirmation")
    p.add_argument("-t", "--timeout", type=int, default=10,
                   help="Delay before container forcibly terminated (in seconds)")
    _add_name(p, env, None)

    p = sub.add_parser("completion", allow_abbrev=False, help="Shell autocompletion")
    p.set_defaults(_command="completion")
    p.add_argument("--shell", choices=_COMPLETION_SHELLS,
                   help="Explicitly generate completions for specific shell")
    p.add_argument("complete", nargs="?", choices=[t.value for t in ShellCompletionType],
                   help=argparse.SUPPRESS)

    p = sub.add_parser("init", allow_abbrev=False)
    p.set_defaults(_command="init")


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser, taking defaults from the environment."""
    env = os.environ
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description="Sandboxed development container manager, with focus on security by default",
        allow_abbrev=False,
    )
    parser.add_argument("-V", "--version", action="version", version=f"{APP_NAME} {FULL_VERSION}")
    parser.add_argument("--dry-run", action="store_true",
                        help="Just print engine commands that would've been ran, do not execute")
    parser.add_argument("-l", "--log-level", type=_log_level,
                        default=env.get(ENV_LOG_LEVEL, "Warn"),
                        metavar="Error|Warn|Info|Debug|Trace", help="Increase verbosity")
    sub = parser.add_subparsers(dest="command", metavar="COMMAND", required=True)
    _add_commands(sub, env)
    return parser


def _subcommand_index(tokens: Sequence[str]) -> int | None:
    skip = False
    for index, token in enumerate(tokens):
        if skip:
            skip = False
        elif token in ("-l", "--log-level"):
            skip = True
        elif token in _COMMAND_ALIASES:
            return index
    return None


def _with_implicit_values(tokens: list[str]) -> list[str]:
    index = _subcommand_index(tokens)
    if index is None:
        return tokens
    implicit = _IMPLICIT_VALUES.get(_COMMAND_ALIASES[tokens[index]], {})
    rest = [f"{tok}={implicit[tok]}" if tok in implicit else tok for tok in tokens[index + 1:]]
    return [*tokens[: index + 1], *rest]


def _build_command(parser: argparse.ArgumentParser, ns: argparse.Namespace,
                   trailing: list[str] | None):
    command = ns._command
    if trailing is not None and command not in ("start", "exec"):
        parser.error("unexpected argument '--' found")

    match command:
        case "start":
            return StartArgs(
                config=ns.config,
                enter=ns.enter,
                name=ns.name,
                shell=ns.shell,
                skel=ns.skel,
                on_init_pre=ns.on_init_pre or [],
                on_init_post=ns.on_init_post or [],
                mount=ns.mount or [],
                env=ns.env or [],
                network=ns.network,
                audio=ns.audio,
                wayland=ns.wayland,
                ssh_agent=ns.ssh_agent,
                session_bus=ns.session_bus,
                ports=ns.ports or [],
                capabilities=ns.capabilities or [],
                engine_args=trailing or [],
            )
        case "shell":
            return ShellArgs(shell=ns.shell, name=ns.name)
        case "exec":
            if ns.login and ns.shell is None:
                parser.error("the argument --login requires --shell")
            if not trailing:
                parser.error("the following arguments are required: COMMAND")
            return ExecArgs(command=trailing, shell=ns.shell, login=ns.login, name=ns.name)
        case "exists":
            return ExistsArgs(name=ns.name)
        case "config":
            given = sum((ns.options, ns.example, ns.config is not None))
            if (ns.options or ns.example) and given > 1:
                parser.error("--options and --example cannot be used with other arguments")
            if given == 0:
                parser.error(f"the following arguments are required: {_CONFIG_METAVAR}")
            return ConfigArgs(options=ns.options, example=ns.example, config=ns.config)
        case "list":
            return ListArgs(raw=ns.raw, here=ns.here)
        case "logs":
            return LogsArgs(follow=ns.follow, name=ns.name)
        case "kill":
            return KillArgs(yes=ns.yes, timeout=ns.timeout, name=ns.name)
        case "completion":
            if ns.shell is not None and ns.complete is not None:
                parser.error("--shell cannot be used with other arguments")
            complete = ShellCompletionType(ns.complete) if ns.complete is not None else None
            return CompletionArgs(shell=ns.shell, complete=complete)
        case "init":
            return InitArgs()
    parser.error(f"unknown command {command!r}")


def parse_args(argv: Sequence[str] | None = None) -> Cli:
    """Parse the command line; invalid input exits through argparse."""
    tokens = list(sys.argv[1:] if argv is None else argv)
    trailing: list[str] | None = None
    if "--" in tokens:
        split = tokens.index("--")
        tokens, trailing = tokens[:split], tokens[split + 1:]

    parser = build_parser()
    ns = parser.parse_args(_with_implicit_values(tokens))
    command = _build_command(parser, ns, trailing)
    return Cli(dry_run=ns.dry_run, log_level=ns.log_level, command=command)