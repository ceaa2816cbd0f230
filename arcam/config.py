"""Container configuration files."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field, fields
from os import PathLike
from pathlib import Path
from typing import Any

import tomli_w

_U32_MAX = 0xFFFFFFFF


class ConfigError(ValueError):
    """Raised when a configuration cannot be read or is invalid."""


def _option(doc: str, type_name: str, kind: str, **kwargs: Any) -> Any:
    return field(metadata={"doc": doc, "type": type_name, "kind": kind}, **kwargs)


@dataclass
class Config:
    """Single configuration for a container."""

    image: str = _option("Image used for the container", "String", "str", default="")
    skel: str | None = _option(
        "Optional path to directory to use as /etc/skel (static dotfiles)\n\n"
        "Environ vars are expanded",
        "Option<String>",
        "opt_str",
        default=None,
    )
    shell: str | None = _option("Default user shell", "Option<String>", "opt_str", default=None)
    network: bool = _option("Set network access", "bool", "bool", default=False)
    audio: bool = _option(
        "Passthrough pulseaudio, security impact is unknown", "bool", "bool", default=False
    )
    wayland: bool = _option(
        "Passthrough wayland compositor socket, high security impact, allows clipboard access",
        "bool",
        "bool",
        default=False,
    )
    ssh_agent: bool = _option(
        "Passthrough ssh-agent socket, security impact is unknown", "bool", "bool", default=False
    )
    session_bus: bool = _option(
        "Passthrough D-BUS session bus, maximum security impact allows arbitrary code execution",
        "bool",
        "bool",
        default=False,
    )
    persist: list[tuple[str, str]] = _option(
        "Path to mount as a volume, basically shorthand for `--volume=<name>:<path>`",
        "Array<(String, String)>",
        "str_pairs",
        default_factory=list,
    )
    persist_user: list[tuple[str, str]] = _option(
        "Same as `persist` but the path is chowned as user on init",
        "Array<(String, String)>",
        "str_pairs",
        default_factory=list,
    )
    on_init_pre: str | None = _option(
        "Run command before all other scripts (ran using `/bin/sh`)",
        "Option<String>",
        "opt_str",
        default=None,
    )
    on_init_post: str | None = _option(
        "Run command after all other scripts (ran using `/bin/sh`)",
        "Option<String>",
        "opt_str",
        default=None,
    )
    host_pre_init: str | None = _option(
        "Script to run on start, all original arguments are passed verbatim, you have to run\n"
        "`arcam start` yourself or nothing will happen\n\n"
        'NOTE: the script is ran using "/bin/sh"',
        "Option<String>",
        "opt_str",
        default=None,
    )
    ports: list[tuple[int, int]] = _option(
        "Pass through container port to host (both TCP and UDP)\n\n"
        "Not all ports are allowed with rootless podman",
        "Array<(u32, u32)>",
        "port_pairs",
        default_factory=list,
    )
    env: list[tuple[str, str]] = _option(
        "Environment variables to set (name, value)\n\nEnviron vars are expanded",
        "Array<(String, String)>",
        "str_pairs",
        default_factory=list,
    )
    capabilities: list[str] = _option(
        "Add capabilities, or drop them with by prefixing `!cap`\n\n"
        "For more details about capabilities read `man 7 capabilities`",
        "Array<String>",
        "str_list",
        default_factory=list,
    )
    engine_args: list[str] = _option(
        "Args passed to the engine\n\nEnviron vars are expanded",
        "Array<String>",
        "str_list",
        default_factory=list,
    )


_FIELDS = {f.name: f for f in fields(Config)}


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _expect_str(name: str, value: Any) -> str:
    if not isinstance(value, str):
        raise ConfigError(f"invalid type for `{name}`: expected a string")
    return value


def _expect_bool(name: str, value: Any) -> bool:
    if not isinstance(value, bool):
        raise ConfigError(f"invalid type for `{name}`: expected a boolean")
    return value


def _expect_list(name: str, value: Any) -> list:
    if not isinstance(value, list):
        raise ConfigError(f"invalid type for `{name}`: expected an array")
    return value


def _expect_pair(name: str, item: Any) -> tuple:
    if not isinstance(item, list) or len(item) != 2:
        raise ConfigError(f"invalid type for `{name}`: expected an array of 2 elements")
    return tuple(item)


def _expect_port(name: str, value: Any) -> int:
    if not _is_int(value) or not 0 <= value <= _U32_MAX:
        raise ConfigError(f"invalid value for `{name}`: expected a port number")
    return value


def _convert(name: str, kind: str, value: Any) -> Any:
    match kind:
        case "str" | "opt_str":
            return _expect_str(name, value)
        case "bool":
            return _expect_bool(name, value)
        case "str_list":
            return [_expect_str(name, item) for item in _expect_list(name, value)]
        case "str_pairs":
            return [
                tuple(_expect_str(name, part) for part in _expect_pair(name, item))
                for item in _expect_list(name, value)
            ]
        case "port_pairs":
            return [
                tuple(_expect_port(name, part) for part in _expect_pair(name, item))
                for item in _expect_list(name, value)
            ]
    raise ConfigError(f"unsupported field kind {kind!r}")


def config_from_str(text: str) -> Config:
    """Parse a versioned TOML config file and return its configuration."""
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as err:
        raise ConfigError(f"invalid TOML: {err}") from err

    unknown = sorted(set(data) - {"version"} - set(_FIELDS))
    if unknown:
        raise ConfigError(f"unknown field `{unknown[0]}`")

    if "version" not in data:
        raise ConfigError("missing field `version`")
    version = data["version"]
    if not _is_int(version) or version < 0:
        raise ConfigError("invalid type for `version`: expected an unsigned integer")

    if "image" not in data:
        raise ConfigError("missing field `image`")

    values = {
        name: _convert(name, f.metadata["kind"], data[name])
        for name, f in _FIELDS.items()
        if name in data
    }
    return Config(**values)


def config_from_file(path: str | PathLike) -> Config:
    """Read and parse a config file."""
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as err:
        raise ConfigError(f"while reading config file {str(path)!r}: {err}") from err

    try:
        return config_from_str(text)
    except ConfigError as err:
        raise ConfigError(f"while parsing config file {str(path)!r}: {err}") from err


def config_to_toml(config: Config, version: int = 1) -> str:
    """Serialize a configuration as a versioned TOML document."""
    document: dict[str, Any] = {"version": version}
    for name in _FIELDS:
        value = getattr(config, name)
        if value is None:
            continue
        if isinstance(value, list):
            value = [list(item) if isinstance(item, tuple) else item for item in value]
        document[name] = value
    return tomli_w.dumps(document)


def describe_fields() -> str:
    """Return documentation of every config option with its type."""
    blocks = []
    for name, f in _FIELDS.items():
        doc = "\n".join(f"/// {line}".rstrip() for line in f.metadata["doc"].splitlines())
        blocks.append(f"{doc}\n{name}: {f.metadata['type']}")
    return "\n\n".join(blocks)