"""Container engine abstraction and the podman implementation."""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from arcam.constants import ENGINE_ERR_MSG
from arcam.process import run_output

_INSPECT_ERROR = 'Error parsing output from "podman inspect"'


class EngineError(RuntimeError):
    """Raised when the container engine fails or returns unexpected data."""


@dataclass
class ContainerInfo:
    """Name and labels of a container."""

    name: str
    labels: dict[str, str] = field(default_factory=dict)


def parse_inspect_output(text: str) -> list[ContainerInfo]:
    """Parse the JSON printed by ``podman container inspect``."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as err:
        raise EngineError(_INSPECT_ERROR) from err
    if not isinstance(data, list):
        raise EngineError(_INSPECT_ERROR)

    infos = []
    for item in data:
        try:
            name = item["Name"]
            labels = item["Config"]["Labels"] or {}
        except (KeyError, TypeError) as err:
            raise EngineError(_INSPECT_ERROR) from err
        if not isinstance(name, str) or not isinstance(labels, dict):
            raise EngineError(_INSPECT_ERROR)
        if not all(isinstance(k, str) and isinstance(v, str) for k, v in labels.items()):
            raise EngineError(_INSPECT_ERROR)
        infos.append(ContainerInfo(name=name, labels=dict(labels)))
    return infos


class Engine(ABC):
    """A container engine driven through its command line."""

    name: str = ""

    def __init__(self, executable: str | None = None):
        self.executable = executable or self.name

    def __str__(self) -> str:
        return self.name

    def command(self, *args: str) -> list[str]:
        """Return an argument list invoking the engine with ``args``."""
        return [self.executable, *(str(arg) for arg in args)]

    @abstractmethod
    def exec(self, container: str, command: Sequence[str]) -> str:
        """Run a command as root inside a container and return its stdout."""

    @abstractmethod
    def get_containers(self, labels: Iterable[tuple[str, str | None]]) -> list[str]:
        """List container names filtered by label and optionally value."""

    @abstractmethod
    def inspect_containers(self, containers: Sequence[str]) -> list[ContainerInfo]:
        """Return details of the given containers."""

    @abstractmethod
    def container_exists(self, container: str) -> bool:
        """Return whether the container exists."""


class Podman(Engine):
    """Podman container engine."""

    name = "podman"

    def __str__(self) -> str:
        return self.name

    def _output(self, *args: str):
        try:
            return run_output(self.command(*args), logging.DEBUG)
        except OSError as err:
            raise EngineError(ENGINE_ERR_MSG) from err

    def exec(self, container: str, command: Sequence[str]) -> str:
        if not container:
            raise ValueError("container name is empty")
        if not command:
            raise ValueError("command is empty")
        output = self._output("exec", "--user", "root", container, *command)
        return output.stdout.decode("utf-8", errors="replace")

    def get_containers(self, labels: Iterable[tuple[str, str | None]]) -> list[str]:
        args = ["container", "ls", "--format", "{{ .Names }}"]
        for key, value in labels:
            if value is None:
                args.append(f"--filter=label={key}")
            else:
                args.append(f"--filter=label={key}={value}")
        output = self._output(*args)
        return output.stdout.decode("utf-8", errors="replace").splitlines()

    def inspect_containers(self, containers: Sequence[str]) -> list[ContainerInfo]:
        if not containers:
            raise ValueError("no containers given")
        output = self._output("container", "inspect", *containers)
        return parse_inspect_output(output.stdout.decode("utf-8", errors="replace"))

    def container_exists(self, container: str) -> bool:
        if not container:
            raise ValueError("container name is empty")
        output = self._output("container", "exists", container)
        match output.returncode:
            case 0:
                return True
            case 1:
                return False
        raise EngineError(f"Error checking if container {container!r} exists")