"""Application context shared by all commands."""

from __future__ import annotations

import os
import pwd
import shutil
import sys
from dataclasses import dataclass
from pathlib import Path

from arcam.config import Config, config_from_file
from arcam.constants import APP_NAME, CONTAINER_LABEL_HOST_DIR, ENV_APP_DIR
from arcam.engine import Engine

_NO_CWD_CONTAINER = "Could not find a running container in current directory"


def get_app_dir() -> Path:
    """Return the directory holding the application's configuration."""
    custom = os.environ.get(ENV_APP_DIR)
    if custom is not None:
        return Path(custom)

    config_home = os.environ.get("XDG_CONFIG_HOME")
    if config_home is None:
        home = os.environ.get("HOME")
        if home is None:
            raise RuntimeError("Failed to get HOME dir from env var")
        config_home = str(Path(home) / ".config")

    return Path(config_home) / APP_NAME


@dataclass
class Context:
    """The user, directories and engine a command works with."""

    user: str
    user_home: Path
    user_id: int
    user_gid: int
    cwd: Path
    dry_run: bool
    app_dir: Path
    engine: Engine

    @classmethod
    def from_current_user(cls, dry_run: bool, engine: Engine) -> Context:
        """Build a context for the user running this process."""
        uid = os.getuid()
        try:
            entry = pwd.getpwuid(uid)
        except KeyError as err:
            raise RuntimeError(f"Unable to find user by id {uid}") from err

        try:
            cwd = Path.cwd()
        except OSError as err:
            raise RuntimeError("Failed to get current directory") from err

        return cls(
            user=entry.pw_name,
            user_home=Path(entry.pw_dir),
            user_id=uid,
            user_gid=entry.pw_gid,
            cwd=cwd,
            dry_run=dry_run,
            app_dir=get_app_dir(),
            engine=engine,
        )

    def local_state_dir(self) -> Path:
        """State directory, from XDG_STATE_HOME or ``~/.local/state``."""
        state_home = os.environ.get("XDG_STATE_HOME")
        if state_home is None:
            base = Path("/home") / self.user / ".local" / "state"
        else:
            base = Path(state_home)
        return base / APP_NAME

    def config_dir(self) -> Path:
        """Directory holding named container configurations."""
        return self.app_dir / "configs"

    def executable_path(self) -> Path:
        """Path of the program that is running."""
        program = sys.argv[0] if sys.argv else ""
        if program:
            candidate = Path(program)
            if candidate.exists():
                return candidate.resolve()
            found = shutil.which(program)
            if found is not None:
                return Path(found).resolve()
        raise RuntimeError("Failed to get executable path")

    def cwd_containers(self) -> list[str]:
        """Names of the application's containers started in the current directory."""
        return self.engine.get_containers([(CONTAINER_LABEL_HOST_DIR, str(self.cwd))])

    def find_config(self, name: str) -> Config:
        """Load the named configuration from the config directory."""
        return config_from_file(self.config_dir() / f"{name}.toml")

    def resolve_container(self, name: str) -> str:
        """Return ``name``, or the container of the current directory when empty.

        A given name must exist unless this is a dry run.
        """
        if not name:
            containers = self.cwd_containers()
            if not containers:
                raise LookupError(_NO_CWD_CONTAINER)
            return containers[0]

        if not self.dry_run and not self.engine.container_exists(name):
            raise LookupError(f"Container {name!r} does not exist")
        return name