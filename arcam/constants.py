"""Names, labels, paths and environment variables shared across the application."""

import platform

APP_NAME = "arcam"
APP_NAME_UPPERCASE = APP_NAME.upper()

VERSION = "0.1.12"
FULL_VERSION = VERSION
LONG_VERSION = f"{VERSION}\n\nPython: {platform.python_version()}"

ENGINE_ERR_MSG = "Failed to execute engine"


def env_var(name: str) -> str:
    """Return ``name`` prefixed with the application's environment prefix."""
    return f"{APP_NAME_UPPERCASE}_{name}"


# Container label used to detect if container is made by this application
CONTAINER_LABEL_APP = APP_NAME

# Container label holding the host directory where the container was started
CONTAINER_LABEL_HOST_DIR = "host_dir"

# Container label holding the path to the main project inside the container
CONTAINER_LABEL_CONTAINER_DIR = "container_dir"

# Container label holding the default shell
CONTAINER_LABEL_USER_SHELL = "default_shell"

ENV_LOG_LEVEL = "LOG_LEVEL"
ENV_WAYLAND_DISPLAY = env_var("WAYLAND_DISPLAY")
ENV_CONTAINER = env_var("CONTAINER")
ENV_CONTAINER_SUFFIX = env_var("CONTAINER_SUFFIX")
ENV_IMAGE = env_var("IMAGE")
ENV_APP_DIR = env_var("DIR")
ENV_ENTER_ON_START = env_var("ENTER_ON_START")
ENV_EXE_PATH = env_var("EXE_PATH")
ENV_VERSION = env_var("VERSION")

INIT_D_DIR = "/init.d"
ARCAM_DIR = "/arcam"
ARCAM_EXE = "/arcam/exe"
ARCAM_CONFIG = "/config.toml"

# Exists once container initialization has finished
FLAG_FILE_INIT = "/arcam/initialized"

# Exists once the container is ready for the start command to copy data in
FLAG_FILE_PRE_INIT = "/arcam/preinit"