"""Inspecting container configurations."""

from __future__ import annotations

import logging
from pprint import pformat

from arcam.cli import ConfigArgKind, ConfigArgs
from arcam.config import Config, config_from_str, config_to_toml, describe_fields
from arcam.constants import ARCAM_CONFIG, ENGINE_ERR_MSG, ENV_APP_DIR
from arcam.context import Context
from arcam.process import run_output


def get_image_config(ctx: Context, image: str) -> str:
    """Return the raw config file shipped inside ``image``."""
    try:
        exists = run_output(ctx.engine.command("image", "exists", image), logging.DEBUG)
    except OSError as err:
        raise RuntimeError(ENGINE_ERR_MSG) from err
    if exists.returncode != 0:
        raise LookupError(f"Image {image!r} does not exist")

    try:
        result = run_output(
            ctx.engine.command(
                "run", "--rm", "-it", "--entrypoint", "cat", image, ARCAM_CONFIG
            ),
            logging.DEBUG,
        )
    except OSError as err:
        raise RuntimeError(ENGINE_ERR_MSG) from err
    if result.returncode != 0:
        raise RuntimeError(f"Failed to extract config from image {image!r}")

    return result.stdout.decode("utf-8", errors="replace")


def example_config() -> str:
    """Return an example config file as TOML."""
    config = Config(
        image="docker.io/library/debian:latest",
        network=True,
        engine_args=["--privileged"],
        ports=[(8080, 8080), (6666, 6666)],
        env=[("LS_COLORS", "rs=0:di=01;34:ln=01;...")],
    )
    return config_to_toml(config, 1)


def _show_example(ctx: Context) -> None:
    print(
        f"APP DIRECTORY (ENV {ENV_APP_DIR}): {str(ctx.app_dir)!r}\n"
        f"CONFIG DIRECTORY: {str(ctx.config_dir())!r}\n"
        "\n"
        "-- EXAMPLE --\n"
        f"{example_config()}\n"
        "-- EXAMPLE --"
    )


def config_command(ctx: Context, args: ConfigArgs) -> Config | None:
    """Show options, an example, or the parsed config; return the config inspected."""
    if args.options:
        print(describe_fields())
        return None

    if args.example:
        _show_example(ctx)
        return None

    if args.config is None:
        raise ValueError("No config given to inspect")

    if args.config.kind is ConfigArgKind.IMAGE:
        image = str(args.config.value)
        print(f"Inspecting config from image {image!r}")
        config = config_from_str(get_image_config(ctx, image))
    else:
        print("Inspecting config")
        config = args.config.into_config(ctx)

    print(pformat(config))
    return config