"""Sandboxed development containers managed through podman."""

__version__ = "0.1.12"