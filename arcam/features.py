"""Locations of features that can be installed into a container."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class LocalFeaturePath:
    """Feature stored on the local filesystem."""

    path: str

    def __str__(self) -> str:
        return self.path


@dataclass(frozen=True)
class GitFeaturePath:
    """Feature fetched from a git repository, optionally at a branch or tag."""

    url: str
    tag: str | None = None

    def __str__(self) -> str:
        return f"git+{self.url}#{self.tag or ''}"


def parse_feature_path(text: str) -> LocalFeaturePath | GitFeaturePath:
    """Parse a local path or a ``git+URL[#TAG]`` reference."""
    if text.startswith((".", "/")):
        return LocalFeaturePath(text)
    if text.startswith("git+"):
        url, sep, tag = text.removeprefix("git+").partition("#")
        return GitFeaturePath(url, tag if sep else None)
    raise ValueError("Invalid URI for feature")