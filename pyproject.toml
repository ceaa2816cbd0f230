[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "arcam"
version = "0.1.12"
description = "Sandboxed development containers at your fingertips"
requires-python = ">=3.11"
keywords = ["container", "podman", "sandbox", "development"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Systems Administration",
    "Topic :: Software Development",
]
dependencies = [
    "tomli-w",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
arcam = "arcam.main:main"

[tool.hatch.build.targets.wheel]
packages = ["arcam"]

[tool.pytest.ini_options]
addopts = "-ra"
