import subprocess
from pathlib import Path
from unittest import mock

import pytest

from arcam.cli import LogsArgs
from arcam.commands.logs import print_logs
from arcam.context import Context
from arcam.engine import ContainerInfo, Engine


class FakeEngine(Engine):
    name = "fake"

    def __init__(self, containers=()):
        super().__init__()
        self.containers = list(containers)

    def exec(self, container, command):
        return ""

    def get_containers(self, labels):
        return list(self.containers)

    def inspect_containers(self, containers):
        return [ContainerInfo(name=c) for c in containers]

    def container_exists(self, container):
        return True


def make_ctx(containers=()):
    return Context(
        user="alice",
        user_home=Path("/home/alice"),
        user_id=1000,
        user_gid=1000,
        cwd=Path("/work/proj"),
        dry_run=False,
        app_dir=Path("/tmp/app"),
        engine=FakeEngine(containers),
    )


def ok(*_args, **_kwargs):
    return subprocess.CompletedProcess([], 0)


def test_no_cwd_container():
    with pytest.raises(LookupError, match="Could not find a running container"):
        print_logs(make_ctx(), LogsArgs())


def test_resolves_cwd_container(capsys):
    with mock.patch("arcam.process.subprocess.run", side_effect=ok) as run:
        argv = print_logs(make_ctx(["box"]), LogsArgs())
    assert argv == ["journalctl", "-t", "box"]
    assert run.call_args.args[0] == ["journalctl", "-t", "box"]
    assert "The logs may be empty" in capsys.readouterr().out


def test_follow_and_explicit_name():
    with mock.patch("arcam.process.subprocess.run", side_effect=ok):
        argv = print_logs(make_ctx(), LogsArgs(name="other", follow=True))
    assert argv == ["journalctl", "-t", "other", "--follow"]