import pytest

from arcam.cli import ExecArgs
from arcam.commands.exec_cmd import container_exec
from arcam.context import Context
from arcam.engine import ContainerInfo, Engine
from arcam.process import CommandError

OWNED = {"arcam": "0.1.12", "container_dir": "/home/user/ws/proj"}


class FakeEngine(Engine):
    name = "fake"

    def __init__(self, executable="true", cwd=(), infos=(), existing=()):
        super().__init__(executable)
        self.cwd = list(cwd)
        self.infos = {info.name: info for info in infos}
        self.existing = set(existing)

    def exec(self, container, command):
        return ""

    def get_containers(self, labels):
        return list(self.cwd)

    def inspect_containers(self, containers):
        return [self.infos[c] for c in containers if c in self.infos]

    def container_exists(self, container):
        return container in self.existing


def make_ctx(tmp_path, engine, dry_run=False):
    return Context(user="user", user_home=tmp_path, user_id=1000, user_gid=1000, cwd=tmp_path,
                   dry_run=dry_run, app_dir=tmp_path, engine=engine)


def owned_engine(**kwargs):
    return FakeEngine(existing=["box"], infos=[ContainerInfo("box", OWNED)], **kwargs)


def test_exec_verbatim(tmp_path, monkeypatch):
    monkeypatch.setenv("TERM", "xterm")
    argv = container_exec(make_ctx(tmp_path, owned_engine()),
                          ExecArgs(name="box", command=["touch", "file.txt"]))
    assert argv == [
        "true", "exec", "-it", "--workdir=/home/user/ws/proj", "--user=user",
        "--env=TERM=xterm", "box", "touch", "file.txt",
    ]


def test_exec_in_shell(tmp_path):
    argv = container_exec(make_ctx(tmp_path, owned_engine()),
                          ExecArgs(name="box", shell="/bin/sh", command=["echo", "hi"]))
    assert argv[-5:] == ["--env=SHELL=/bin/sh", "box", "/bin/sh", "-c", "echo hi"]


def test_exec_login_shell(tmp_path):
    argv = container_exec(make_ctx(tmp_path, owned_engine()),
                          ExecArgs(name="box", shell="/bin/bash", login=True, command=["ls"]))
    assert argv[-4:] == ["/bin/bash", "-l", "-c", "ls"]


def test_exec_cwd_container(tmp_path):
    engine = FakeEngine(cwd=["box"], infos=[ContainerInfo("box", OWNED)])
    argv = container_exec(make_ctx(tmp_path, engine), ExecArgs(command=["pwd"]))
    assert argv[-2:] == ["box", "pwd"]


def test_exec_no_cwd_container(tmp_path):
    with pytest.raises(LookupError, match="current directory"):
        container_exec(make_ctx(tmp_path, FakeEngine()), ExecArgs(command=["ls"]))


def test_exec_missing(tmp_path):
    with pytest.raises(LookupError, match="does not exist"):
        container_exec(make_ctx(tmp_path, FakeEngine()), ExecArgs(name="ghost", command=["ls"]))


def test_exec_not_owned(tmp_path):
    engine = FakeEngine(existing=["box"], infos=[ContainerInfo("box", {"x": "y"})])
    with pytest.raises(LookupError, match="not owned by arcam"):
        container_exec(make_ctx(tmp_path, engine), ExecArgs(name="box", command=["ls"]))


def test_exec_dry_run_does_not_run(tmp_path):
    engine = FakeEngine(executable="false", infos=[ContainerInfo("box", OWNED)])
    argv = container_exec(make_ctx(tmp_path, engine, dry_run=True),
                          ExecArgs(name="box", command=["ls"]))
    assert argv[0] == "false"
    assert argv[-1] == "ls"


def test_exec_failure(tmp_path):
    with pytest.raises(CommandError):
        container_exec(make_ctx(tmp_path, owned_engine(executable="false")),
                       ExecArgs(name="box", command=["ls"]))