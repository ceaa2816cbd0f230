import pytest

from arcam.cli import ExistsArgs
from arcam.commands.exists import container_exists
from arcam.constants import CONTAINER_LABEL_HOST_DIR
from arcam.context import Context
from arcam.engine import Engine, EngineError


class FakeEngine(Engine):
    name = "fake"

    def __init__(self, cwd=(), existing=(), fail=False):
        super().__init__("true")
        self.cwd = list(cwd)
        self.existing = set(existing)
        self.fail = fail
        self.labels = []

    def exec(self, container, command):
        return ""

    def get_containers(self, labels):
        self.labels = list(labels)
        if self.fail:
            raise EngineError("engine broke")
        return list(self.cwd)

    def inspect_containers(self, containers):
        return []

    def container_exists(self, container):
        if self.fail:
            raise EngineError("engine broke")
        return container in self.existing


def make_ctx(tmp_path, engine):
    return Context(user="user", user_home=tmp_path, user_id=1000, user_gid=1000, cwd=tmp_path,
                   dry_run=False, app_dir=tmp_path, engine=engine)


def test_cwd_container_found(tmp_path):
    engine = FakeEngine(cwd=["box"])
    assert container_exists(make_ctx(tmp_path, engine), ExistsArgs()) is True
    assert engine.labels == [(CONTAINER_LABEL_HOST_DIR, str(tmp_path))]


def test_cwd_container_missing(tmp_path):
    assert container_exists(make_ctx(tmp_path, FakeEngine()), ExistsArgs()) is False


def test_cwd_engine_error_is_false(tmp_path):
    assert container_exists(make_ctx(tmp_path, FakeEngine(fail=True)), ExistsArgs()) is False


def test_named_exists(tmp_path):
    engine = FakeEngine(existing=["box"])
    assert container_exists(make_ctx(tmp_path, engine), ExistsArgs(name="box")) is True
    assert container_exists(make_ctx(tmp_path, engine), ExistsArgs(name="other")) is False


def test_named_engine_error_propagates(tmp_path):
    with pytest.raises(EngineError):
        container_exists(make_ctx(tmp_path, FakeEngine(fail=True)), ExistsArgs(name="box"))