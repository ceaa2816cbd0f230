import sys

import pytest

from arcam.cli import ConfigArg, ConfigArgs
from arcam.commands.config_cmd import config_command, example_config, get_image_config
from arcam.config import ConfigError, config_from_str, describe_fields
from arcam.context import Context

SCRIPT = """
import sys
a = sys.argv[1:]
if a[0] == "image":
    sys.exit(0 if a[2] == "present" or a[2] == "broken" else 1)
if a[-2] == "broken":
    sys.exit(2)
print('version = 1\\nimage = "fedora"')
"""


class FakeEngine:
    def command(self, *args):
        return [sys.executable, "-c", SCRIPT, *args]

    def __str__(self):
        return "fake"


def make_ctx(tmp_path):
    return Context(
        user="tester",
        user_home=tmp_path,
        user_id=1000,
        user_gid=1000,
        cwd=tmp_path,
        dry_run=False,
        app_dir=tmp_path / "app",
        engine=FakeEngine(),
    )


def test_example_round_trip():
    config = config_from_str(example_config())
    assert config.image == "docker.io/library/debian:latest"
    assert config.network is True
    assert config.engine_args == ["--privileged"]
    assert config.ports == [(8080, 8080), (6666, 6666)]
    assert config.env == [("LS_COLORS", "rs=0:di=01;34:ln=01;...")]


def test_options_prints_field_docs(tmp_path, capsys):
    result = config_command(make_ctx(tmp_path), ConfigArgs(options=True))
    assert result is None
    assert capsys.readouterr().out == describe_fields() + "\n"


def test_example_output(tmp_path, capsys):
    ctx = make_ctx(tmp_path)
    config_command(ctx, ConfigArgs(example=True))
    out = capsys.readouterr().out
    assert out.count("-- EXAMPLE --") == 2
    assert str(ctx.config_dir()) in out
    assert "ARCAM_DIR" in out


def test_inspect_file(tmp_path, capsys):
    path = tmp_path / "cfg.toml"
    path.write_text('version = 1\nimage = "alpine"\n')
    config = config_command(make_ctx(tmp_path), ConfigArgs(config=ConfigArg.parse(str(path))))
    assert config.image == "alpine"
    assert "Inspecting config" in capsys.readouterr().out


def test_inspect_named_config(tmp_path):
    ctx = make_ctx(tmp_path)
    ctx.config_dir().mkdir(parents=True)
    (ctx.config_dir() / "dev.toml").write_text('version = 1\nimage = "debian"\n')
    config = config_command(ctx, ConfigArgs(config=ConfigArg.parse("@dev")))
    assert config.image == "debian"


def test_inspect_invalid_file(tmp_path):
    path = tmp_path / "bad.toml"
    path.write_text('image = "x"\n')
    with pytest.raises(ConfigError):
        config_command(make_ctx(tmp_path), ConfigArgs(config=ConfigArg.parse(str(path))))


def test_inspect_image(tmp_path, capsys):
    config = config_command(make_ctx(tmp_path), ConfigArgs(config=ConfigArg.parse("present")))
    assert config.image == "fedora"
    assert "Inspecting config from image 'present'" in capsys.readouterr().out


def test_get_image_config_missing_image(tmp_path):
    with pytest.raises(LookupError, match="does not exist"):
        get_image_config(make_ctx(tmp_path), "absent")


def test_get_image_config_extract_failure(tmp_path):
    with pytest.raises(RuntimeError, match="Failed to extract config"):
        get_image_config(make_ctx(tmp_path), "broken")


def test_get_image_config_returns_text(tmp_path):
    text = get_image_config(make_ctx(tmp_path), "present")
    assert config_from_str(text).image == "fedora"