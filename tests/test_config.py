import tomllib

import pytest

from arcam.config import (
    Config,
    ConfigError,
    config_from_file,
    config_from_str,
    config_to_toml,
    describe_fields,
)


def test_from_str():
    cfg_text = """
version = 1
image = "fedora"
engine_args = [ "default" ]
"""
    assert config_from_str(cfg_text) == Config(image="fedora", engine_args=["default"])


def test_pairs_become_tuples():
    cfg = config_from_str(
        'version = 1\nimage = "x"\nports = [[8080, 80]]\nenv = [["A", "b"]]\n'
    )
    assert cfg.ports == [(8080, 80)]
    assert cfg.env == [("A", "b")]


def test_round_trip():
    cfg = Config(
        image="docker.io/library/debian:latest",
        network=True,
        shell="/bin/zsh",
        engine_args=["--privileged"],
        ports=[(8080, 8080), (6666, 6666)],
        env=[("LS_COLORS", "rs=0:di=01;34")],
        persist=[("vol", "/data")],
    )
    assert config_from_str(config_to_toml(cfg, 1)) == cfg


def test_to_toml_includes_version_and_skips_none():
    data = tomllib.loads(config_to_toml(Config(image="img"), 3))
    assert data["version"] == 3
    assert data["image"] == "img"
    assert "skel" not in data


def test_unknown_field_rejected():
    with pytest.raises(ConfigError, match="unknown field"):
        config_from_str('version = 1\nimage = "x"\nbogus = true\n')


def test_missing_version_rejected():
    with pytest.raises(ConfigError, match="version"):
        config_from_str('image = "x"\n')


def test_missing_image_rejected():
    with pytest.raises(ConfigError, match="image"):
        config_from_str("version = 1\n")


@pytest.mark.parametrize(
    "extra",
    ['network = "yes"', "ports = [[1, 2, 3]]", "ports = [[-1, 2]]", "engine_args = [1]"],
)
def test_wrong_types_rejected(extra):
    with pytest.raises(ConfigError):
        config_from_str(f'version = 1\nimage = "x"\n{extra}\n')


def test_invalid_toml_rejected():
    with pytest.raises(ConfigError):
        config_from_str("version = = 1")


def test_from_file(tmp_path):
    path = tmp_path / "cfg.toml"
    path.write_text('version = 1\nimage = "fedora"\n')
    assert config_from_file(path) == Config(image="fedora")


def test_from_file_missing(tmp_path):
    with pytest.raises(ConfigError, match="while reading"):
        config_from_file(tmp_path / "missing.toml")


def test_from_file_invalid(tmp_path):
    path = tmp_path / "cfg.toml"
    path.write_text("version = 1\n")
    with pytest.raises(ConfigError, match="while parsing"):
        config_from_file(path)


def test_describe_fields_lists_every_field():
    text = describe_fields()
    for name in Config.__dataclass_fields__:
        assert f"\n{name}: " in "\n" + text
    assert "Vec<" not in text
    assert "/// Image used for the container" in text