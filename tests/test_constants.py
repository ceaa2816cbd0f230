from arcam.constants import APP_NAME, ENV_APP_DIR, ENV_CONTAINER, env_var


def test_env_var_pinned_value():
    assert env_var("DIR") == "ARCAM_DIR"


def test_env_var_uses_uppercase_app_name():
    prefix, rest = env_var("SOMETHING").split("_", 1)
    assert prefix == APP_NAME.upper()
    assert rest == "SOMETHING"


def test_env_constants_are_prefixed():
    assert ENV_CONTAINER == env_var("CONTAINER")
    assert ENV_APP_DIR == env_var("DIR")