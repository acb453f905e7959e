from __future__ import annotations

import json

import pytest

from solo.db import load_config
from solo.db.config import DEFAULTS


def test_defaults(tmp_path):
    config = load_config(cwd=tmp_path, environ={})

    assert str(config.database_path).endswith("solo-os.db")
    assert config.plugin_package == "plugins"
    assert config.prompt == "SOLO-OS> "
    assert config.allow_user_commands is True
    assert config.script_step_budget == DEFAULTS["SCRIPT_STEP_BUDGET"]
    assert config.script_max_output == DEFAULTS["SCRIPT_MAX_OUTPUT"]
    assert config.log_level is None
    assert config.log_file_path is None
    assert config.seed_demo_data is False
    assert config.extra == {}
    assert not config.in_memory


def test_toml_file_nested_and_flat_keys(tmp_path):
    (tmp_path / "config.toml").write_text(
        'prompt = "board> "\n'
        "\n"
        "[script]\n"
        "step_budget = 500\n"
        "max_output = 128\n",
        encoding="utf-8",
    )

    config = load_config(cwd=tmp_path, environ={})

    assert config.prompt == "board> "
    assert config.script_step_budget == 500
    assert config.script_max_output == 128


def test_env_file_accepts_prefixed_keys(tmp_path):
    (tmp_path / ".env").write_text(
        "# comment\nSOLO_ALLOW_USER_COMMANDS=no\nLOG_LEVEL='debug'\n", encoding="utf-8")

    config = load_config(cwd=tmp_path, environ={})

    assert config.allow_user_commands is False
    assert config.log_level == "DEBUG"


def test_ini_and_json_files(tmp_path):
    (tmp_path / "config.ini").write_text("[board]\nshow_banner = off\n", encoding="utf-8")
    (tmp_path / "config.json").write_text(json.dumps({"admin": {"username": "sysop"}}),
                                          encoding="utf-8")

    config = load_config(cwd=tmp_path, environ={})

    assert config.show_banner is False
    assert config.admin_username == "sysop"


def test_environment_overrides_files(tmp_path):
    (tmp_path / "config.toml").write_text('PROMPT = "file> "\n', encoding="utf-8")

    config = load_config(
        cwd=tmp_path,
        environ={"SOLO_PROMPT": "env> ", "PROMPT": "ignored> ", "HOME": "/tmp"},
    )

    assert config.prompt == "env> "


def test_explicit_overrides_win_and_none_is_skipped(tmp_path):
    config = load_config(
        cwd=tmp_path,
        environ={"SOLO_DATABASE_PATH": str(tmp_path / "env.db")},
        overrides={"DATABASE_PATH": ":memory:", "SEED_DEMO_DATA": None},
    )

    assert config.in_memory
    assert config.seed_demo_data is False


def test_paths_are_expanded(tmp_path):
    config = load_config(
        cwd=tmp_path,
        environ={},
        overrides={"DATABASE_PATH": str(tmp_path / "sub" / ".." / "board.db")},
    )

    assert config.database_path == (tmp_path / "board.db").resolve()


def test_unknown_keys_are_kept(tmp_path):
    config = load_config(cwd=tmp_path, environ={"SOLO_THEME": "amber"})

    assert config.extra == {"THEME": "amber"}


@pytest.mark.parametrize(
    "key, value, fragment",
    [
        ("SHOW_BANNER", "perhaps", "SHOW_BANNER"),
        ("SCRIPT_STEP_BUDGET", "lots", "SCRIPT_STEP_BUDGET"),
        ("SCRIPT_STEP_BUDGET", "10", "SCRIPT_STEP_BUDGET"),
        ("SCRIPT_MAX_OUTPUT", "8", "SCRIPT_MAX_OUTPUT"),
        ("LOG_LEVEL", "chatty", "LOG_LEVEL"),
        ("PLUGIN_PACKAGE", "not a package", "PLUGIN_PACKAGE"),
        ("DATABASE_PATH", "", "DATABASE_PATH"),
        ("ADMIN_PASSWORD", "", "ADMIN_PASSWORD"),
    ],
)
def test_invalid_values_name_the_key(tmp_path, key, value, fragment):
    with pytest.raises(ValueError) as excinfo:
        load_config(cwd=tmp_path, environ={f"SOLO_{key}": value})

    assert fragment in str(excinfo.value)
