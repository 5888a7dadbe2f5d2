"""Tests for settings and the TOML config file."""

import logging
from dataclasses import FrozenInstanceError

import pytest

from codegraph_ts import config
from codegraph_ts.config import Settings, load_config_table, load_settings


def _write_config(text: str) -> None:
    config.BASE_DIR.mkdir(parents=True, exist_ok=True)
    config.CONFIG_FILE.write_text(text, encoding="utf-8")


def test_defaults():
    settings = load_settings()

    assert settings == Settings()
    assert settings.max_calls == 60
    assert settings.param_label_max == 60
    assert settings.arg_label_max == 80
    assert settings.resolve_imports is True
    assert settings.external_markers == ("/node_modules/", "/typescript/lib/")


def test_missing_file_gives_empty_table():
    assert not config.CONFIG_FILE.exists()
    assert load_config_table() == {}


def test_file_overrides_defaults():
    _write_config(
        "[analysis]\n"
        "max_calls = 10\n"
        "resolve_imports = false\n"
        'external_markers = ["/vendor/"]\n'
    )

    settings = load_settings()
    assert settings.max_calls == 10
    assert settings.resolve_imports is False
    assert settings.external_markers == ("/vendor/",)
    assert settings.arg_label_max == 80


def test_other_tables_are_ignored():
    _write_config("[ui]\ntheme = 'dark'\n")

    assert load_settings() == Settings()


def test_unknown_keys_warn(caplog):
    _write_config("[analysis]\nmax_call = 5\n")

    with caplog.at_level(logging.WARNING, logger="codegraph_ts.config"):
        settings = load_settings()

    assert settings == Settings()
    assert "Ignoring unknown config key 'max_call'" in caplog.text


def test_bad_toml_falls_back(caplog):
    _write_config("[analysis\nmax_calls = \n")

    with caplog.at_level(logging.WARNING, logger="codegraph_ts.config"):
        assert load_settings() == Settings()

    assert "Could not read" in caplog.text


def test_explicit_overrides_win():
    _write_config("[analysis]\nmax_calls = 10\n")

    assert load_settings(max_calls=3).max_calls == 3
    assert load_settings(max_calls=None).max_calls == 10


def test_to_dict():
    data = Settings(external_markers=("/a/",)).to_dict()

    assert data == {
        "max_calls": 60,
        "param_label_max": 60,
        "arg_label_max": 80,
        "resolve_imports": True,
        "external_markers": ["/a/"],
    }


def test_settings_are_frozen():
    with pytest.raises(FrozenInstanceError):
        Settings().max_calls = 1  # type: ignore[misc]
