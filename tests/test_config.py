"""Tests for peeklint.config — loading, defaults, set/unset."""

from __future__ import annotations

import json

import pytest

from peeklint.config import (
    CONFIG_SCHEMA,
    default_config,
    load_config,
    save_config,
    set_config_value,
    unset_config_value,
)
from peeklint.languages.rust import RuleOptions


class TestLoadConfig:
    def test_missing_file_gives_defaults(self, tmp_path):
        assert load_config(tmp_path / "config.json") == default_config()

    def test_partial_file_filled_with_defaults(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"binding_name": "head"}))
        config = load_config(path)
        assert config["binding_name"] == "head"
        assert config["method_names"] == ["is_empty"]

    def test_corrupt_file_gives_defaults(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{not json")
        assert load_config(path) == default_config()

    def test_non_object_gives_defaults(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("[1, 2]")
        assert load_config(path) == default_config()

    def test_save_round_trip(self, tmp_path):
        path = tmp_path / ".peeklint" / "config.json"
        config = default_config()
        config["ignore"] = ["src/generated"]
        save_config(config, path)
        assert load_config(path)["ignore"] == ["src/generated"]

    def test_defaults_are_copies(self):
        config = default_config()
        config["exclude"].append("benches")
        assert CONFIG_SCHEMA["exclude"].default == []


class TestSetConfigValue:
    def test_list_key_appends_once(self):
        config = default_config()
        set_config_value(config, "method_names", "is_vacant")
        set_config_value(config, "method_names", "is_vacant")
        assert config["method_names"] == ["is_empty", "is_vacant"]

    def test_string_key(self):
        config = default_config()
        set_config_value(config, "binding_name", "head")
        assert config["binding_name"] == "head"

    @pytest.mark.parametrize("raw", ["1x", "first()", "a b", ""])
    def test_string_key_must_be_identifier(self, raw):
        with pytest.raises(ValueError):
            set_config_value(default_config(), "peek_method", raw)

    def test_unknown_key(self):
        with pytest.raises(KeyError):
            set_config_value(default_config(), "nope", "1")

    def test_unset_restores_default(self):
        config = default_config()
        set_config_value(config, "binding_name", "head")
        unset_config_value(config, "binding_name")
        assert config["binding_name"] == "x"

    def test_unset_unknown_key(self):
        with pytest.raises(KeyError):
            unset_config_value(default_config(), "nope")


class TestRuleOptionsFromConfig:
    def test_defaults(self):
        assert RuleOptions.from_config(default_config()) == RuleOptions()

    def test_empty_values_fall_back(self):
        options = RuleOptions.from_config({"method_names": [], "binding_name": ""})
        assert options.method_names == frozenset({"is_empty"})
        assert options.binding_name == "x"


def test_peek_method_described_as_first_element_accessor():
    description = CONFIG_SCHEMA["peek_method"].description
    assert "first element" in description
    assert "front" in description
