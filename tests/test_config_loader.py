from __future__ import annotations

import json

import pytest

from provcheck.core.config.loader import (
    ENV_DEFAULT_INSTALL_ROOT,
    ENV_DELETE_INSTALLATIONS,
    ENV_LAYERS_INSTALL_ROOT,
    load_check_config,
)
from provcheck.core.errors import ConfigError


def _write(tmp_path, data) -> str:
    p = tmp_path / "layers-check.json"
    p.write_text(json.dumps(data), encoding="utf-8")
    return str(p)


def test_defaults_from_file(tmp_path):
    cfg = load_check_config(_write(tmp_path, {"layers_install_root": "target/layers"}), env={})
    assert cfg.layers_install_root == "target/layers"
    assert cfg.default_configs_root == ""
    assert cfg.delete_installations is False
    assert cfg.root_module == "org.jboss.as.standalone"
    assert cfg.follow_optional is True
    assert cfg.boot.started_marker == "WFLYSRV0025"
    assert "org.jboss.as.security" in cfg.banned_modules


def test_env_overrides_file(tmp_path):
    path = _write(tmp_path, {"layers_install_root": "from-file", "delete_installations": False})
    env = {
        ENV_LAYERS_INSTALL_ROOT: "from-env",
        ENV_DEFAULT_INSTALL_ROOT: "defaults",
        ENV_DELETE_INSTALLATIONS: "true",
    }
    cfg = load_check_config(path, env=env)
    assert cfg.layers_install_root == "from-env"
    assert cfg.default_configs_root == "defaults"
    assert cfg.delete_installations is True


def test_explicit_overrides_win(tmp_path):
    env = {ENV_LAYERS_INSTALL_ROOT: "from-env"}
    cfg = load_check_config(env=env, overrides={"layers_install_root": "from-cli", "variant": "wildfly"})
    assert cfg.layers_install_root == "from-cli"
    assert cfg.variant == "wildfly"


def test_missing_root_is_config_error():
    with pytest.raises(ConfigError):
        load_check_config(env={})


def test_unknown_field_is_config_error(tmp_path):
    with pytest.raises(ConfigError):
        load_check_config(_write(tmp_path, {"layers_install_root": "x", "nope": 1}), env={})


def test_unknown_variant_is_config_error():
    with pytest.raises(ConfigError):
        load_check_config(env={}, overrides={"layers_install_root": "x", "variant": "tomcat"})


def test_unreadable_file_is_config_error(tmp_path):
    p = tmp_path / "broken.json"
    p.write_text("{not json", encoding="utf-8")
    with pytest.raises(ConfigError) as ei:
        load_check_config(str(p), env={})
    assert ei.value.context["error"].startswith("corrupt_json")

    with pytest.raises(ConfigError):
        load_check_config(str(tmp_path / "missing.json"), env={})


def test_expectations_combine_variant_and_config_lists():
    cfg = load_check_config(
        env={},
        overrides={
            "layers_install_root": "x",
            "variant": "wildfly-ee",
            "expected_unreferenced": ["org.local.extra"],
        },
    )
    exp = cfg.expectations()
    assert "org.local.extra" in exp.expected_unreferenced
    assert "wildflyee.api" in exp.expected_unreferenced
    assert exp.sources == ("common", "wildfly-ee", "config")


def test_expectations_without_variant_are_config_only():
    cfg = load_check_config(env={}, overrides={"layers_install_root": "x", "expected_unused_in_all_layers": ["a"]})
    exp = cfg.expectations()
    assert exp.expected_unreferenced == frozenset()
    assert exp.expected_unused_in_all_layers == frozenset({"a"})
