"""Tests for app.yaml loading and the registry cache location."""

from pathlib import Path

import pytest
import yaml

from partshub.app import AppConfig, load_app_config, save_app_config
from partshub.errors import ConfigError
from partshub.registry.models import RegistryConfig


def test_missing_app_yaml_is_empty(tmp_path):
    app = load_app_config(tmp_path)
    assert app.root == tmp_path
    assert app.registries == {}


def test_load_registries(tmp_path):
    (tmp_path / "app.yaml").write_text(
        "apiVersion: '0.1'\n"
        "registries:\n"
        "  incubator:\n"
        "    protocol: github\n"
        "    uri: github.com/ksonnet/parts/tree/master/incubator\n"
        "  local:\n"
        "    uri: github.com/acme/parts\n"
    )
    app = load_app_config(tmp_path)

    assert list(app.registries) == ["incubator", "local"]
    assert app.registry("incubator").uri == "github.com/ksonnet/parts/tree/master/incubator"
    assert app.registry("local").protocol == "github"


@pytest.mark.parametrize(
    "content",
    ["registries: [unterminated", "- a\n- b\n", "registries:\n  bad: just-a-string\n"],
)
def test_bad_app_yaml(tmp_path, content):
    (tmp_path / "app.yaml").write_text(content)
    with pytest.raises(ConfigError):
        load_app_config(tmp_path)


def test_unknown_registry(tmp_path):
    with pytest.raises(ConfigError) as exc:
        AppConfig(root=tmp_path).registry("nope")
    assert "nope" in str(exc.value)


def test_add_registry_rejects_duplicates(tmp_path):
    app = AppConfig(root=tmp_path)
    app.add_registry(RegistryConfig(name="incubator", uri="github.com/ksonnet/parts"))
    with pytest.raises(ConfigError):
        app.add_registry(RegistryConfig(name="incubator", uri="github.com/other/parts"))


def test_save_preserves_other_keys_and_skips_overrides(tmp_path):
    (tmp_path / "app.yaml").write_text("apiVersion: '0.1'\nenvironments: {default: {}}\n")
    app = load_app_config(tmp_path)
    app.add_registry(RegistryConfig(name="incubator", uri="github.com/ksonnet/parts"))
    app.add_registry(RegistryConfig(name="dev", uri="github.com/me/parts", override=True))

    save_app_config(app)

    data = yaml.safe_load((tmp_path / "app.yaml").read_text())
    assert data["apiVersion"] == "0.1"
    assert data["environments"] == {"default": {}}
    assert data["registries"] == {
        "incubator": {"protocol": "github", "uri": "github.com/ksonnet/parts"}
    }
    assert list(load_app_config(tmp_path).registries) == ["incubator"]


def test_cache_root_defaults_under_app(tmp_path, monkeypatch):
    monkeypatch.delenv("PARTSHUB_CACHE_DIR", raising=False)
    app = AppConfig(root=tmp_path)
    assert app.registry_cache_root() == tmp_path / ".ksonnet" / "registries"


def test_cache_root_from_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("PARTSHUB_CACHE_DIR", str(tmp_path / "shared"))
    assert AppConfig(root=tmp_path).registry_cache_root() == tmp_path / "shared"


def test_explicit_cache_dir_wins(tmp_path, monkeypatch):
    monkeypatch.setenv("PARTSHUB_CACHE_DIR", str(tmp_path / "shared"))
    app = AppConfig(root=tmp_path, cache_dir=tmp_path / "mine")
    assert app.registry_cache_root() == Path(tmp_path / "mine")
