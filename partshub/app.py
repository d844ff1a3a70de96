"""Application configuration — the app.yaml registries section and the cache root.

The registry layer never decides where files go or with what permissions;
it asks the ``AppConfig`` it was given.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from partshub.errors import ConfigError
from partshub.registry.models import RegistryConfig

APP_YAML = "app.yaml"
DEFAULT_FOLDER_PERMISSIONS = 0o755
DEFAULT_FILE_PERMISSIONS = 0o644

# Relative to the app root unless PARTSHUB_CACHE_DIR is set.
REGISTRY_CACHE_DIR = Path(".ksonnet") / "registries"
CACHE_DIR_ENV = "PARTSHUB_CACHE_DIR"


@dataclass
class AppConfig:
    """An application root plus the registries it declares."""

    root: Path
    registries: dict[str, RegistryConfig] = field(default_factory=dict)
    folder_permissions: int = DEFAULT_FOLDER_PERMISSIONS
    file_permissions: int = DEFAULT_FILE_PERMISSIONS
    cache_dir: Path | None = None

    def registry_cache_root(self) -> Path:
        """Directory holding one cached registry.yaml per registry name."""
        if self.cache_dir is not None:
            return Path(self.cache_dir)
        env_dir = os.environ.get(CACHE_DIR_ENV, "")
        if env_dir:
            return Path(env_dir)
        return Path(self.root) / REGISTRY_CACHE_DIR

    def registry(self, name: str) -> RegistryConfig:
        try:
            return self.registries[name]
        except KeyError:
            raise ConfigError(
                f"registry {name!r} not found in {APP_YAML}; "
                f"available: {sorted(self.registries)}"
            ) from None

    def add_registry(self, config: RegistryConfig) -> None:
        if config.name in self.registries:
            raise ConfigError(f"registry {config.name!r} already exists")
        self.registries[config.name] = config


def load_app_config(root: str | Path) -> AppConfig:
    """Load the registries declared in ``<root>/app.yaml``.

    A missing app.yaml yields an app with no registries.

    Raises:
        ConfigError: If app.yaml is not valid YAML or is shaped wrong.
    """
    root = Path(root)
    path = root / APP_YAML
    if not path.exists():
        return AppConfig(root=root)

    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"unable to parse {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"unable to parse {path}: expected a mapping")

    registries = {}
    for name, reg in (data.get("registries") or {}).items():
        if not isinstance(reg, dict):
            raise ConfigError(f"registry {name!r} in {path} must be a mapping")
        registries[name] = RegistryConfig(
            name=name,
            protocol=reg.get("protocol", "github"),
            uri=reg.get("uri", ""),
        )

    return AppConfig(root=root, registries=registries)


def save_app_config(app: AppConfig) -> None:
    """Write the registries section back to ``<root>/app.yaml``.

    Keys other than ``registries`` are preserved.
    """
    path = Path(app.root) / APP_YAML
    data: dict = {}
    if path.exists():
        with open(path) as f:
            data = yaml.safe_load(f) or {}

    data["registries"] = {
        name: {"protocol": reg.protocol, "uri": reg.uri}
        for name, reg in app.registries.items()
        if not reg.is_override()
    }

    Path(app.root).mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        yaml.safe_dump(data, f, sort_keys=False, default_flow_style=False)
