"""Registry data models — inventory, library manifests, and reference records."""

from __future__ import annotations

from dataclasses import dataclass, field

import yaml

from partshub.errors import ManifestError
from partshub.registry.schema import (
    PARTS_API_VERSION,
    PARTS_KIND,
    REGISTRY_API_VERSION,
    REGISTRY_KIND,
)
from partshub.registry.schema_validator import validate_schema

REGISTRY_YAML = "registry.yaml"
PARTS_YAML = "parts.yaml"


# ---------------------------------------------------------------------------
# Inventory (registry.yaml)
# ---------------------------------------------------------------------------


@dataclass
class LibraryRef:
    """One library listed in a registry inventory."""

    version: str = ""
    path: str = ""


@dataclass
class RegistrySpec:
    """The registry inventory: library name -> ``LibraryRef``.

    ``version`` records the commit the inventory was fetched at. It is
    round-tripped through the cache file; only the cache decides whether
    it is fresh.
    """

    api_version: str = REGISTRY_API_VERSION
    kind: str = REGISTRY_KIND
    version: str = ""
    libraries: dict[str, LibraryRef] = field(default_factory=dict)

    def update_lib_versions(self, version: str) -> None:
        """Present every library at ``version``."""
        for lib in self.libraries.values():
            lib.version = version

    def marshal(self) -> bytes:
        data = {
            "apiVersion": self.api_version,
            "kind": self.kind,
            "version": self.version,
            "libraries": {
                name: {"version": lib.version, "path": lib.path}
                for name, lib in self.libraries.items()
            },
        }
        return yaml.safe_dump(data, sort_keys=False, default_flow_style=False).encode("utf-8")

    @classmethod
    def unmarshal(cls, raw: bytes | str) -> "RegistrySpec":
        """Decode a registry.yaml document.

        Raises:
            ManifestError: If the document is not YAML or fails the schema.
        """
        data = _load_yaml(raw, REGISTRY_YAML)
        issues = validate_schema(data, "registry")
        if issues:
            raise ManifestError(f"invalid {REGISTRY_YAML}: {issues[0]}", details=issues)

        libraries = {}
        for name, lib in (data.get("libraries") or {}).items():
            libraries[str(name)] = LibraryRef(
                version=_str(lib.get("version")),
                path=lib.get("path", "") or str(name),
            )
        return cls(
            api_version=_str(data.get("apiVersion")) or REGISTRY_API_VERSION,
            kind=_str(data.get("kind")) or REGISTRY_KIND,
            version=_str(data.get("version")),
            libraries=libraries,
        )


# ---------------------------------------------------------------------------
# Library manifest (parts.yaml)
# ---------------------------------------------------------------------------


@dataclass
class PartsDependency:
    """A dependency of a library on another library."""

    name: str
    constraint: str = ""


@dataclass
class Contributor:
    name: str = ""
    email: str = ""


@dataclass
class PartsSpec:
    """A library's own manifest."""

    name: str
    version: str = ""
    api_version: str = PARTS_API_VERSION
    kind: str = PARTS_KIND
    description: str = ""
    author: str = ""
    contributors: list[Contributor] = field(default_factory=list)
    repository: dict[str, str] = field(default_factory=dict)
    bugs: dict[str, str] = field(default_factory=dict)
    keywords: list[str] = field(default_factory=list)
    quick_start: dict = field(default_factory=dict)
    license: str = ""
    dependencies: list[PartsDependency] = field(default_factory=list)

    def marshal(self) -> bytes:
        data: dict = {
            "apiVersion": self.api_version,
            "kind": self.kind,
            "name": self.name,
            "version": self.version,
            "description": self.description,
            "author": self.author,
            "contributors": [{"name": c.name, "email": c.email} for c in self.contributors],
            "repository": self.repository,
            "bugs": self.bugs,
            "keywords": self.keywords,
            "quickStart": self.quick_start,
            "license": self.license,
            "dependencies": [
                {"name": d.name, "constraint": d.constraint} for d in self.dependencies
            ],
        }
        return yaml.safe_dump(data, sort_keys=False, default_flow_style=False).encode("utf-8")

    @classmethod
    def unmarshal(cls, raw: bytes | str) -> "PartsSpec":
        """Decode a parts.yaml document.

        Raises:
            ManifestError: If the document is not YAML or fails the schema.
        """
        data = _load_yaml(raw, PARTS_YAML)
        issues = validate_schema(data, "parts")
        if issues:
            raise ManifestError(f"invalid {PARTS_YAML}: {issues[0]}", details=issues)

        return cls(
            name=data["name"],
            version=_str(data.get("version")),
            api_version=_str(data.get("apiVersion")) or PARTS_API_VERSION,
            kind=_str(data.get("kind")) or PARTS_KIND,
            description=data.get("description", ""),
            author=data.get("author", ""),
            contributors=[
                Contributor(name=c.get("name", ""), email=c.get("email", ""))
                for c in data.get("contributors") or []
            ],
            repository=data.get("repository") or {},
            bugs=data.get("bugs") or {},
            keywords=data.get("keywords") or [],
            quick_start=data.get("quickStart") or {},
            license=data.get("license", ""),
            dependencies=[
                PartsDependency(name=d["name"], constraint=d.get("constraint", ""))
                for d in data.get("dependencies") or []
            ],
        )


# ---------------------------------------------------------------------------
# Application-side records
# ---------------------------------------------------------------------------


@dataclass
class RegistryConfig:
    """A registry as declared by the application."""

    name: str
    protocol: str = "github"
    uri: str = ""
    override: bool = False

    def is_override(self) -> bool:
        return self.override


@dataclass
class LibraryConfig:
    """Reference record for a resolved library.

    ``version`` is always a full commit SHA so the reference is
    reproducible no matter where the upstream branch moves.
    """

    name: str
    registry: str
    version: str

    @property
    def qualified_id(self) -> str:
        return f"{self.registry}/{self.name}@{self.version}"


def _load_yaml(raw: bytes | str, label: str) -> dict:
    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ManifestError(f"unable to decode {label}: {e}") from e
    if not isinstance(data, dict):
        raise ManifestError(f"unable to decode {label}: expected a mapping")
    return data


def _str(value) -> str:
    return "" if value is None else str(value)
