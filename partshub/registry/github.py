"""GitHub-backed registry with a staleness-checked inventory cache.

The inventory (registry.yaml) is cached on disk under the registry's name
and keyed on the commit SHA it was fetched at. Each fetch costs one cheap
"what does the ref point to" call; the full inventory is downloaded only
when that SHA differs from the cached one. When the SHA cannot be resolved
the cached inventory is served with every library stamped with the
configured ref instead of a SHA, so callers can tell it may be stale.
"""

from __future__ import annotations

import os
import posixpath
import tempfile
from pathlib import Path
from typing import BinaryIO, NamedTuple

from partshub.app import AppConfig
from partshub.errors import (
    InvalidURIError,
    ManifestError,
    StructuralError,
    TransportError,
)
from partshub.github.abc import GitHub
from partshub.github.real import RealGitHub
from partshub.github.types import ContentSpec
from partshub.registry.models import (
    PARTS_YAML,
    REGISTRY_YAML,
    LibraryConfig,
    PartsSpec,
    RegistryConfig,
    RegistrySpec,
)
from partshub.registry.options import RegistryOptions
from partshub.registry.resolver import (
    ResolveDirectory,
    ResolveFile,
    chroot_on_directory,
    chroot_on_file,
    resolve_directory,
)
from partshub.registry.uri import (
    RegistryDescriptor,
    cache_root,
    parse_github_uri,
    rebase_to_root,
)


class LibraryResolution(NamedTuple):
    """A resolved library: its manifest and the reference to record for it."""

    parts: PartsSpec
    library: LibraryConfig


class GitHubRegistry:
    """A parts registry hosted in a GitHub (or GitHub Enterprise) repository."""

    PROTOCOL = "github"

    def __init__(
        self,
        app: AppConfig,
        config: RegistryConfig | None,
        options: RegistryOptions | None = None,
    ) -> None:
        if config is None:
            raise ValueError("registry config is required")
        options = options or RegistryOptions()

        self.app = app
        self._config = config
        self._owns_client = options.client is None
        self._client: GitHub = options.client or RealGitHub()
        self._resolve_timeout = options.resolve_timeout
        self._log = options.get_logger()
        self.last_fetch_degraded = False

        self._descriptor = parse_github_uri(config.uri)
        self._client.set_base_url(self._descriptor.base_url)

    def close(self) -> None:
        """Close the transport if this registry built it; injected clients stay open."""
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "GitHubRegistry":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # -- identity ------------------------------------------------------------

    @property
    def name(self) -> str:
        return self._config.name

    @property
    def protocol(self) -> str:
        return self._config.protocol

    @property
    def uri(self) -> str:
        return self._config.uri

    @property
    def descriptor(self) -> RegistryDescriptor:
        return self._descriptor

    def is_override(self) -> bool:
        return self._config.is_override()

    def make_registry_config(self) -> RegistryConfig:
        return self._config

    def registry_spec_dir(self) -> str:
        return self.name

    def registry_spec_file_path(self) -> str:
        """Path of the cached registry.yaml, relative to the cache root."""
        return posixpath.join(self.name, REGISTRY_YAML)

    def cache_file(self) -> Path:
        return self.app.registry_cache_root() / self.registry_spec_dir() / REGISTRY_YAML

    def rebase_to_root(self, path: str) -> str:
        return rebase_to_root(self._descriptor, path)

    def cache_root(self, name: str, path: str) -> str:
        return cache_root(self._descriptor, name, path)

    # -- revision resolution -------------------------------------------------

    def resolve_latest_sha(self) -> str:
        """Fetch the SHA the configured ref currently points to.

        Raises:
            TransportError: If the SHA cannot be resolved within the timeout.
        """
        self._log.debug("GitHub.resolve_latest_sha: resolving SHA for URI %s", self.uri)
        try:
            return self._client.commit_sha1(
                self._descriptor.repository,
                self._descriptor.ref_spec,
                timeout=self._resolve_timeout,
            )
        except TransportError as e:
            raise TransportError(
                f"unable to find SHA1 for URI {self.uri}: {e}", status_code=e.status_code
            ) from e

    # -- inventory -----------------------------------------------------------

    def fetch_registry_spec(self) -> RegistrySpec:
        """Return the registry inventory, from cache when it is current.

        Raises:
            TransportError: If the ref cannot be resolved and there is no
                usable cache, or if fetching a fresh inventory fails.
        """
        log = self._log
        cache_file = self.cache_file()

        log.debug("GitHub.fetch_registry_spec: checking for registry cache %s", cache_file)
        registry_spec = self._load_cached_spec(cache_file)
        cached_version = registry_spec.version if registry_spec is not None else ""

        ref_spec = self._descriptor.ref_spec
        sha = ""
        resolve_error: TransportError | None = None
        try:
            sha = self.resolve_latest_sha()
        except TransportError as e:
            resolve_error = e

        if not sha:
            message = f"unable to resolve commit for refspec {ref_spec!r}"
            if resolve_error is not None:
                message = f"{message}: {resolve_error}"
            if registry_spec is None or not cached_version:
                # Neither the cache nor the remote can answer.
                raise TransportError(message) from resolve_error

            log.warning("GitHub.fetch_registry_spec: %s", message)
            log.warning("GitHub.fetch_registry_spec: falling back to cached version (%s)", cached_version)
            registry_spec.update_lib_versions(ref_spec)
            self.last_fetch_degraded = True
            return registry_spec

        self.last_fetch_degraded = False
        if registry_spec is not None and cached_version == sha:
            log.debug("GitHub.fetch_registry_spec: using cache @%s", sha)
            registry_spec.update_lib_versions(sha)
            return registry_spec

        if registry_spec is not None:
            log.debug("GitHub.fetch_registry_spec: cache is stale, updating to %s", sha)
        else:
            log.debug("GitHub.fetch_registry_spec: cache not found, fetching remote for %s", self.name)

        registry_spec = self.fetch_remote_spec(
            ContentSpec(
                repo=self._descriptor.repository,
                path=self._descriptor.registry_spec_repo_path,
                ref_spec=sha,
            )
        )
        registry_spec.update_lib_versions(sha)

        # The cache directory is only created once the fetch has succeeded,
        # so a failed network call never leaves an empty directory behind.
        self._write_cache(cache_file, registry_spec.marshal())
        return registry_spec

    def fetch_remote_spec(self, cs: ContentSpec) -> RegistrySpec:
        """Fetch and decode a registry.yaml from the remote repository.

        The returned spec's ``version`` is set to ``cs.ref_spec`` so it is
        persisted with the cache.
        """
        self._log.debug("GitHub.fetch_remote_spec: fetching %s", cs)
        entry = self._client.contents(cs.repo, cs.path, cs.ref_spec)
        if isinstance(entry, list):
            raise StructuralError(
                f"Could not find valid registry with coordinates: {cs}", path=cs.path
            )

        registry_spec = RegistrySpec.unmarshal(entry.get_content())
        registry_spec.version = cs.ref_spec
        return registry_spec

    def fetch_remote_and_save(self, cs: ContentSpec, writer: BinaryIO) -> None:
        """Fetch a registry.yaml and write its marshalled form to ``writer``."""
        if writer is None:
            raise ValueError("writer is required")
        registry_spec = self.fetch_remote_spec(cs)
        writer.write(registry_spec.marshal())

    def _load_cached_spec(self, cache_file: Path) -> RegistrySpec | None:
        try:
            raw = cache_file.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            self._log.warning(
                "GitHub.fetch_registry_spec: error loading cache for %s (%s), trying to refresh instead",
                self.name,
                e,
            )
            return None

        try:
            return RegistrySpec.unmarshal(raw)
        except ManifestError as e:
            self._log.warning(
                "GitHub.fetch_registry_spec: error loading cache for %s (%s), trying to refresh instead",
                self.name,
                e,
            )
            return None

    def _write_cache(self, cache_file: Path, data: bytes) -> None:
        cache_dir = cache_file.parent
        cache_dir.mkdir(mode=self.app.folder_permissions, parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(dir=cache_dir, prefix=".registry-", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.chmod(tmp_name, self.app.file_permissions)
            os.replace(tmp_name, cache_file)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    # -- libraries -----------------------------------------------------------

    def resolve_library_spec(self, part_name: str, lib_ref_spec: str) -> PartsSpec:
        """Fetch a library's parts.yaml at ``lib_ref_spec`` without walking its files.

        The returned spec's version is the resolved commit SHA, not what
        the file says.
        """
        resolved_sha = self._client.commit_sha1(
            self._descriptor.repository, lib_ref_spec, timeout=self._resolve_timeout
        )
        parts = self._fetch_parts_spec(self._library_path(part_name), resolved_sha)
        parts.version = resolved_sha
        return parts

    def resolve_library(
        self,
        part_name: str,
        part_alias: str,
        lib_ref_spec: str,
        on_file: ResolveFile,
        on_directory: ResolveDirectory,
    ) -> LibraryResolution:
        """Resolve a library to a commit, streaming its files to the handlers.

        Handlers receive paths relative to the registry root. Transport
        failures propagate: a library has no cached substitute.

        Args:
            part_name: Library name inside the registry.
            part_alias: Local name to record; defaults to ``part_name``.
            lib_ref_spec: Branch, tag or SHA to pin; empty means the
                registry's own ref.
            on_file: Called with (path, contents) for each file.
            on_directory: Called with the path of each directory, before
                any of its contents.
        """
        if not lib_ref_spec:
            try:
                resolved_sha = self.resolve_latest_sha()
            except TransportError as e:
                raise TransportError(
                    f"unable to resolve commit for refspec {self._descriptor.ref_spec!r}: {e}",
                    status_code=e.status_code,
                ) from e
            if not resolved_sha:
                raise TransportError(
                    f"unable to resolve commit for refspec {self._descriptor.ref_spec!r}"
                )
        else:
            # TODO: skip the round trip when lib_ref_spec is already a full SHA.
            resolved_sha = self._client.commit_sha1(
                self._descriptor.repository, lib_ref_spec, timeout=self._resolve_timeout
            )

        path = self._library_path(part_name)
        resolve_directory(
            self._client,
            self._descriptor,
            part_name,
            path,
            resolved_sha,
            chroot_on_file(self._descriptor, on_file),
            chroot_on_directory(self._descriptor, on_directory),
            registry_name=self.name,
            logger=self._log,
        )

        parts = self._fetch_parts_spec(path, resolved_sha)
        parts.version = resolved_sha

        library = LibraryConfig(
            name=part_alias or part_name,
            registry=self.name,
            version=resolved_sha,
        )
        self._log.debug("GitHub.resolve_library: resolved %s", library.qualified_id)
        return LibraryResolution(parts=parts, library=library)

    def _library_path(self, part_name: str) -> str:
        return "/".join(p for p in (self._descriptor.registry_repo_path, part_name) if p)

    def _fetch_parts_spec(self, library_path: str, sha: str) -> PartsSpec:
        spec_path = f"{library_path}/{PARTS_YAML}"
        entry = self._client.contents(self._descriptor.repository, spec_path, sha)
        if isinstance(entry, list):
            raise StructuralError(
                f"Can't download library manifest; resource {spec_path!r} is a directory "
                f"in registry {self._descriptor.raw_url()}",
                path=spec_path,
            )
        return PartsSpec.unmarshal(entry.get_content())

    # -- URI management ------------------------------------------------------

    def validate_uri(self, uri: str) -> bool:
        """Check that ``uri`` is reachable and parses as a GitHub registry URI.

        Raises:
            InvalidURIError: If either check fails.
        """
        try:
            self._client.validate_url(uri)
        except TransportError as e:
            raise InvalidURIError(f"validating GitHub registry URL: {e}", uri=uri) from e

        parse_github_uri(uri)
        return True

    def set_uri(self, uri: str) -> None:
        """Point the registry at a new URI.

        The descriptor is rebuilt from scratch; nothing is carried over
        from the old one.
        """
        descriptor = parse_github_uri(uri)
        self.validate_uri(uri)

        self._descriptor = descriptor
        self._config.uri = uri
        self._client.set_base_url(descriptor.base_url)
