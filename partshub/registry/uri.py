"""Registry URI parsing — normalize GitHub URL dialects into one descriptor.

A registry can be addressed in several ways:

- a repository root::

      github.com/ksonnet/parts

- a directory inside a repository, web-UI style::

      github.com/ksonnet/parts/tree/master/incubator

- the registry.yaml itself, web-UI style::

      github.com/ksonnet/parts/blob/master/incubator/registry.yaml

- an enterprise repository through the REST v3 ``repos`` endpoint::

      https://github.acme.com/api/v3/repos/acme/parts
      https://github.acme.com/api/v3/repos/acme/parts/contents/registry?ref=master
      https://github.acme.com/api/v3/repos/acme/parts/contents/registry/registry.yaml?ref=v2

All of them reduce to a ``RegistryDescriptor``: an API root, org, repo,
ref spec, and two repo-root-relative paths.
"""

from __future__ import annotations

import posixpath
from dataclasses import dataclass
from urllib.parse import parse_qs, urlsplit

from partshub.errors import InvalidURIError
from partshub.github.types import Repo

PUBLIC_HOST_SUFFIX = "github.com"
DEFAULT_BRANCH = "master"
REGISTRY_YAML = "registry.yaml"
RAW_GITHUB_ROOT = "https://raw.githubusercontent.com"

_ACCEPTED_PREFIXES = (
    "http://github.",
    "https://github.",
    "http://www.github.",
    "https://www.github.",
)
_SCHEMELESS_PREFIXES = ("github.", "www.github.")

INVALID_URI_MESSAGE = (
    "Invalid GitHub URI: try navigating in GitHub to the URI of the folder "
    "containing the 'registry.yaml', and using that URI instead. Generally, "
    "this URI should be of the form "
    "'github.com/{organization}/{repository}/tree/{branch}/[path-to-directory]'"
)


@dataclass(frozen=True)
class RegistryDescriptor:
    """Canonical form of a registry location.

    Both paths are relative to the repository root, without leading or
    trailing slashes; ``registry_spec_repo_path`` is always
    ``registry_repo_path`` joined with ``registry.yaml``.
    """

    org: str
    repo: str
    ref_spec: str
    registry_repo_path: str = ""
    registry_spec_repo_path: str = REGISTRY_YAML
    base_url: str | None = None  # None means the public github.com API

    @property
    def repository(self) -> Repo:
        return Repo(org=self.org, repo=self.repo)

    @property
    def is_enterprise(self) -> bool:
        return self.base_url is not None

    def raw_url(self) -> str:
        """URL of the registry.yaml on raw.githubusercontent.com."""
        return "/".join(
            [RAW_GITHUB_ROOT, self.org, self.repo, self.ref_spec, self.registry_spec_repo_path]
        )


def parse_github_uri(uri: str) -> RegistryDescriptor:
    """Parse a registry URI into a ``RegistryDescriptor``.

    Raises:
        InvalidURIError: If the URI is not a GitHub URI or has an unsupported shape.
    """
    uri = uri.strip()
    if uri.startswith(_ACCEPTED_PREFIXES):
        pass
    elif uri.startswith(_SCHEMELESS_PREFIXES):
        uri = "http://" + uri
    else:
        raise InvalidURIError(
            "Registries using protocol 'github' must provide URIs beginning with "
            "'github' (optionally prefaced with 'http', 'https', 'www', and so on)",
            uri=uri,
        )

    try:
        parsed = urlsplit(uri)
        queries = parse_qs(parsed.query, keep_blank_values=True)
    except ValueError as e:
        raise InvalidURIError(f"Unable to parse URI {uri!r}: {e}", uri=uri) from e

    # The first component is always blank because the path begins with '/'.
    components = parsed.path.split("/")
    host = parsed.hostname or ""
    is_enterprise = not host.endswith(PUBLIC_HOST_SUFFIX)

    base_url: str | None = None
    ref_spec = ""
    if is_enterprise:
        try:
            base_index = components.index("repos")
        except ValueError:
            raise InvalidURIError(
                f"Enterprise GitHub URI must point at a repository's V3 API 'repos' endpoint:\n{uri}",
                uri=uri,
            ) from None
        base_url = f"{parsed.scheme}://{parsed.netloc}{'/'.join(components[:base_index])}/"

        if queries:
            refs = queries.get("ref")
            if len(queries) != 1 or refs is None or len(refs) != 1:
                raise InvalidURIError(
                    f"Only 'ref' query strings allowed in enterprise registry URI:\n{uri}",
                    uri=uri,
                )
            ref_spec = refs[0]
    else:
        if queries or parsed.query:
            raise InvalidURIError(f"No query strings allowed in registry URI:\n{uri}", uri=uri)
        base_index = 0

    if len(components) < base_index + 3:
        raise InvalidURIError(f"GitHub URI must point at a repository:\n{uri}", uri=uri)

    org = components[base_index + 1]
    repo = components[base_index + 2]
    if not org or not repo:
        raise InvalidURIError(f"GitHub URI must point at a repository:\n{uri}", uri=uri)

    rest = components[base_index + 3:]
    if not any(rest):
        # Repository root, with or without a trailing '/'.
        return RegistryDescriptor(
            org=org,
            repo=repo,
            ref_spec=ref_spec or DEFAULT_BRANCH,
            base_url=base_url,
        )

    if is_enterprise:
        # components[base_index + 3] is the 'contents' mount; the path follows it.
        reg_path, spec_path = _registry_paths(components[base_index + 4:])
        return RegistryDescriptor(
            org=org,
            repo=repo,
            ref_spec=ref_spec,
            registry_repo_path=reg_path,
            registry_spec_repo_path=spec_path,
            base_url=base_url,
        )

    kind = components[base_index + 3]
    if len(components) <= base_index + 4:
        raise InvalidURIError(INVALID_URI_MESSAGE, uri=uri)
    ref_spec = components[base_index + 4]
    if not ref_spec:
        raise InvalidURIError(INVALID_URI_MESSAGE, uri=uri)

    if kind == "tree":
        reg_path, spec_path = _registry_paths(components[base_index + 5:])
    elif kind == "blob" and components[-1] == REGISTRY_YAML and len(components) > base_index + 5:
        reg_path = "/".join(components[base_index + 5:-1])
        spec_path = "/".join(components[base_index + 5:])
    else:
        raise InvalidURIError(INVALID_URI_MESSAGE, uri=uri)

    return RegistryDescriptor(
        org=org,
        repo=repo,
        ref_spec=ref_spec,
        registry_repo_path=reg_path,
        registry_spec_repo_path=spec_path,
    )


def _registry_paths(segments: list[str]) -> tuple[str, str]:
    """Return (registry path, registry.yaml path) for a directory's segments."""
    # A trailing '/' leaves a blank last segment; drop it so the registry
    # path carries no trailing slash.
    if segments and segments[-1] == "":
        segments = segments[:-1]
    reg_path = "/".join(segments)
    spec_path = "/".join(segments + [REGISTRY_YAML])
    return reg_path, spec_path


def rebase_to_root(descriptor: RegistryDescriptor, path: str) -> str:
    """Rebase a repo-root-relative path onto the registry root.

    Example::

        uri:    github.com/ksonnet/parts/tree/master/long/path/incubator
        path:   long/path/incubator/parts.yaml
        output: parts.yaml
    """
    rebased = path.lstrip("/")
    root = descriptor.registry_repo_path
    if root:
        if rebased == root:
            rebased = ""
        elif rebased.startswith(root + "/"):
            rebased = rebased[len(root):]
    return rebased.lstrip("/")


def cache_root(descriptor: RegistryDescriptor, name: str, path: str) -> str:
    """Return ``path`` rebased to the registry root, under the registry ``name``.

    Example::

        uri:    github.com/ksonnet/parts/tree/master/long/path/incubator
        path:   long/path/incubator/parts.yaml
        output: incubator/parts.yaml
    """
    rebased = rebase_to_root(descriptor, path)
    return posixpath.join(name, rebased) if rebased else name
