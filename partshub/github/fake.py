"""In-memory fake implementation of the GitHub transport for testing."""

from __future__ import annotations

import base64

from partshub.errors import TransportError
from partshub.github.abc import GitHub
from partshub.github.types import Repo, RepositoryContent


class FakeGitHub(GitHub):
    """In-memory fake implementation for testing and offline use.

    All state is provided via constructor using keyword arguments.
    """

    def __init__(
        self,
        *,
        refs: dict[str, str] | None = None,
        trees: dict[str, dict[str, bytes]] | None = None,
        special_entries: dict[str, dict[str, str]] | None = None,
        reachable_urls: set[str] | None = None,
        offline: bool = False,
    ) -> None:
        """Create FakeGitHub with pre-configured state.

        Args:
            refs: Mapping of branch/tag name -> commit SHA. A SHA present in
                ``trees`` always resolves to itself.
            trees: Mapping of commit SHA -> {repo-relative file path -> bytes}.
                Directories are implied by the file paths.
            special_entries: Mapping of commit SHA -> {path -> entry type},
                for "symlink" and "submodule" entries.
            reachable_urls: URLs for which validate_url succeeds. None means
                every URL is reachable.
            offline: If True, every network call raises TransportError.
        """
        self._refs = refs or {}
        self._trees = trees or {}
        self._special = special_entries or {}
        self._reachable = reachable_urls
        self.offline = offline
        self._base_url: str | None = None
        self._commit_calls: list[tuple[Repo, str]] = []
        self._contents_calls: list[tuple[Repo, str, str]] = []
        self._timeouts: list[float | None] = []

    @property
    def commit_calls(self) -> list[tuple[Repo, str]]:
        """Read-only access to commit_sha1 calls, as (repo, ref_spec) tuples."""
        return self._commit_calls

    @property
    def contents_calls(self) -> list[tuple[Repo, str, str]]:
        """Read-only access to contents calls, as (repo, path, ref) tuples."""
        return self._contents_calls

    @property
    def timeouts(self) -> list[float | None]:
        """Timeouts passed to each network call, in call order."""
        return self._timeouts

    @property
    def base_url(self) -> str | None:
        return self._base_url

    def set_ref(self, ref: str, sha: str) -> None:
        """Move a branch to another commit."""
        self._refs[ref] = sha

    def set_base_url(self, base_url: str | None) -> None:
        self._base_url = base_url

    def validate_url(self, url: str) -> None:
        if self.offline:
            raise TransportError(f"verifying {url!r}: network unreachable")
        if self._reachable is not None and url not in self._reachable:
            raise TransportError(f"{url!r} actual 404; expected 200", status_code=404)

    def commit_sha1(self, repo: Repo, ref_spec: str, *, timeout: float | None = None) -> str:
        self._commit_calls.append((repo, ref_spec))
        self._timeouts.append(timeout)
        if self.offline:
            raise TransportError(f"resolving {repo}@{ref_spec}: network unreachable")

        ref_spec = ref_spec or "master"
        if ref_spec in self._refs:
            return self._refs[ref_spec]
        if ref_spec in self._trees:
            return ref_spec
        raise TransportError(f"No commit found for SHA: {ref_spec}", status_code=422)

    def contents(
        self,
        repo: Repo,
        path: str,
        ref: str,
        *,
        timeout: float | None = None,
    ) -> RepositoryContent | list[RepositoryContent]:
        self._contents_calls.append((repo, path, ref))
        self._timeouts.append(timeout)
        if self.offline:
            raise TransportError(f"fetching {repo}/{path}@{ref}: network unreachable")

        if ref not in self._trees:
            raise TransportError(f"No commit found for the ref {ref}", status_code=404)
        files = self._trees[ref]
        special = self._special.get(ref, {})
        path = path.strip("/")

        if path in files:
            return RepositoryContent(
                type="file",
                path=path,
                name=path.rsplit("/", 1)[-1],
                content=base64.b64encode(files[path]).decode("ascii"),
                encoding="base64",
            )
        if path in special:
            return RepositoryContent(type=special[path], path=path, name=path.rsplit("/", 1)[-1])

        prefix = f"{path}/" if path else ""
        children: dict[str, str] = {}
        for entry_path in list(files) + list(special):
            if not entry_path.startswith(prefix):
                continue
            rest = entry_path[len(prefix):]
            head, sep, _ = rest.partition("/")
            if sep:
                children[prefix + head] = "dir"
            else:
                children[entry_path] = special.get(entry_path, "file")

        if not children:
            raise TransportError(f"Not Found: {repo}/{path}@{ref}", status_code=404)

        return [
            RepositoryContent(type=kind, path=child, name=child.rsplit("/", 1)[-1])
            for child, kind in sorted(children.items())
        ]
