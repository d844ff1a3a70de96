"""Abstract base class for the GitHub transport."""

from __future__ import annotations

from abc import ABC, abstractmethod

from partshub.github.types import Repo, RepositoryContent


class GitHub(ABC):
    """Abstract interface for the GitHub operations a registry needs.

    All implementations (real and fake) must implement this interface.
    Every network call takes its own ``timeout`` so callers can bound each
    request independently of any outer deadline.
    """

    @abstractmethod
    def set_base_url(self, base_url: str | None) -> None:
        """Point the client at an enterprise API root.

        Args:
            base_url: API root such as ``https://github.acme.com/api/v3/``,
                or None to restore the public API.
        """
        ...

    @abstractmethod
    def validate_url(self, url: str) -> None:
        """Probe that a registry URL is reachable.

        Raises:
            TransportError: If the registry.yaml behind the URL does not answer 200.
        """
        ...

    @abstractmethod
    def commit_sha1(self, repo: Repo, ref_spec: str, *, timeout: float | None = None) -> str:
        """Resolve a branch, tag or commit-ish to a full commit SHA.

        An empty ``ref_spec`` means the default branch.

        Raises:
            TransportError: On any network or API failure.
        """
        ...

    @abstractmethod
    def contents(
        self,
        repo: Repo,
        path: str,
        ref: str,
        *,
        timeout: float | None = None,
    ) -> RepositoryContent | list[RepositoryContent]:
        """Fetch a file or a directory listing at ``path@ref``.

        Returns:
            A single ``RepositoryContent`` with content for a file, or a
            list of entries (without content) for a directory.

        Raises:
            TransportError: On any network or API failure.
        """
        ...

    def close(self) -> None:
        """Release any connections held by the client."""
