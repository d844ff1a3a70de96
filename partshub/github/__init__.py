"""GitHub transport: the contents and commits API surface a registry needs."""

from partshub.github.abc import GitHub
from partshub.github.types import ContentSpec, Repo, RepositoryContent

__all__ = ["ContentSpec", "GitHub", "Repo", "RepositoryContent"]
