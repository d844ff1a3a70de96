"""Type definitions for GitHub content operations."""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass
from typing import Literal

from partshub.errors import TransportError

ContentType = Literal["file", "dir", "symlink", "submodule"]


@dataclass(frozen=True)
class Repo:
    """A GitHub repository coordinate."""

    org: str
    repo: str

    def __str__(self) -> str:
        return f"{self.org}/{self.repo}"


@dataclass(frozen=True)
class ContentSpec:
    """Coordinates for fetching contents from a GitHub repo."""

    repo: Repo
    path: str  # path within the repo
    ref_spec: str  # branch, tag, or commit sha1

    def __str__(self) -> str:
        return f"{self.repo}/{self.path}@{self.ref_spec}"


@dataclass(frozen=True)
class RepositoryContent:
    """A single entry returned by the contents API.

    Directory listings carry entries without ``content``; fetching a file
    directly returns one entry with ``content`` set (base64 on the wire).
    """

    type: str  # "file", "dir", "symlink", "submodule"
    path: str
    name: str = ""
    sha: str = ""
    size: int = 0
    content: str | None = None
    encoding: str = ""

    @classmethod
    def from_api(cls, data: dict) -> "RepositoryContent":
        return cls(
            type=data.get("type", ""),
            path=data.get("path", ""),
            name=data.get("name", ""),
            sha=data.get("sha", ""),
            size=data.get("size", 0) or 0,
            content=data.get("content"),
            encoding=data.get("encoding", "") or "",
        )

    def get_content(self) -> bytes:
        """Return the decoded file content.

        Raises:
            TransportError: If the entry carries no content or an unknown encoding.
        """
        if self.content is None:
            raise TransportError(f"no content returned for {self.path!r}")
        if self.encoding == "base64":
            try:
                return base64.b64decode(self.content)
            except (binascii.Error, ValueError) as e:
                raise TransportError(f"malformed base64 content for {self.path!r}: {e}") from e
        if self.encoding in ("", "utf-8"):
            return self.content.encode("utf-8")
        raise TransportError(f"unsupported encoding {self.encoding!r} for {self.path!r}")
