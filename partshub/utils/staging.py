"""Staging directories — resolve a library somewhere temporary, then move it into place."""

from __future__ import annotations

import os
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path

from partshub.errors import StructuralError


@dataclass
class StagingDir:
    """A temporary directory that receives a library's files.

    Files land under ``path`` as the resolver hands them over; nothing
    reaches the destination until ``commit``. Use as a context manager;
    whatever was not committed is deleted on exit::

        with new_staging_dir() as staging:
            registry.resolve_library(name, alias, ref, staging.on_file, staging.on_directory)
            staging.commit(vendor_dir / alias, subpath=name)
    """

    path: Path
    """Root of the staging area."""

    file_permissions: int = 0o644
    folder_permissions: int = 0o755

    def __enter__(self) -> "StagingDir":
        return self

    def __exit__(self, *exc) -> None:
        self.cleanup()

    def cleanup(self) -> None:
        if self.path.exists():
            shutil.rmtree(self.path, ignore_errors=True)

    def on_directory(self, rel_path: str) -> None:
        self._target(rel_path).mkdir(mode=self.folder_permissions, parents=True, exist_ok=True)

    def on_file(self, rel_path: str, contents: bytes) -> None:
        target = self._target(rel_path)
        target.parent.mkdir(mode=self.folder_permissions, parents=True, exist_ok=True)
        target.write_bytes(contents)
        os.chmod(target, self.file_permissions)

    def commit(self, dest: str | Path, subpath: str = "") -> Path:
        """Move the staged tree (or ``subpath`` within it) to ``dest``.

        Whatever is at ``dest`` is replaced.
        """
        source = self._target(subpath) if subpath else self.path
        if not source.is_dir():
            raise StructuralError(f"nothing staged at {subpath or str(self.path)!r}", path=subpath)
        dest = Path(dest)
        dest.parent.mkdir(mode=self.folder_permissions, parents=True, exist_ok=True)
        if dest.exists():
            shutil.rmtree(dest)
        shutil.move(str(source), str(dest))
        return dest

    def _target(self, rel_path: str) -> Path:
        root = self.path.resolve()
        target = (root / rel_path.lstrip("/")).resolve()
        if target != root and root not in target.parents:
            raise StructuralError(f"refusing to write outside the staging area: {rel_path!r}", path=rel_path)
        return target


def new_staging_dir(prefix: str = "partshub_") -> StagingDir:
    """Create a fresh staging directory under the system temp dir."""
    return StagingDir(path=Path(tempfile.mkdtemp(prefix=prefix)))
