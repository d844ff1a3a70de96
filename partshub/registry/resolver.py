"""Content resolver — walk a library's subtree through the contents API.

Files and directories are handed to caller-supplied handlers as they are
found, depth first. Directories are announced before their children so a
handler can create them before anything is written inside.
"""

from __future__ import annotations

import logging
from typing import Callable

from partshub.errors import StructuralError
from partshub.github.abc import GitHub
from partshub.registry.uri import RegistryDescriptor, rebase_to_root

ResolveFile = Callable[[str, bytes], None]
ResolveDirectory = Callable[[str], None]

_logger = logging.getLogger(__name__)


def resolve_directory(
    client: GitHub,
    descriptor: RegistryDescriptor,
    lib_id: str,
    path: str,
    version: str,
    on_file: ResolveFile,
    on_directory: ResolveDirectory,
    *,
    registry_name: str = "",
    timeout: float | None = None,
    logger: logging.Logger | None = None,
) -> None:
    """Recursively resolve ``path@version``, calling the handlers for each entry.

    Paths given to the handlers are exactly what the contents API reports
    (repo-root-relative); wrap the handlers with ``chroot_on_file`` and
    ``chroot_on_directory`` to receive registry-root-relative paths.

    Any transport or handler error aborts the walk. Nothing already handed
    to the handlers is undone.

    Raises:
        StructuralError: If ``path`` is a file, the API contradicts itself
            about an entry's type, or the tree contains a submodule.
        TransportError: On any network failure.
    """
    log = logger or _logger

    listing = client.contents(descriptor.repository, path, version, timeout=timeout)
    if not isinstance(listing, list):
        raise StructuralError(
            f"Lib ID {lib_id!r} resolves to a file in registry {registry_name!r}",
            path=path,
        )

    for item in listing:
        if item.type == "file":
            entry = client.contents(descriptor.repository, item.path, version, timeout=timeout)
            if isinstance(entry, list):
                raise StructuralError(
                    f"INTERNAL ERROR: GitHub API reported resource {item.path!r} "
                    "of type file, but returned type dir",
                    path=item.path,
                )
            on_file(item.path, entry.get_content())
        elif item.type == "dir":
            on_directory(item.path)
            resolve_directory(
                client,
                descriptor,
                lib_id,
                item.path,
                version,
                on_file,
                on_directory,
                registry_name=registry_name,
                timeout=timeout,
                logger=log,
            )
        elif item.type == "symlink":
            log.debug("resolve_directory: skipping symlink %s in library %s", item.path, lib_id)
        elif item.type == "submodule":
            raise StructuralError(
                f"Invalid library {lib_id!r}; libraries with submodules "
                f"are not supported (found submodule at {item.path!r})",
                path=item.path,
            )
        else:
            log.warning(
                "resolve_directory: skipping %s in library %s: unknown entry type %r",
                item.path,
                lib_id,
                item.type,
            )


def chroot_on_file(descriptor: RegistryDescriptor, on_file: ResolveFile) -> ResolveFile:
    """Wrap ``on_file`` so it receives paths relative to the registry root.

    Example::

        uri:          github.com/ksonnet/parts/tree/master/nested/registry/incubator
        path:         nested/registry/incubator/registry.yaml
        chrooted:     registry.yaml
    """

    def chrooted(path: str, contents: bytes) -> None:
        on_file(rebase_to_root(descriptor, path), contents)

    return chrooted


def chroot_on_directory(
    descriptor: RegistryDescriptor, on_directory: ResolveDirectory
) -> ResolveDirectory:
    """Wrap ``on_directory`` so it receives paths relative to the registry root."""

    def chrooted(path: str) -> None:
        on_directory(rebase_to_root(descriptor, path))

    return chrooted
