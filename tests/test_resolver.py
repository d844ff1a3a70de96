"""Tests for recursive library content resolution."""

import pytest

from partshub.errors import StructuralError, TransportError
from partshub.github.fake import FakeGitHub
from partshub.registry.resolver import (
    chroot_on_directory,
    chroot_on_file,
    resolve_directory,
)
from partshub.registry.uri import parse_github_uri

SHA = "a" * 40


def _recorder():
    """Return (events, on_file, on_directory) that log every callback in order."""
    events: list[tuple] = []

    def on_file(path: str, contents: bytes) -> None:
        events.append(("file", path, contents))

    def on_directory(path: str) -> None:
        events.append(("dir", path))

    return events, on_file, on_directory


def _client(files: dict[str, bytes], special: dict[str, str] | None = None) -> FakeGitHub:
    return FakeGitHub(
        refs={"master": SHA},
        trees={SHA: files},
        special_entries={SHA: special or {}},
    )


def test_resolves_files_and_directories_depth_first():
    hd = parse_github_uri("github.com/ksonnet/parts/tree/master/incubator")
    client = _client(
        {
            "incubator/registry.yaml": b"libraries: {}\n",
            "incubator/pkg/parts.yaml": b"name: pkg\n",
            "incubator/pkg/prototypes/deploy.jsonnet": b"{}",
            "incubator/pkg/README.md": b"# pkg",
        }
    )
    events, on_file, on_directory = _recorder()

    resolve_directory(client, hd, "pkg", "incubator/pkg", SHA, on_file, on_directory)

    assert events == [
        ("file", "incubator/pkg/README.md", b"# pkg"),
        ("file", "incubator/pkg/parts.yaml", b"name: pkg\n"),
        ("dir", "incubator/pkg/prototypes"),
        ("file", "incubator/pkg/prototypes/deploy.jsonnet", b"{}"),
    ]


def test_directory_announced_before_its_children():
    hd = parse_github_uri("github.com/ksonnet/parts")
    client = _client({"pkg/a/b/c.txt": b"c"})
    events, on_file, on_directory = _recorder()

    resolve_directory(client, hd, "pkg", "pkg", SHA, on_file, on_directory)

    assert events == [("dir", "pkg/a"), ("dir", "pkg/a/b"), ("file", "pkg/a/b/c.txt", b"c")]


def test_chrooted_handlers_receive_registry_relative_paths():
    hd = parse_github_uri("github.com/org/parts/tree/master/incubator/")
    client = _client({"incubator/pkg/manifest.yaml": b"x", "incubator/pkg/sub/y": b"y"})
    events, on_file, on_directory = _recorder()

    resolve_directory(
        client,
        hd,
        "pkg",
        "incubator/pkg",
        SHA,
        chroot_on_file(hd, on_file),
        chroot_on_directory(hd, on_directory),
    )

    assert ("file", "pkg/manifest.yaml", b"x") in events
    assert ("dir", "pkg/sub") in events
    assert ("file", "pkg/sub/y", b"y") in events


def test_library_that_is_a_file_is_rejected():
    hd = parse_github_uri("github.com/ksonnet/parts")
    client = _client({"pkg": b"not a directory"})
    events, on_file, on_directory = _recorder()

    with pytest.raises(StructuralError) as exc:
        resolve_directory(
            client, hd, "pkg", "pkg", SHA, on_file, on_directory, registry_name="incubator"
        )

    assert "resolves to a file" in str(exc.value)
    assert events == []


def test_symlinks_are_skipped():
    hd = parse_github_uri("github.com/ksonnet/parts")
    client = _client({"pkg/parts.yaml": b"name: pkg\n"}, special={"pkg/link": "symlink"})
    events, on_file, on_directory = _recorder()

    resolve_directory(client, hd, "pkg", "pkg", SHA, on_file, on_directory)

    assert events == [("file", "pkg/parts.yaml", b"name: pkg\n")]


def test_submodule_fails_and_stops_later_siblings():
    hd = parse_github_uri("github.com/ksonnet/parts")
    client = _client(
        {
            "pkg/a.txt": b"a",
            "pkg/nested/z.txt": b"z",
        },
        special={"pkg/nested/m-sub": "submodule"},
    )
    events, on_file, on_directory = _recorder()

    with pytest.raises(StructuralError) as exc:
        resolve_directory(client, hd, "pkg", "pkg", SHA, on_file, on_directory)

    assert exc.value.path == "pkg/nested/m-sub"
    # "m-sub" sorts before "z.txt", so z.txt is never handed over.
    assert ("file", "pkg/nested/z.txt", b"z") not in events
    assert events == [("file", "pkg/a.txt", b"a"), ("dir", "pkg/nested")]


def test_transport_error_aborts_traversal():
    hd = parse_github_uri("github.com/ksonnet/parts")
    client = _client({"pkg/a.txt": b"a"})
    events, on_file, on_directory = _recorder()

    with pytest.raises(TransportError):
        resolve_directory(client, hd, "pkg", "pkg", "b" * 40, on_file, on_directory)

    assert events == []


def test_handler_errors_propagate():
    hd = parse_github_uri("github.com/ksonnet/parts")
    client = _client({"pkg/a.txt": b"a", "pkg/b.txt": b"b"})

    def on_file(path: str, contents: bytes) -> None:
        raise OSError("disk full")

    with pytest.raises(OSError):
        resolve_directory(client, hd, "pkg", "pkg", SHA, on_file, lambda path: None)


def test_each_call_carries_the_timeout():
    hd = parse_github_uri("github.com/ksonnet/parts")
    client = _client({"pkg/a.txt": b"a"})

    resolve_directory(client, hd, "pkg", "pkg", SHA, lambda p, c: None, lambda p: None, timeout=3.0)

    assert client.timeouts == [3.0, 3.0]
