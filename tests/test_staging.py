"""Tests for staging directories."""

import os

import pytest

from partshub.errors import StructuralError
from partshub.utils.staging import StagingDir, new_staging_dir


def test_files_land_under_staging_root(tmp_path):
    staging = StagingDir(path=tmp_path / "stage", file_permissions=0o600)
    staging.on_directory("pkg/prototypes")
    staging.on_file("pkg/prototypes/deploy.jsonnet", b"{}")
    staging.on_file("/pkg/parts.yaml", b"name: pkg\n")

    assert (tmp_path / "stage" / "pkg" / "prototypes").is_dir()
    assert (tmp_path / "stage" / "pkg" / "parts.yaml").read_bytes() == b"name: pkg\n"
    mode = os.stat(tmp_path / "stage" / "pkg" / "parts.yaml").st_mode & 0o777
    assert mode == 0o600


def test_refuses_paths_outside_staging_root(tmp_path):
    staging = StagingDir(path=tmp_path / "stage")
    with pytest.raises(StructuralError):
        staging.on_file("../escape.txt", b"x")
    assert not (tmp_path / "escape.txt").exists()


def test_commit_subpath_replaces_destination(tmp_path):
    dest = tmp_path / "vendor" / "incubator" / "web"
    dest.mkdir(parents=True)
    (dest / "stale.txt").write_text("old")

    with StagingDir(path=tmp_path / "stage") as staging:
        staging.on_file("apache/parts.yaml", b"name: apache\n")
        result = staging.commit(dest, subpath="apache")

    assert result == dest
    assert (dest / "parts.yaml").read_bytes() == b"name: apache\n"
    assert not (dest / "stale.txt").exists()
    assert not (tmp_path / "stage").exists()


def test_commit_without_staged_files(tmp_path):
    with StagingDir(path=tmp_path / "stage") as staging:
        with pytest.raises(StructuralError):
            staging.commit(tmp_path / "out", subpath="missing")
    assert not (tmp_path / "out").exists()


def test_context_manager_cleans_up_on_error(tmp_path):
    with pytest.raises(RuntimeError):
        with StagingDir(path=tmp_path / "stage") as staging:
            staging.on_file("pkg/a.txt", b"a")
            raise RuntimeError("resolution failed")
    assert not (tmp_path / "stage").exists()


def test_new_staging_dir():
    with new_staging_dir(prefix="partshub_test_") as staging:
        assert staging.path.is_dir()
        assert staging.path.name.startswith("partshub_test_")
    assert not staging.path.exists()
