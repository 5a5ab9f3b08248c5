"""Shared test fixtures."""

import csv
import io
import json
import tarfile
from pathlib import Path

import pytest

from digger.workspace import Workspace

CRATE_COLUMNS = [
    "id",
    "name",
    "created_at",
    "updated_at",
    "description",
    "documentation",
    "downloads",
    "homepage",
    "max_upload_size",
    "readme",
    "repository",
]

CRATES = [
    {
        "id": "1",
        "name": "foo",
        "created_at": "2023-01-01 10:00:00.000000",
        "updated_at": "2023-06-01 10:00:00.123456",
        "description": "The foo crate",
        "downloads": "12345",
        "repository": "https://github.com/org/mono",
    },
    {
        "id": "2",
        "name": "bar",
        "created_at": "2023-02-01 10:00:00.000000",
        "updated_at": "2023-07-01 10:00:00.000000",
        "description": "The bar crate",
        "downloads": "10",
        "repository": "https://github.com/org/mono",
    },
    {
        "id": "3",
        "name": "baz",
        "created_at": "2023-03-01 10:00:00.000000",
        "updated_at": "2023-05-01 10:00:00.000000",
        "homepage": "https://baz.example.com/",
    },
    {
        "id": "4",
        "name": "qux",
        "created_at": "2023-04-01 10:00:00.000000",
        "updated_at": "2023-08-01 10:00:00.000000",
        "homepage": "https://docs.rs/qux",
        "repository": "https://gitlab.com/Qux/Qux",
    },
]

VERSIONS = [
    {"id": "100", "crate_id": "1", "num": "0.1.0", "created_at": "2023-01-01 10:00:00.000000"},
    {"id": "101", "crate_id": "1", "num": "0.2.0", "created_at": "2023-06-01 10:00:00.000000"},
    {"id": "102", "crate_id": "2", "num": "1.0.0", "created_at": "2023-07-01 10:00:00.000000"},
    {"id": "103", "crate_id": "3", "num": "0.0.1", "created_at": "2023-05-01 10:00:00.000000"},
    {"id": "104", "crate_id": "4", "num": "2.0.0", "created_at": "2023-08-01 10:00:00.000000"},
]

USERS = [
    {"id": "10", "gh_login": "Alice", "name": "Alice Adams", "gh_avatar": "https://avatars/alice", "gh_id": "1000"},
    {"id": "11", "gh_login": "bob", "name": "", "gh_avatar": "", "gh_id": "1001"},
]

TEAMS = [
    {"id": "20", "login": "github:org:core", "name": "Core", "avatar": "https://avatars/core", "github_id": "2000", "org_id": "3000"},
]

# Crate 2 has two owners; the last edge wins.
CRATE_OWNERS = [
    {"crate_id": "1", "owner_id": "10", "owner_kind": "0"},
    {"crate_id": "2", "owner_id": "11", "owner_kind": "0"},
    {"crate_id": "2", "owner_id": "10", "owner_kind": "0"},
    {"crate_id": "3", "owner_id": "20", "owner_kind": "1"},
]


def write_csv(path: Path, rows: list[dict], columns: list[str] | None = None) -> None:
    columns = columns or list(rows[0].keys())
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", newline="", encoding="utf-8") as fh:
        writer = csv.DictWriter(fh, fieldnames=columns, restval="")
        writer.writeheader()
        writer.writerows(rows)


def make_tar_gz(files: dict[str, str]) -> bytes:
    """A gzip-compressed tar archive with the given ``name -> content`` files."""
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as tar:
        for name, content in files.items():
            data = content.encode("utf-8")
            info = tarfile.TarInfo(name)
            info.size = len(data)
            tar.addfile(info, io.BytesIO(data))
    return buffer.getvalue()


@pytest.fixture
def workspace(tmp_path):
    """An empty workspace with all the folders created."""
    ws = Workspace(tmp_path / "workspace")
    ws.create_folders()
    return ws


@pytest.fixture
def dump_workspace(workspace):
    """A workspace with a small registry dump."""
    write_csv(workspace.table("crates"), CRATES, CRATE_COLUMNS)
    write_csv(workspace.table("versions"), VERSIONS)
    write_csv(workspace.table("users"), USERS)
    write_csv(workspace.table("teams"), TEAMS)
    write_csv(workspace.table("crate_owners"), CRATE_OWNERS)
    return workspace


@pytest.fixture
def make_crate_folder(workspace):
    """Create ``crates/<folder>`` with the given files."""

    def _make(folder: str, files: dict[str, str]) -> Path:
        root = workspace.crates / folder
        for name, content in files.items():
            path = root / name
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        root.mkdir(parents=True, exist_ok=True)
        return root

    return _make


@pytest.fixture
def write_details(workspace):
    """Write ``repo_details/<host>/<owner>/<repo>.json``."""

    def _write(host: str, owner: str, repo: str, **fields) -> Path:
        path = workspace.repo_details / host / owner / f"{repo}.json"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(fields), encoding="utf-8")
        return path

    return _write
