"""Tests for the dump readers."""

import pytest

from conftest import CRATE_COLUMNS, write_csv
from digger.common import DumpError
from digger.models import CrateVersion
from digger.store.dump_reader import (
    latest_versions,
    read_crate_owners,
    read_crates,
    read_teams,
    read_users,
)


def test_read_crates_sorted_by_updated_at(dump_workspace):
    crates = read_crates(dump_workspace)
    assert [krate.name for krate in crates] == ["qux", "bar", "foo", "baz"]


def test_read_crates_keeps_row_values(dump_workspace):
    foo = next(krate for krate in read_crates(dump_workspace) if krate.id == "1")
    assert foo.name == "foo"
    assert foo.repository == "https://github.com/org/mono"
    assert foo.homepage == ""
    assert foo.cargo is None


def test_read_crates_limit(dump_workspace):
    crates = read_crates(dump_workspace, limit=2)
    assert len(crates) == 2
    assert {krate.name for krate in crates} == {"foo", "bar"}


def test_missing_table_is_fatal(workspace):
    with pytest.raises(DumpError, match="not found"):
        read_crates(workspace)


def test_row_without_required_column_is_fatal(workspace):
    write_csv(workspace.table("crates"), [{"id": "1", "name": "foo"}], ["id", "name"])
    with pytest.raises(DumpError, match="created_at"):
        read_crates(workspace)


def test_teams_become_users(dump_workspace):
    teams = read_teams(dump_workspace)
    assert len(teams) == 1
    assert teams[0].id == "20"
    assert teams[0].gh_login == "github:org:core"
    assert teams[0].is_team


def test_read_users(dump_workspace):
    users = read_users(dump_workspace)
    assert [user.gh_login for user in users] == ["Alice", "bob"]
    assert users[0].gh_login_lower == "alice"


def test_crate_owners_last_edge_wins(dump_workspace):
    owner_by_crate_id, crates_by_owner = read_crate_owners(dump_workspace)
    assert owner_by_crate_id == {"1": "10", "2": "10", "3": "20"}
    assert crates_by_owner == {"10": ["1", "2"], "11": ["2"], "20": ["3"]}


def test_latest_versions_picks_newest():
    versions = [
        CrateVersion(crate_id="1", num="0.1.0", created_at="2023-01-01 00:00:00.000000"),
        CrateVersion(crate_id="1", num="0.2.0", created_at="2023-06-01 00:00:00.000000"),
        CrateVersion(crate_id="2", num="1.0.0", created_at="2023-02-01 00:00:00.000000"),
    ]
    latest = latest_versions(versions)
    assert latest["1"].num == "0.2.0"
    assert latest["2"].num == "1.0.0"


def test_latest_versions_tie_keeps_first_row():
    versions = [
        CrateVersion(crate_id="1", num="1.0.0", created_at="2023-01-01 00:00:00.000000"),
        CrateVersion(crate_id="1", num="1.0.1", created_at="2023-01-01 00:00:00.000000"),
    ]
    assert latest_versions(versions)["1"].num == "1.0.0"


def test_readme_column_may_be_huge(workspace):
    row = {
        "id": "1",
        "name": "big",
        "created_at": "2023-01-01 00:00:00.000000",
        "updated_at": "2023-01-01 00:00:00.000000",
        "readme": "x" * 200_000,
    }
    write_csv(workspace.table("crates"), [row], CRATE_COLUMNS)
    assert len(read_crates(workspace)[0].readme) == 200_000
