"""Tests for the joined package table."""

import csv
import json

import pytest

from digger.manifest import parse_manifest
from digger.store.knowledge_base import KnowledgeBase


@pytest.fixture
def enriched_workspace(dump_workspace, write_details):
    released = [
        parse_manifest('[package]\nname = "foo"\nversion = "0.2.0"\nedition = "2021"\n').to_json_dict(),
        parse_manifest('[package]\nname = "qux"\nversion = "2.0.0"\nrust-version = "1.70"\n').to_json_dict(),
    ]
    data = dump_workspace.data
    (data / "released_cargo_toml.json").write_text(json.dumps(released))
    (data / "released_cargo_toml_errors.json").write_text(json.dumps({"bar": "bad key"}))
    (data / "released_cargo_toml_missing.json").write_text(json.dumps(["baz-0.0.1"]))

    (dump_workspace.analyzed_crates / "foo-0.2.0.json").write_text(
        json.dumps({"folder": "foo-0.2.0", "has_cargo_toml": True, "has_cargo_lock": True, "size": 99})
    )
    write_details("github", "org", "mono", has_github_action=True, commit_count=7)
    return dump_workspace


def test_join_keeps_dump_identity(enriched_workspace):
    kb = KnowledgeBase(enriched_workspace).load()

    with enriched_workspace.table("crates").open(newline="") as fh:
        rows = {row["id"]: row for row in csv.DictReader(fh)}
    for krate in kb.crates:
        row = rows[krate.id]
        assert (krate.id, krate.name, krate.repository) == (row["id"], row["name"], row["repository"])


def test_owner_fields(enriched_workspace):
    kb = KnowledgeBase(enriched_workspace).load()

    foo = kb.crate_by_id["1"]
    assert (foo.owner_gh_login, foo.owner_name, foo.owner_gh_avatar) == (
        "Alice",
        "Alice Adams",
        "https://avatars/alice",
    )
    # last owner edge wins
    assert kb.crate_by_id["2"].owner_gh_login == "Alice"
    # teams share the id space of users
    assert kb.crate_by_id["3"].owner_gh_login == "github:org:core"
    qux = kb.crate_by_id["4"]
    assert (qux.owner_gh_login, qux.owner_name) == ("", "")


def test_manifests_attached_by_name(enriched_workspace):
    kb = KnowledgeBase(enriched_workspace).load()

    assert kb.crate_by_id["1"].cargo.package.edition == "2021"
    assert kb.crate_by_id["4"].cargo.package.rust_dash_version == "1.70"
    assert kb.crate_by_id["2"].cargo is None


def test_details_and_analysis_attached(enriched_workspace):
    kb = KnowledgeBase(enriched_workspace).load()

    foo = kb.crate_by_id["1"]
    assert foo.details.has_github_action
    assert foo.details.commit_count == 7
    assert foo.analysis.has_cargo_lock
    assert foo.analysis.size == 99
    # same repository
    assert kb.crate_by_id["2"].details.commit_count == 7
    # nothing collected yet
    assert kb.crate_by_id["3"].analysis.size == 0
    assert not kb.crate_by_id["4"].details.has_ci


def test_malformed_details_give_blank_record(enriched_workspace):
    (enriched_workspace.repo_details / "github" / "org" / "mono.json").write_text("{not json")

    kb = KnowledgeBase(enriched_workspace).load()

    assert kb.crate_by_id["1"].details.commit_count == 0


def test_owners_index(enriched_workspace):
    kb = KnowledgeBase(enriched_workspace).load()

    owners = kb.owners()
    assert [(user.gh_login, user.count) for user in owners] == [
        ("bob", 1),
        ("Alice", 2),
        ("github:org:core", 1),
    ]
    assert [krate.name for krate in kb.crates_of("10")] == ["bar", "foo"]


def test_aggregates_loaded(enriched_workspace):
    kb = KnowledgeBase(enriched_workspace).load()

    assert kb.errors == {"bar": "bad key"}
    assert kb.missing == ["baz-0.0.1"]
    assert kb.nameless_errors == {}
    assert kb.get_summary()["manifests"] == 2


def test_limit_applies_to_crates(enriched_workspace):
    kb = KnowledgeBase(enriched_workspace, limit=1).load()

    assert [krate.name for krate in kb.crates] == ["foo"]
    assert [(user.gh_login, user.count) for user in kb.owners()] == [("Alice", 1)]
