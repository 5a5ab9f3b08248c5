"""Tests for the strict and salvage manifest parsers."""

import pytest

from digger.manifest import ManifestError, load_manifest, parse_manifest, parse_name_version

FULL_MANIFEST = """
[package]
name = "foo"
version = "0.2.0"
edition = "2021"
rust-version = "1.70"
authors = ["Alice <alice@example.com>"]
license = "MIT"
license-file = "LICENSE"
default-run = "foo"
keywords = ["cli"]

[package.metadata.docs.rs]
all-features = true

[dependencies]
serde = { version = "1.0", features = ["derive"] }
"""


def test_parse_full_manifest():
    cargo = parse_manifest(FULL_MANIFEST)
    assert cargo.package.name == "foo"
    assert cargo.package.version == "0.2.0"
    assert cargo.package.edition == "2021"
    assert cargo.package.rust_dash_version == "1.70"
    assert cargo.package.rust_version is None
    assert cargo.package.license_dash_file == "LICENSE"
    assert cargo.dependencies["serde"]["version"] == "1.0"


def test_both_rust_version_spellings_are_kept_apart():
    cargo = parse_manifest(
        '[package]\nname = "foo"\nversion = "1.0.0"\nrust_version = "1.60"\nrust-version = "1.65"\n'
    )
    assert cargo.package.rust_version == "1.60"
    assert cargo.package.rust_dash_version == "1.65"


def test_json_dump_uses_manifest_spelling():
    data = parse_manifest(FULL_MANIFEST).to_json_dict()
    assert data["package"]["rust-version"] == "1.70"
    assert data["package"]["license-file"] == "LICENSE"
    assert "rust_dash_version" not in data["package"]


def test_unknown_package_key_fails_strict_parser():
    content = '[package]\nname = "foo"\nversion = "1.0.0"\nflavour = "vanilla"\n'
    with pytest.raises(ManifestError):
        parse_manifest(content)
    assert parse_name_version(content) == ("foo", "1.0.0")


def test_name_only_fails_both_parsers():
    content = '[package]\nname = "foo"\n'
    with pytest.raises(ManifestError):
        parse_manifest(content)
    with pytest.raises(ManifestError):
        parse_name_version(content)


def test_broken_toml():
    with pytest.raises(ManifestError, match="TOML parse error"):
        parse_manifest('[package\nname = "foo"')


def test_load_manifest_missing_file(tmp_path):
    with pytest.raises(ManifestError, match="Could not read"):
        load_manifest(tmp_path / "Cargo.toml")


def test_mixed_type_array_is_valid_toml():
    content = '[package]\nname = "foo"\nversion = "1.0.0"\n\n[package.metadata.x]\nv = [1, "a"]\n'
    assert parse_manifest(content).package.metadata == {"x": {"v": [1, "a"]}}
    assert parse_name_version(content) == ("foo", "1.0.0")
