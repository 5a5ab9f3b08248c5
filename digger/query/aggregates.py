"""Repository buckets, manifest-field histograms and formatter-config counts."""

import logging
import re
from collections import Counter
from dataclasses import dataclass, replace
from pathlib import Path

import yaml

from ..common import WorkspaceError, percentage
from ..models import Crate, RepoType

logger = logging.getLogger(__name__)

REPO_TYPE_KEYS = {"display", "name", "url", "platform", "bold"}
REQUIRED_REPO_TYPE_KEYS = {"display", "name", "url"}

NOT_AVAILABLE = "na"

# (page folder, attribute of the parsed [package] table)
MANIFEST_FIELDS = (
    ("edition", "edition"),
    ("rust_version", "rust_version"),
    ("rust-version", "rust_dash_version"),
)

RUSTFMT_KEY = re.compile(r"^[a-z_]+$")
RUSTFMT_VALUE = re.compile(r"^[0-9A-Za-z_]+$")
RUSTFMT_SEPARATOR = re.compile(r"[\t,]")


@dataclass
class Bucket:
    """A repository bucket and the packages counted in it."""

    repo_type: RepoType
    crates: list[Crate]


def load_repo_types(path: Path) -> list[RepoType]:
    """Read the static bucket definitions; any malformed entry is fatal."""
    try:
        entries = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as e:
        raise WorkspaceError(f"Could not read repository types from {path}: {e}") from e

    if not isinstance(entries, list):
        raise WorkspaceError(f"{path} must contain a list of repository types")

    repo_types = []
    for entry in entries:
        if not isinstance(entry, dict):
            raise WorkspaceError(f"{path}: repository type must be a mapping, got {entry!r}")
        unknown = set(entry) - REPO_TYPE_KEYS
        if unknown:
            raise WorkspaceError(f"{path}: unknown keys {sorted(unknown)} in {entry}")
        missing = REQUIRED_REPO_TYPE_KEYS - set(entry)
        if missing:
            raise WorkspaceError(f"{path}: missing keys {sorted(missing)} in {entry}")
        repo_types.append(
            RepoType(
                display=str(entry["display"]),
                name=str(entry["name"]),
                url=str(entry["url"]),
                platform=entry.get("platform"),
                bold=bool(entry.get("bold", False)),
            )
        )
    return repo_types


def collect_repos(crates: list[Crate], repo_types: list[RepoType]) -> list[Bucket]:
    """Count packages per repository URL prefix.

    Matching is a plain prefix test, so a package may be counted in more than
    one bucket. The "other" and "no repository" buckets come last before the
    final sort by ``(count, name)`` descending.
    """
    total = len(crates)
    buckets = []
    for repo_type in repo_types:
        matched = [krate for krate in crates if krate.repository.startswith(repo_type.url)]
        buckets.append(
            Bucket(
                replace(repo_type, count=len(matched), percentage=percentage(len(matched), total)),
                matched,
            )
        )

    other = [
        krate
        for krate in crates
        if krate.repository
        and not any(krate.repository.startswith(repo_type.url) for repo_type in repo_types)
    ]
    no_repo = [krate for krate in crates if not krate.repository]
    buckets.append(
        Bucket(
            RepoType(
                display="Other repositories we don't recognize",
                name="other-repos",
                url="",
                count=len(other),
                percentage=percentage(len(other), total),
                bold=True,
            ),
            other,
        )
    )
    buckets.append(
        Bucket(
            RepoType(
                display="Has no repository",
                name="no-repo",
                url="",
                count=len(no_repo),
                percentage=percentage(len(no_repo), total),
                bold=True,
            ),
            no_repo,
        )
    )

    buckets.sort(key=lambda b: (b.repo_type.count, b.repo_type.name.lower()), reverse=True)
    return buckets


def manifest_value(krate: Crate, attribute: str) -> str:
    """Value of a ``[package]`` attribute as text, ``na`` when absent."""
    if krate.cargo is None:
        return NOT_AVAILABLE
    value = getattr(krate.cargo.package, attribute)
    if value is None:
        return NOT_AVAILABLE
    return str(value)


def histogram(crates: list[Crate], attribute: str) -> list[tuple[str, int]]:
    """``(value, count)`` pairs, most common first."""
    counts = Counter(manifest_value(krate, attribute) for krate in crates)
    return sorted(counts.items(), key=lambda item: (-item[1], item[0]))


def load_collected_rustfmt(path: Path) -> list[tuple[str, str, str]]:
    """Rows of ``(key, value, crate_name)`` from the formatter-audit file.

    Rows that do not split into three parts or carry an invalid key or value
    are logged and dropped.
    """
    rows: list[tuple[str, str, str]] = []
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.error("Could not read %s %s", path, e)
        return rows

    for row in content.splitlines():
        if not row.strip():
            continue
        parts = RUSTFMT_SEPARATOR.split(row)
        if len(parts) != 3:
            logger.error("Row '%s' was split to %d parts", row, len(parts))
            continue
        key, value, name = (part.strip() for part in parts)
        if not RUSTFMT_KEY.match(key):
            logger.error("Invalid rustfmt key '%s' in row '%s'", key, row)
            continue
        if not RUSTFMT_VALUE.match(value):
            logger.error("Invalid rustfmt value '%s' in row '%s'", value, row)
            continue
        rows.append((key, value, name))
    return rows


def rustfmt_counts(
    rows: list[tuple[str, str, str]],
) -> tuple[list[tuple[str, int]], list[tuple[str, str, int]]]:
    """Counts by key (most used first) and by ``(key, value)`` (sorted by key)."""
    by_key = Counter(key for key, _value, _name in rows)
    by_pair = Counter((key, value) for key, value, _name in rows)
    count_by_key = sorted(by_key.items(), key=lambda item: (-item[1], item[0]))
    count_by_pair = sorted(
        ((key, value, count) for (key, value), count in by_pair.items()),
        key=lambda item: (item[0], item[1]),
    )
    return count_by_key, count_by_pair
