"""Readers for the CSV tables of the registry dump."""

import csv
import logging
from pathlib import Path
from typing import Callable, Iterator, TypeVar

from ..common import DumpError, elapsed_timer
from ..models import Crate, CrateOwner, CrateVersion, RowError, Team, User
from ..workspace import Workspace

logger = logging.getLogger(__name__)

T = TypeVar("T")

# The readme column holds whole documents.
csv.field_size_limit(2**31 - 1)

Owners = dict[str, str]
CratesByOwner = dict[str, list[str]]


def read_table(path: Path, factory: Callable[[dict], T], limit: int = 0) -> Iterator[T]:
    """Yield one record per CSV row; at most ``limit`` rows when non-zero.

    Any row that cannot be turned into a record aborts the run.
    """
    if not path.exists():
        raise DumpError(f"Dump table not found: {path}")

    with elapsed_timer(f"reading {path.name}"):
        with path.open(newline="", encoding="utf-8") as fh:
            reader = csv.DictReader(fh)
            try:
                for count, row in enumerate(reader, start=1):
                    if limit and count > limit:
                        logger.info("Limit of %d reached", limit)
                        break
                    try:
                        yield factory(row)
                    except RowError as e:
                        raise DumpError(f"{path}:{reader.line_num}: {e}") from e
            except csv.Error as e:
                raise DumpError(f"{path}:{reader.line_num}: {e}") from e


def read_crates(workspace: Workspace, limit: int = 0) -> list[Crate]:
    """Packages of the dump, most recently updated first."""
    crates = list(read_table(workspace.table("crates"), Crate.from_row, limit))
    crates.sort(key=lambda krate: krate.updated_at, reverse=True)
    logger.info("Loaded %d crates", len(crates))
    return crates


def read_versions(workspace: Workspace, limit: int = 0) -> list[CrateVersion]:
    return list(read_table(workspace.table("versions"), CrateVersion.from_row, limit))


def read_users(workspace: Workspace, limit: int = 0) -> list[User]:
    return list(read_table(workspace.table("users"), User.from_row, limit))


def read_teams(workspace: Workspace, limit: int = 0) -> list[User]:
    """Teams, already converted to users so both share one id space."""
    return [team.to_user() for team in read_table(workspace.table("teams"), Team.from_row, limit)]


def read_crate_owners(workspace: Workspace, limit: int = 0) -> tuple[Owners, CratesByOwner]:
    """Return ``crate_id -> owner_id`` and ``owner_id -> [crate_id]``.

    A package with several owners keeps the one seen last.
    """
    owner_by_crate_id: Owners = {}
    crates_by_owner: CratesByOwner = {}
    for edge in read_table(workspace.table("crate_owners"), CrateOwner.from_row, limit):
        owner_by_crate_id[edge.crate_id] = edge.owner_id
        crates_by_owner.setdefault(edge.owner_id, []).append(edge.crate_id)
    return owner_by_crate_id, crates_by_owner


def latest_versions(versions: list[CrateVersion]) -> dict[str, CrateVersion]:
    """Most recently created version of every package, keyed by ``crate_id``.

    On equal ``created_at`` the first row wins.
    """
    latest: dict[str, CrateVersion] = {}
    for version in versions:
        current = latest.get(version.crate_id)
        if current is None or current.created_at < version.created_at:
            latest[version.crate_id] = version
    return latest
