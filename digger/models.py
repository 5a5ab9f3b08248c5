"""Records read from the registry dump and the joined package model."""

from dataclasses import dataclass, field

from .details import CrateDetails, VcsDetails
from .manifest import Cargo


class RowError(ValueError):
    """A CSV row is missing a required column."""


def _required(row: dict, table: str, *names: str) -> None:
    missing = [name for name in names if row.get(name) is None]
    if missing:
        raise RowError(f"{table}: missing column(s) {', '.join(missing)} in row {row}")


@dataclass
class Crate:
    """A package of the registry, enriched during the join."""

    id: str
    name: str
    created_at: str
    updated_at: str
    description: str = ""
    documentation: str = ""
    downloads: str = ""
    homepage: str = ""
    max_upload_size: str = ""
    readme: str = ""
    repository: str = ""

    owner_gh_login: str = ""
    owner_name: str = ""
    owner_gh_avatar: str = ""

    cargo: Cargo | None = None
    details: VcsDetails = field(default_factory=VcsDetails)
    analysis: CrateDetails = field(default_factory=CrateDetails)

    @classmethod
    def from_row(cls, row: dict) -> "Crate":
        _required(row, "crates", "id", "name", "created_at", "updated_at")
        return cls(
            id=row["id"],
            name=row["name"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            description=row.get("description") or "",
            documentation=row.get("documentation") or "",
            downloads=row.get("downloads") or "",
            homepage=row.get("homepage") or "",
            max_upload_size=row.get("max_upload_size") or "",
            readme=row.get("readme") or "",
            repository=row.get("repository") or "",
        )


@dataclass
class CrateVersion:
    """One released version of a package."""

    crate_id: str
    num: str
    created_at: str
    id: str = ""
    checksum: str = ""
    crate_size: str = ""
    license: str = ""
    rust_version: str = ""
    updated_at: str = ""
    yanked: str = ""

    @classmethod
    def from_row(cls, row: dict) -> "CrateVersion":
        _required(row, "versions", "crate_id", "num", "created_at")
        return cls(
            crate_id=row["crate_id"],
            num=row["num"],
            created_at=row["created_at"],
            id=row.get("id") or "",
            checksum=row.get("checksum") or "",
            crate_size=row.get("crate_size") or "",
            license=row.get("license") or "",
            rust_version=row.get("rust_version") or "",
            updated_at=row.get("updated_at") or "",
            yanked=row.get("yanked") or "",
        )


@dataclass
class User:
    """A package owner. Teams are converted to users on load."""

    id: str
    gh_login: str
    name: str = ""
    gh_avatar: str = ""
    gh_id: str = ""
    is_team: bool = False
    count: int = 0

    @property
    def gh_login_lower(self) -> str:
        return self.gh_login.lower()

    @classmethod
    def from_row(cls, row: dict) -> "User":
        _required(row, "users", "id", "gh_login")
        return cls(
            id=row["id"],
            gh_login=row["gh_login"],
            name=row.get("name") or "",
            gh_avatar=row.get("gh_avatar") or "",
            gh_id=row.get("gh_id") or "",
        )


@dataclass
class Team:
    id: str
    login: str
    name: str = ""
    avatar: str = ""
    github_id: str = ""
    org_id: str = ""

    @classmethod
    def from_row(cls, row: dict) -> "Team":
        _required(row, "teams", "id", "login")
        return cls(
            id=row["id"],
            login=row["login"],
            name=row.get("name") or "",
            avatar=row.get("avatar") or "",
            github_id=row.get("github_id") or "",
            org_id=row.get("org_id") or "",
        )

    def to_user(self) -> User:
        return User(
            id=self.id,
            gh_login=self.login,
            name=self.name,
            gh_avatar=self.avatar,
            gh_id=self.github_id,
            is_team=True,
        )


@dataclass
class CrateOwner:
    """An ownership edge from a package to a user or team."""

    crate_id: str
    owner_id: str
    owner_kind: str = ""
    created_at: str = ""
    created_by: str = ""

    @classmethod
    def from_row(cls, row: dict) -> "CrateOwner":
        _required(row, "crate_owners", "crate_id", "owner_id")
        return cls(
            crate_id=row["crate_id"],
            owner_id=row["owner_id"],
            owner_kind=row.get("owner_kind") or "",
            created_at=row.get("created_at") or "",
            created_by=row.get("created_by") or "",
        )


@dataclass
class RepoType:
    """A repository bucket of the aggregate report."""

    display: str
    name: str
    url: str
    count: int = 0
    percentage: str = "0"
    platform: str | None = None
    bold: bool = False
