"""On-disk workspace shared by all pipeline stages."""

from dataclasses import dataclass
from pathlib import Path

from .common import WorkspaceError

DUMP_TABLES = ("crates", "users", "teams", "crate_owners", "versions")

# Aggregates written to data/ by the package analyser.
CRATE_DETAILS_FILE = "crate_details.json"
RELEASED_FILE = "released_cargo_toml.json"
ERRORS_FILE = "released_cargo_toml_errors.json"
NAMELESS_ERRORS_FILE = "released_cargo_toml_errors_nameless.json"
MISSING_FILE = "released_cargo_toml_missing.json"
LOWER_CASE_FILE = "released_cargo_toml_in_lower_case.json"


def build_path(root: Path, parts: list[str] | tuple[str, ...], extension: str | None = None) -> Path:
    """Join ``parts`` onto ``root`` and append ``.extension`` literally.

    The suffix is appended rather than substituted because package folder
    names such as ``serde-1.0.0`` contain dots.
    """
    path = Path(root)
    for part in parts:
        path = path / part
    if extension:
        path = path.with_name(f"{path.name}.{extension}")
    return path


@dataclass(frozen=True)
class Workspace:
    """Paths of the workspace layout.

    Every stage owns exactly one of these trees and only reads the others.
    """

    root: Path

    @property
    def db_dump(self) -> Path:
        return self.root / "db_dump"

    @property
    def dump_data(self) -> Path:
        return self.db_dump / "data"

    @property
    def crates(self) -> Path:
        return self.root / "crates"

    @property
    def repos(self) -> Path:
        return self.root / "repos"

    @property
    def repo_details(self) -> Path:
        return self.root / "repo_details"

    @property
    def analyzed_crates(self) -> Path:
        return self.root / "analyzed_crates"

    @property
    def data(self) -> Path:
        return self.root / "data"

    @property
    def collected_data(self) -> Path:
        return self.root / "collected_data"

    @property
    def site(self) -> Path:
        return self.root / "_site"

    @property
    def temp(self) -> Path:
        return self.root / "temp"

    @property
    def dump_archive(self) -> Path:
        return self.temp / "db-dump.tar.gz"

    def table(self, name: str) -> Path:
        """Path of one CSV table of the dump."""
        if name not in DUMP_TABLES:
            raise WorkspaceError(f"Unknown dump table '{name}'")
        return self.dump_data / f"{name}.csv"

    def analysis_path(self, folder_name: str) -> Path:
        """Per-package analysis file for the cache folder ``folder_name``."""
        return build_path(self.analyzed_crates, [folder_name], "json")

    def create_folders(self) -> None:
        """Create the directories every stage expects to exist."""
        try:
            for path in (
                self.root,
                self.crates,
                self.repos,
                self.repo_details,
                self.analyzed_crates,
                self.data,
                self.collected_data,
                self.temp,
            ):
                path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise WorkspaceError(f"Could not create workspace folders in {self.root}: {e}") from e
