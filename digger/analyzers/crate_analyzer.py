"""Analyze the unpacked packages of the package cache."""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn

from ..common import elapsed_timer
from ..details import CrateDetails
from ..manifest import ManifestError, load_manifest, load_name_version
from ..workspace import (
    CRATE_DETAILS_FILE,
    ERRORS_FILE,
    LOWER_CASE_FILE,
    MISSING_FILE,
    NAMELESS_ERRORS_FILE,
    RELEASED_FILE,
    Workspace,
)

logger = logging.getLogger(__name__)
console = Console()

MANIFEST = "Cargo.toml"
MANIFEST_LOWER = "cargo.toml"
STANDARD_FOLDERS = {"src", "tests", "examples", "benches"}


@dataclass
class AnalysisSummary:
    """The aggregated results of one analyser run."""

    crate_details: list[dict] = field(default_factory=list)
    released: list[dict] = field(default_factory=list)
    errors: dict[str, str] = field(default_factory=dict)
    nameless_errors: dict[str, str] = field(default_factory=dict)
    missing: list[str] = field(default_factory=list)
    in_lower_case: list[str] = field(default_factory=list)

    def files(self) -> dict[str, Any]:
        return {
            CRATE_DETAILS_FILE: self.crate_details,
            RELEASED_FILE: self.released,
            ERRORS_FILE: self.errors,
            NAMELESS_ERRORS_FILE: self.nameless_errors,
            MISSING_FILE: self.missing,
            LOWER_CASE_FILE: self.in_lower_case,
        }


def disk_size(root: Path) -> int:
    """Total size in bytes of all regular files below ``root``."""
    size = 0
    for path in root.rglob("*"):
        if path.is_file() and not path.is_symlink():
            try:
                size += path.stat().st_size
            except OSError:
                continue
    return size


def collect_markers(path: Path) -> CrateDetails:
    """Record which well-known files and folders a package ships."""
    names = {entry.name for entry in path.iterdir()}
    details = CrateDetails(
        folder=path.name,
        has_cargo_toml=MANIFEST in names,
        has_cargo_toml_in_lower_case=MANIFEST_LOWER in names,
        has_cargo_lock="Cargo.lock" in names,
        has_main_rs=(path / "src" / "main.rs").is_file(),
        has_build_rs="build.rs" in names,
        has_clippy_toml="clippy.toml" in names,
        has_dot_clippy_toml=".clippy.toml" in names,
        has_rustfmt_toml="rustfmt.toml" in names,
        has_dot_rustfmt_toml=".rustfmt.toml" in names,
        nonstandard_folders=sorted(
            entry.name
            for entry in path.iterdir()
            if entry.is_dir() and entry.name not in STANDARD_FOLDERS
        ),
    )
    return details


def manifest_path(path: Path, details: CrateDetails) -> Path | None:
    if details.has_cargo_toml:
        return path / MANIFEST
    if details.has_cargo_toml_in_lower_case:
        return path / MANIFEST_LOWER
    return None


class CrateAnalyzer:
    """Writes ``analyzed_crates/<folder>.json`` and the ``data/`` aggregates."""

    def __init__(self, workspace: Workspace):
        self.workspace = workspace

    def analyze_crate(self, path: Path, summary: AnalysisSummary) -> CrateDetails:
        """Analyze one package folder and record the outcome in ``summary``."""
        details = collect_markers(path)
        details.size = disk_size(path)

        manifest = manifest_path(path, details)
        if manifest is None:
            logger.warning("No Cargo.toml in %s", path.name)
            summary.missing.append(path.name)
            return details

        name = ""
        try:
            cargo = load_manifest(manifest)
            summary.released.append(cargo.to_json_dict())
            name = cargo.package.name
        except ManifestError as strict_error:
            logger.error("Reading %s failed: %s", manifest, strict_error)
            try:
                name, _version = load_name_version(manifest)
                summary.errors[name] = str(strict_error)
            except ManifestError as salvage_error:
                logger.error("Salvaging %s failed: %s", manifest, salvage_error)
                summary.nameless_errors[path.name] = str(salvage_error)

        if name and not details.has_cargo_toml:
            summary.in_lower_case.append(name)
        return details

    def analyze_all(self, limit: int = 0) -> AnalysisSummary:
        """Analyze every folder of the package cache (at most ``limit``)."""
        self.workspace.create_folders()
        summary = AnalysisSummary()

        if limit:
            logger.info("We are going to process only %d crates", limit)
        else:
            logger.info("We are going to process all the crates we find locally")

        folders = sorted(entry for entry in self.workspace.crates.iterdir() if entry.is_dir())
        if limit:
            folders = folders[:limit]

        with elapsed_timer("analyze_crates"), Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            task = progress.add_task("Analyzing crates...", total=len(folders))
            for folder in folders:
                progress.update(task, description=f"Analyzing {folder.name}...")
                details = self.analyze_crate(folder, summary)
                self._write_json(self.workspace.analysis_path(folder.name), details.model_dump())
                summary.crate_details.append(details.model_dump())
                progress.advance(task)

        for filename, data in summary.files().items():
            self._write_json(self.workspace.data / filename, data)

        console.print(
            f"[bold]Analyzed {len(folders)} crates[/bold]: "
            f"{len(summary.released)} parsed, {len(summary.errors)} errors, "
            f"{len(summary.nameless_errors)} nameless errors, {len(summary.missing)} missing"
        )
        return summary

    def _write_json(self, path: Path, data: Any) -> None:
        """Write data as JSON."""
        path.write_text(json.dumps(data, indent=2, default=str) + "\n", encoding="utf-8")

