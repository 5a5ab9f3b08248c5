"""Download the newest release of every package into the package cache."""

import logging
import shutil
import tarfile
import tempfile
from dataclasses import dataclass
from pathlib import Path

import httpx
from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn

from ..models import Crate, CrateVersion
from ..store.dump_reader import latest_versions
from ..workspace import Workspace
from .archive import safe_extract, single_root
from .http import download_to

logger = logging.getLogger(__name__)
console = Console()

DEFAULT_REGISTRY = "https://crates.io"


@dataclass
class DownloadStats:
    attempted: int = 0
    downloaded: int = 0
    skipped: int = 0
    failed: int = 0
    removed: int = 0


class CrateDownloader:
    """Populates ``crates/<name>-<version>/`` from the registry."""

    def __init__(
        self,
        workspace: Workspace,
        client: httpx.Client,
        registry_base: str = DEFAULT_REGISTRY,
    ):
        self.workspace = workspace
        self.client = client
        self.registry_base = registry_base.rstrip("/")

    def download_url(self, name: str, version: str) -> str:
        return f"{self.registry_base}/api/v1/crates/{name}/{version}/download"

    def cache_folder(self, name: str, version: str) -> Path:
        return self.workspace.crates / f"{name}-{version}"

    def download_crate(self, name: str, version: str) -> bool:
        """Fetch and unpack one archive; False when it had to be skipped.

        The archive is unpacked in a temporary directory and its single root
        folder is renamed into the cache, so a failure never leaves a
        partial folder behind.
        """
        url = self.download_url(name, version)
        self.workspace.temp.mkdir(parents=True, exist_ok=True)
        try:
            with tempfile.TemporaryDirectory(dir=self.workspace.temp) as tmp:
                tmp_path = Path(tmp)
                archive = tmp_path / "download.tar.gz"
                download_to(self.client, url, archive)

                extract_dir = tmp_path / "extract"
                safe_extract(archive, extract_dir)
                root = single_root(extract_dir)

                target = self.workspace.crates / root.name
                if target.exists():
                    logger.warning("%s already exists, not replacing it with %s", target, url)
                    return False
                root.rename(target)
                logger.info("extracted %s", root.name)
        except httpx.HTTPError as e:
            logger.error("Download of %s failed: %s", url, e)
            return False
        except (tarfile.TarError, OSError) as e:
            logger.error("Could not unpack %s: %s", url, e)
            return False
        return True

    def download_crates(
        self,
        crates: list[Crate],
        versions: list[CrateVersion],
        limit: int = 0,
    ) -> DownloadStats:
        """Download the newest version of each package not yet in the cache."""
        stats = DownloadStats()
        latest = latest_versions(versions)
        self.workspace.crates.mkdir(parents=True, exist_ok=True)

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TextColumn("{task.completed}/{task.total}"),
            console=console,
        ) as progress:
            task = progress.add_task("Downloading crates...", total=len(crates))

            for krate in crates:
                if limit and stats.attempted >= limit:
                    break
                progress.advance(task)

                version = latest.get(krate.id)
                if version is None:
                    logger.error("Crate %s (id %s) has no versions", krate.name, krate.id)
                    stats.failed += 1
                    continue

                folder = self.cache_folder(krate.name, version.num)
                if folder.exists():
                    logger.debug("%s already exists. Skipping download", folder)
                    stats.skipped += 1
                    continue

                stats.attempted += 1
                if self.download_crate(krate.name, version.num):
                    stats.downloaded += 1
                else:
                    stats.failed += 1

        return stats

    def remove_old_versions(self, crates: list[Crate], versions: list[CrateVersion]) -> int:
        """Delete cache folders that are not the newest version of any package."""
        latest = latest_versions(versions)
        newest = {
            f"{krate.name}-{latest[krate.id].num}"
            for krate in crates
            if krate.id in latest
        }

        removed = 0
        if not self.workspace.crates.exists():
            return removed
        for entry in self.workspace.crates.iterdir():
            if entry.name in newest:
                continue
            logger.info("removing old crate: %s", entry)
            try:
                if entry.is_dir():
                    shutil.rmtree(entry)
                else:
                    entry.unlink()
                removed += 1
            except OSError as e:
                logger.error("Could not remove %s: %s", entry, e)
        return removed
