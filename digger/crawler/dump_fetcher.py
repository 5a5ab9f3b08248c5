"""Download the registry dump and unpack it into ``db_dump/``."""

import logging
import shutil
import tarfile
import tempfile
from datetime import datetime, timedelta
from pathlib import Path

import httpx

from ..common import FetchError, elapsed_timer
from ..workspace import Workspace
from .archive import safe_extract
from .http import download_to

logger = logging.getLogger(__name__)

DEFAULT_DUMP_URL = "https://static.crates.io/db-dump.tar.gz"


def candidate_years(now: datetime | None = None) -> set[str]:
    """Years the dated top-level folder may start with (today or yesterday)."""
    now = now or datetime.now()
    return {now.strftime("%Y"), (now - timedelta(days=1)).strftime("%Y")}


def find_dump_folder(extract_dir: Path, now: datetime | None = None) -> Path:
    years = candidate_years(now)
    matches = [
        entry
        for entry in sorted(extract_dir.iterdir())
        if entry.is_dir() and any(entry.name.startswith(year) for year in years)
    ]
    if len(matches) != 1:
        raise FetchError(
            f"Expected one dated folder in {extract_dir}, found {[m.name for m in matches]}"
        )
    return matches[0]


def fetch_and_extract(
    workspace: Workspace,
    client: httpx.Client,
    url: str = DEFAULT_DUMP_URL,
    now: datetime | None = None,
) -> Path:
    """Replace ``db_dump/`` with a fresh copy of the dump.

    The previous dump and archive are removed first, so a failed run can
    simply be repeated.
    """
    archive = workspace.dump_archive
    target = workspace.db_dump

    with elapsed_timer("fetch_and_extract"):
        try:
            if target.exists():
                logger.info("Removing previous dump %s", target)
                shutil.rmtree(target)
            if archive.exists():
                logger.info("Removing previous archive %s", archive)
                archive.unlink()
            archive.parent.mkdir(parents=True, exist_ok=True)

            download_to(client, url, archive)

            with tempfile.TemporaryDirectory(dir=workspace.temp) as tmp:
                extract_dir = Path(tmp)
                safe_extract(archive, extract_dir)
                extracted = find_dump_folder(extract_dir, now)
                logger.info("rename %s to %s", extracted, target)
                shutil.move(str(extracted), str(target))
        except (httpx.HTTPError, tarfile.TarError, OSError) as e:
            raise FetchError(f"Fetching the dump from {url} failed: {e}") from e

    return target
