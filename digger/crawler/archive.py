"""Safe extraction of gzip-compressed tar archives."""

import logging
import tarfile
from pathlib import Path

logger = logging.getLogger(__name__)


def is_safe_member(member: tarfile.TarInfo, extract_dir: Path) -> bool:
    """Reject absolute paths, ``..`` components, links and device files."""
    name = member.name
    if name.startswith("/") or name.startswith("\\"):
        return False
    if ".." in name.replace("\\", "/").split("/"):
        return False

    resolved = (extract_dir / name).resolve()
    try:
        resolved.relative_to(extract_dir.resolve())
    except ValueError:
        return False

    if member.issym() or member.islnk():
        return False
    return member.isfile() or member.isdir()


def safe_extract(archive: Path, extract_dir: Path) -> int:
    """Extract ``archive`` into ``extract_dir`` and return the number of files.

    Unsafe members are skipped with a warning. Raises ``tarfile.TarError``
    (or ``OSError``) when the archive itself is broken.
    """
    extract_dir.mkdir(parents=True, exist_ok=True)
    file_count = 0
    with tarfile.open(archive, "r:gz") as tar:
        for member in tar:
            if not is_safe_member(member, extract_dir):
                logger.warning("Skipping unsafe tar member: %s", member.name)
                continue
            tar.extract(member, path=extract_dir, set_attrs=False, filter="data")
            if member.isfile():
                file_count += 1
    return file_count


def single_root(extract_dir: Path) -> Path:
    """The one top-level entry of an extracted archive."""
    entries = list(extract_dir.iterdir())
    if len(entries) != 1 or not entries[0].is_dir():
        names = sorted(entry.name for entry in entries)
        raise tarfile.TarError(f"Expected a single top-level directory, found {names}")
    return entries[0]
