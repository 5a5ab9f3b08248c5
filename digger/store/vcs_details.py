"""Accessor for the per-repository detail files."""

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from ..common import get_owner_and_repo
from ..details import VcsDetails
from ..workspace import build_path

logger = logging.getLogger(__name__)


def details_path_for(repo_details_root: Path, host: str, owner: str, repo: str) -> Path:
    return build_path(repo_details_root, [host, owner, repo], "json")


def get_details_path(repo_details_root: Path, url: str) -> Path | None:
    """``<root>/<host>/<owner>/<repo>.json`` for a recognised URL, else None."""
    if not url:
        return None
    host, owner, repo = get_owner_and_repo(url)
    if not repo:
        return None
    return details_path_for(repo_details_root, host, owner, repo)


def read_details_file(path: Path) -> VcsDetails:
    """Load one detail file; a missing or malformed file gives a blank record."""
    if not path.exists():
        return VcsDetails()
    try:
        return VcsDetails.model_validate_json(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, ValidationError) as e:
        logger.error("Error reading details from '%s' %s", path, e)
        return VcsDetails()


def load_vcs_details(repo_details_root: Path, url: str) -> VcsDetails:
    """Details of the repository at ``url``; never fails."""
    path = get_details_path(repo_details_root, url)
    if path is None:
        return VcsDetails()
    return read_details_file(path)


def write_details_file(path: Path, details: VcsDetails) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    logger.info("Saving details to %s", path)
    path.write_text(json.dumps(details.model_dump()) + "\n", encoding="utf-8")


def save_vcs_details(repo_details_root: Path, url: str, details: VcsDetails) -> None:
    path = get_details_path(repo_details_root, url)
    if path is None:
        logger.warning("Not saving details for unrecognised repository '%s'", url)
        return
    write_details_file(path, details)
