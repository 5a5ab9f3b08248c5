"""Network stages: dump fetcher, package downloader and repository cloner."""

from .crate_downloader import CrateDownloader
from .dump_fetcher import fetch_and_extract
from .http import create_client
from .repo_manager import RepoManager

__all__ = ["CrateDownloader", "RepoManager", "create_client", "fetch_and_extract"]
