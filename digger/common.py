"""Shared helpers: URL parsing, percentages, timers and error types."""

import logging
import re
import time
from contextlib import contextmanager
from typing import Iterator

logger = logging.getLogger(__name__)

REPO_URL = re.compile(r"^https://(github|gitlab)\.com/([^/]+)/([^/]+)/?.*$", re.IGNORECASE)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S.%f"


class DiggerError(Exception):
    """Fatal error that aborts the current stage."""


class WorkspaceError(DiggerError):
    """Missing or misconfigured workspace or configuration."""


class DumpError(DiggerError):
    """The registry dump is missing or a row could not be parsed."""


class FetchError(DiggerError):
    """Downloading or unpacking the registry dump failed."""


def get_owner_and_repo(url: str) -> tuple[str, str, str]:
    """Split a GitHub/GitLab URL into lower-cased ``(host, owner, repo)``.

    Returns three empty strings when the URL is not on a recognised host.
    """
    match = REPO_URL.match(url)
    if match is None:
        logger.warning("No match for repo in '%s'", url)
        return "", "", ""
    host, owner, repo = (part.lower() for part in match.groups())
    return host, owner, repo


def percentage(num: int, total: int) -> str:
    """Return ``floor(10000 * num / total) / 100`` as a short decimal string.

    >>> percentage(1234, 10000)
    '12.34'
    >>> percentage(20, 100)
    '20'
    """
    if total == 0:
        return "0"
    hundredths = 10000 * num // total
    whole, fraction = divmod(hundredths, 100)
    if fraction == 0:
        return str(whole)
    return f"{whole}.{fraction:02d}".rstrip("0")


@contextmanager
def elapsed_timer(name: str) -> Iterator[None]:
    """Log the start and the elapsed milliseconds of a block."""
    logger.info("START %s", name)
    start = time.monotonic()
    try:
        yield
    finally:
        elapsed = int((time.monotonic() - start) * 1000)
        logger.info("ENDED %s Elapsed time: %d", name, elapsed)
