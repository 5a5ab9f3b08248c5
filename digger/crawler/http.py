"""HTTP client shared by the network stages."""

import logging
from pathlib import Path

import httpx

from .. import __version__

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = f"Crate Digger {__version__} https://rust-digger.code-maven.com/"
DEFAULT_TIMEOUT = 60.0
CHUNK_SIZE = 65_536


def create_client(config: dict | None = None) -> httpx.Client:
    """Build a client with the configured User-Agent and timeout."""
    http_config = (config or {}).get("http", {})
    return httpx.Client(
        headers={"User-Agent": http_config.get("user_agent", DEFAULT_USER_AGENT)},
        timeout=float(http_config.get("timeout", DEFAULT_TIMEOUT)),
        follow_redirects=True,
    )


def download_to(client: httpx.Client, url: str, target: Path) -> int:
    """Stream ``url`` into ``target`` and return the number of bytes written.

    Raises ``httpx.HTTPStatusError`` for any status other than 200.
    """
    logger.info("downloading url %s", url)
    total = 0
    with client.stream("GET", url) as response:
        if response.status_code != 200:
            raise httpx.HTTPStatusError(
                f"status was {response.status_code} when fetching {url}",
                request=response.request,
                response=response,
            )
        with target.open("wb") as fh:
            for chunk in response.iter_bytes(CHUNK_SIZE):
                fh.write(chunk)
                total += len(chunk)
    logger.info("Total downloaded: %d", total)
    return total


def check_url(client: httpx.Client, url: str) -> int:
    """Status code of a GET to ``url``; 500 when the request itself fails."""
    logger.info("Checking url %s", url)
    try:
        response = client.get(url)
    except httpx.HTTPError as e:
        logger.error("Could not get '%s': %s", url, e)
        return 500
    logger.info("Status: %d", response.status_code)
    return response.status_code
