"""Byte-fetch boundary: deliver a whole BAM file as one buffer."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import httpx

from ..constants import (
    DEFAULT_FETCH_TIMEOUT_SECONDS,
    DEFAULT_MAX_FILE_BYTES,
    REMOTE_FILE_SCHEMES,
)
from .validation import validate_remote_url

logger = logging.getLogger(__name__)


def _check_size(size: int, max_bytes: int, source: str) -> None:
    if size > max_bytes:
        raise ValueError(f"{source} is {size:,} bytes, exceeding the {max_bytes:,} byte limit")


async def _check_redirect(response: httpx.Response) -> None:
    """Apply the private-address check to every redirect hop, not only the first URL."""
    if not response.has_redirect_location:
        return
    target = str(response.url.join(response.headers["Location"]))
    if not target.startswith(REMOTE_FILE_SCHEMES):
        raise ValueError(f"Redirect to unsupported scheme blocked: {target}")
    validate_remote_url(target)
    logger.debug("Following redirect %s -> %s", response.url, target)


async def _fetch_remote(url: str, timeout: float, max_bytes: int) -> bytes:
    async with httpx.AsyncClient(
        timeout=timeout,
        follow_redirects=True,
        event_hooks={"response": [_check_redirect]},
    ) as client:
        async with client.stream("GET", url) as resp:
            resp.raise_for_status()

            declared = resp.headers.get("Content-Length")
            if declared is not None and declared.isdigit():
                _check_size(int(declared), max_bytes, url)

            # Content-Length may be absent or wrong; the running total is authoritative
            chunks: list[bytes] = []
            received = 0
            async for chunk in resp.aiter_bytes():
                received += len(chunk)
                _check_size(received, max_bytes, url)
                chunks.append(chunk)

    return b"".join(chunks)


def _read_local(path: str, max_bytes: int) -> bytes:
    file_path = Path(path)
    _check_size(file_path.stat().st_size, max_bytes, path)
    return file_path.read_bytes()


async def fetch_bytes(
    source: str,
    *,
    timeout: float = DEFAULT_FETCH_TIMEOUT_SECONDS,
    max_bytes: int = DEFAULT_MAX_FILE_BYTES,
) -> bytes:
    """Load the complete contents of a local file or HTTP(S) URL.

    Remote bodies are streamed and abandoned as soon as they pass
    ``max_bytes``. Redirects are followed only to public addresses.

    Args:
        source: Local path or http(s) URL.
        timeout: Request timeout in seconds for remote sources.
        max_bytes: Refuse sources larger than this.

    Returns:
        The raw (still BGZF-compressed) file bytes.

    Raises:
        httpx.HTTPError: The remote request failed.
        OSError: The local file could not be read.
        ValueError: The source exceeds ``max_bytes``, or a redirect points at
            a private/internal address.
    """
    if source.startswith(REMOTE_FILE_SCHEMES):
        logger.info("Fetching remote BAM: %s", source)
        data = await _fetch_remote(source, timeout, max_bytes)
    else:
        logger.info("Reading local BAM: %s", source)
        data = await asyncio.to_thread(_read_local, source, max_bytes)

    logger.debug("Fetched %d bytes from %s", len(data), source)
    return data
