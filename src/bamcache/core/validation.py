"""Input validation for bamcache tool handlers.

Provides region parsing and the policy for which files and URLs may be
loaded (local directory allowlist, SSRF prevention for remote URLs).
"""

from __future__ import annotations

import ipaddress
import socket
from pathlib import Path
from urllib.parse import urlparse

from ..config import BamCacheConfig
from ..constants import MAX_REGION_SIZE, REMOTE_FILE_SCHEMES

# Input length limits
MAX_FILE_PATH_LENGTH = 2048
MAX_REGION_LENGTH = 200


def parse_region(region: str, max_size: int = MAX_REGION_SIZE) -> tuple[str, int, int]:
    """
    Parse a genomic region string into contig, start, end.

    Supports formats:
        - chr1:1000-2000
        - chr1:1,000-2,000
        - 1:1000-2000

    Coordinates are taken as 0-based, half-open.

    Returns:
        Tuple of (contig, start, end)

    Raises:
        ValueError: If region format is invalid or exceeds ``max_size``.
    """
    if len(region) > MAX_REGION_LENGTH:
        raise ValueError(f"Region string too long (max {MAX_REGION_LENGTH} characters)")

    region = region.replace(",", "")
    try:
        contig, coords = region.rsplit(":", 1)
        start_str, end_str = coords.split("-")
        start = int(start_str)
        end = int(end_str)
    except (ValueError, AttributeError) as e:
        raise ValueError(
            f"Invalid region format: '{region}'. Expected format: 'chr1:1000-2000'"
        ) from e

    if not contig:
        raise ValueError(f"Invalid region format: '{region}'. Missing contig name")
    if start < 0:
        raise ValueError(f"Start position must be non-negative, got {start}")
    if end <= start:
        raise ValueError(f"End position ({end}) must be greater than start ({start})")

    region_size = end - start
    if region_size > max_size:
        raise ValueError(
            f"Region size {region_size:,}bp exceeds maximum allowed {max_size:,}bp. "
            f"Please request a smaller region."
        )

    return contig, start, end


def _is_private_ip(addr: str) -> bool:
    """Check if an IP address is private, loopback, or link-local."""
    try:
        ip = ipaddress.ip_address(addr)
    except ValueError:
        return True

    return ip.is_private or ip.is_loopback or ip.is_link_local or ip.is_reserved


def validate_remote_url(url: str) -> None:
    """Validate a remote URL is safe to fetch.

    Resolves the hostname and blocks private/internal address ranges.

    Raises:
        ValueError: If the URL has no host or targets a private address.
    """
    parsed = urlparse(url)
    hostname = parsed.hostname

    if not hostname:
        raise ValueError("Remote URL has no hostname")

    try:
        addr_infos = socket.getaddrinfo(hostname, parsed.port or 443, proto=socket.IPPROTO_TCP)
    except socket.gaierror as e:
        raise ValueError(f"Cannot resolve hostname '{hostname}': {e}") from e

    if not addr_infos:
        raise ValueError(f"No addresses found for hostname '{hostname}'")

    for addr_info in addr_infos:
        if _is_private_ip(str(addr_info[4][0])):
            raise ValueError("Remote URL resolves to private/internal address (blocked)")


def validate_path(file_path: str, config: BamCacheConfig) -> None:
    """Validate that a BAM path or URL may be loaded under ``config``.

    Raises:
        ValueError: If the path is not allowed.
    """
    if len(file_path) > MAX_FILE_PATH_LENGTH:
        raise ValueError(f"File path too long (max {MAX_FILE_PATH_LENGTH} characters)")

    if "://" in file_path:
        if not config.allow_remote_files:
            raise ValueError("Remote files are disabled")
        if not file_path.startswith(REMOTE_FILE_SCHEMES):
            raise ValueError(f"Scheme not supported for remote file: {file_path}")
        validate_remote_url(file_path)
        return

    if not file_path.lower().endswith(".bam"):
        raise ValueError("Unsupported file type. Only .bam files can be loaded")

    if config.allowed_directories:
        try:
            abs_path = Path(file_path).resolve()
        except OSError as e:
            raise ValueError(f"Invalid path: {file_path}") from e

        for d in config.allowed_directories:
            try:
                if abs_path.is_relative_to(Path(d).resolve()):
                    return
            except OSError:
                continue

        raise ValueError("Path is not in allowed directories")
