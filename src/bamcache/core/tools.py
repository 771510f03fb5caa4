"""MCP tool handlers for bamcache."""

from __future__ import annotations

import json
import logging
from typing import Any

from ..config import BamCacheConfig
from ..errors import BamDecodeError
from .reader import NonIndexedBamReader
from .registry import ReaderRegistry
from .serialization import serialize_container
from .validation import parse_region, validate_path

logger = logging.getLogger(__name__)

# Module-level singleton so decoded files are shared across tool calls
_registry: ReaderRegistry | None = None


def get_registry(config: BamCacheConfig) -> ReaderRegistry:
    """Get or create the bounded registry of decoded readers."""
    global _registry
    if _registry is None:
        _registry = ReaderRegistry(config.max_cached_files, config.cached_file_ttl)
    return _registry


def get_reader(file_path: str, config: BamCacheConfig) -> NonIndexedBamReader:
    """Get or create the reader for ``file_path``."""
    registry = get_registry(config)
    reader = registry.get(file_path)
    if reader is None:
        reader = NonIndexedBamReader(file_path, config)
        registry.set(file_path, reader)
    return reader


def clear_readers() -> int:
    """Drop every cached reader and the registry. Returns how many were dropped."""
    global _registry
    if _registry is None:
        return 0
    count = _registry.clear()
    _registry = None
    return count


async def _loaded_reader(file_path: str, config: BamCacheConfig) -> NonIndexedBamReader:
    validate_path(file_path, config)
    reader = get_reader(file_path, config)
    try:
        await reader.load()
    except BamDecodeError as e:
        # A corrupt file stays unusable; drop it so nothing half-built is reused
        get_registry(config).pop(file_path)
        logger.warning("Failed to decode %s: %s", file_path, e)
        raise
    return reader


def _text(payload: Any) -> dict:
    return {"content": [{"type": "text", "text": json.dumps(payload)}]}


# -- Tool Handlers -----------------------------------------------------------


async def handle_list_contigs(args: dict[str, Any], config: BamCacheConfig) -> dict:
    """List references declared in the BAM header with their cached read counts."""
    file_path = args["file_path"]
    reader = await _loaded_reader(file_path, config)
    header = reader.header
    cache = reader.cache

    contigs = [
        {"name": name, "length": length, "alignments": cache.count(name)}
        for name, length in zip(header.chr_names, header.chr_lengths, strict=True)
    ]
    return _text({"contigs": contigs, "unplaced": len(cache.unplaced)})


async def handle_query_alignments(args: dict[str, Any], config: BamCacheConfig) -> dict:
    """Return sampled alignments, pairs and coverage summary for a region."""
    file_path = args["file_path"]
    contig, start, end = parse_region(args["region"], config.max_region_size)
    include_sequence = bool(args.get("include_sequence", False))

    reader = await _loaded_reader(file_path, config)
    container = reader.query(contig, start, end)
    logger.debug(
        "Query %s:%d-%d accepted %d of %d alignments",
        contig,
        start,
        end,
        len(container),
        container.pushed_count,
    )
    return _text(serialize_container(container, include_sequence=include_sequence))


async def handle_get_coverage(args: dict[str, Any], config: BamCacheConfig) -> dict:
    """Return depth statistics for a region."""
    file_path = args["file_path"]
    contig, start, end = parse_region(args["region"], config.max_region_size)

    reader = await _loaded_reader(file_path, config)
    container = reader.query(contig, start, end)

    stats = {"region": f"{contig}:{start}-{end}", **container.coverage_summary()}
    return _text(stats)
