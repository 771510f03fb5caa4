"""Whole-file BAM reader: decode once, answer range queries from memory."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from ..config import BamCacheConfig
from ..errors import IllegalStateError
from . import bgzf
from .cache import FeatureCache
from .container import AlignmentContainer, ReadFilter
from .fetch import fetch_bytes
from .header import Header, decode_header
from .records import decode_records

logger = logging.getLogger(__name__)

Fetcher = Callable[[str], Awaitable[bytes]]


@dataclass(frozen=True)
class DecodedBam:
    """Header and alignment cache for one fully decoded BAM buffer."""

    header: Header
    cache: FeatureCache


def decode_bam(data: bytes) -> DecodedBam:
    """Decompress and decode a complete BGZF BAM buffer.

    Runs to completion or raises; a failure never yields a partial cache.

    Raises:
        BamDecodeError: Any structural problem in the blocks, header, or records.
    """
    raw = bgzf.decompress(data)
    header, offset = decode_header(raw)
    alignments = decode_records(raw, offset, header.chr_names)
    cache = FeatureCache.build(alignments)
    logger.info(
        "Decoded %d alignments on %d references (%d uncompressed bytes)",
        len(alignments),
        len(header.chr_names),
        len(raw),
    )
    return DecodedBam(header=header, cache=cache)


def read_filter_from_config(config: BamCacheConfig) -> ReadFilter:
    return ReadFilter(
        filter_duplicates=config.filter_duplicates,
        filter_vendor_failed=config.filter_vendor_failed,
        filter_secondary=config.filter_secondary,
        filter_supplementary=config.filter_supplementary,
        min_mapq=config.min_mapq,
    )


class NonIndexedBamReader:
    """Reads an entire BAM file and serves queries from the decoded cache.

    The file is fetched and decoded once, on first use; every later query is
    answered from memory. A failed decode leaves the reader unloaded, so no
    alignments from a corrupt file are ever served.
    """

    def __init__(
        self,
        source: str | None = None,
        config: BamCacheConfig | None = None,
        fetcher: Fetcher | None = None,
    ):
        self.source = source
        self.config = config or BamCacheConfig()
        self.read_filter = read_filter_from_config(self.config)
        self._fetcher = fetcher
        self._decoded: DecodedBam | None = None
        self._lock = asyncio.Lock()

    @property
    def is_loaded(self) -> bool:
        return self._decoded is not None

    @property
    def header(self) -> Header:
        return self._require_loaded().header

    @property
    def cache(self) -> FeatureCache:
        return self._require_loaded().cache

    def _require_loaded(self) -> DecodedBam:
        if self._decoded is None:
            raise IllegalStateError("BAM file has not been loaded")
        return self._decoded

    def load_bytes(self, data: bytes) -> None:
        """Decode ``data`` and install the result. No-op once loaded."""
        if self._decoded is None:
            self._decoded = decode_bam(data)

    async def _fetch(self) -> bytes:
        if self.source is None:
            raise IllegalStateError("Reader has no source to fetch")
        if self._fetcher is not None:
            return await self._fetcher(self.source)
        return await fetch_bytes(
            self.source,
            timeout=self.config.fetch_timeout,
            max_bytes=self.config.max_file_bytes,
        )

    async def load(self) -> None:
        """Fetch and decode the source once; concurrent callers wait for the first."""
        async with self._lock:
            if self._decoded is not None:
                return
            data = await self._fetch()
            self._decoded = await asyncio.to_thread(decode_bam, data)

    def query(self, chr_name: str, start: int, end: int) -> AlignmentContainer:
        """Collect alignments overlapping ``[start, end)`` into a finished container.

        ``chr_name`` may use either spelling the alias table knows about.
        """
        decoded = self._require_loaded()
        query_chr = decoded.header.resolve(chr_name)
        container = AlignmentContainer(
            chr_name,
            start,
            end,
            self.config.sampling_window_size,
            self.config.sampling_depth,
            self.config.pairs_supported,
        )
        for alignment in decoded.cache.query(query_chr, start, end):
            if self.read_filter.passes(alignment):
                container.push(alignment)
        container.finish()
        return container

    async def read_alignments(self, chr_name: str, start: int, end: int) -> AlignmentContainer:
        await self.load()
        return self.query(chr_name, start, end)
