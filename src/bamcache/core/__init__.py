"""Core BAM decode and alignment cache modules."""

from .bgzf import compress, decompress
from .cache import FeatureCache
from .container import AlignmentContainer, DownsampledInterval, PairedAlignment, ReadFilter
from .fetch import fetch_bytes
from .header import Header, build_alias_table, decode_header
from .reader import DecodedBam, NonIndexedBamReader, decode_bam
from .records import Alignment, MateInfo, decode_records
from .registry import ReaderRegistry
from .serialization import serialize_container
from .tools import (
    get_reader,
    handle_get_coverage,
    handle_list_contigs,
    handle_query_alignments,
)
from .validation import parse_region, validate_path, validate_remote_url

__all__ = [
    "Alignment",
    "AlignmentContainer",
    "DecodedBam",
    "DownsampledInterval",
    "FeatureCache",
    "Header",
    "MateInfo",
    "NonIndexedBamReader",
    "PairedAlignment",
    "ReadFilter",
    "ReaderRegistry",
    "build_alias_table",
    "compress",
    "decode_bam",
    "decode_header",
    "decode_records",
    "decompress",
    "fetch_bytes",
    "get_reader",
    "handle_get_coverage",
    "handle_list_contigs",
    "handle_query_alignments",
    "parse_region",
    "serialize_container",
    "validate_path",
    "validate_remote_url",
]
