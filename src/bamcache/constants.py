"""Shared constants for bamcache runtime defaults and BAM format values.

This module is the single source of truth for default values consumed across
configuration loading, decoding, sampling, and the tool layer.
"""

from __future__ import annotations

# Networking defaults
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8000
DEFAULT_TRANSPORT = "stdio"
VALID_TRANSPORTS = ("stdio", "sse", "streamable-http")
REMOTE_FILE_SCHEMES = ("http://", "https://")

# Fetch limits
DEFAULT_FETCH_TIMEOUT_SECONDS = 60.0
DEFAULT_MAX_FILE_BYTES = 1 << 30  # 1 GiB

# Sampling defaults for alignment containers
DEFAULT_SAMPLING_WINDOW_SIZE = 100
DEFAULT_SAMPLING_DEPTH = 1000
DEFAULT_PAIRS_SUPPORTED = True

# Read filter defaults
DEFAULT_FILTER_DUPLICATES = True
DEFAULT_FILTER_VENDOR_FAILED = True
DEFAULT_FILTER_SECONDARY = False
DEFAULT_FILTER_SUPPLEMENTARY = False
DEFAULT_MIN_MAPQ = 0

# Decoded-file registry bounds for the tool layer
DEFAULT_MAX_CACHED_FILES = 8
DEFAULT_CACHED_FILE_TTL_SECONDS = 3600.0  # 1 hour

# Maximum region size to prevent unbounded coverage arrays
MAX_REGION_SIZE = 1_000_000  # 1 Mbp

DEFAULT_LOG_LEVEL = "INFO"

# -- BAM format -----------------------------------------------------------

BAM_MAGIC = b"BAM\x01"

# BGZF block framing
BGZF_MAX_BLOCK_PAYLOAD = 0xFF00
BGZF_HEADER_SIZE = 18  # fixed gzip header + XLEN + BC subfield
BGZF_FOOTER_SIZE = 8  # CRC32 + ISIZE
BGZF_EOF = bytes.fromhex("1f8b08040000000000ff0600424302001b0003000000000000000000")

# Fixed-length portion of an alignment record, after the block_size field
RECORD_FIXED_SIZE = 32

CIGAR_OPS = "MIDNSHP=X"
# Operations that consume reference bases: M, D, N, =, X
REFERENCE_CONSUMING_OPS = frozenset("MDN=X")
# Operations that consume query bases: M, I, S, =, X
QUERY_CONSUMING_OPS = frozenset("MIS=X")
# Operations that place read bases on the reference: M, =, X
ALIGNED_BLOCK_OPS = frozenset("M=X")

SEQUENCE_CODES = "=ACMGRSVTWYHKDBN"
QUALITY_NOT_STORED = 0xFF

# SAM flag bits
FLAG_PAIRED = 0x1
FLAG_PROPER_PAIR = 0x2
FLAG_UNMAPPED = 0x4
FLAG_MATE_UNMAPPED = 0x8
FLAG_REVERSE = 0x10
FLAG_MATE_REVERSE = 0x20
FLAG_FIRST_OF_PAIR = 0x40
FLAG_SECOND_OF_PAIR = 0x80
FLAG_SECONDARY = 0x100
FLAG_VENDOR_FAILED = 0x200
FLAG_DUPLICATE = 0x400
FLAG_SUPPLEMENTARY = 0x800

# Mitochondrial spellings that alias each other
MITOCHONDRIAL_NAMES = ("chrM", "chrMT", "M", "MT")
