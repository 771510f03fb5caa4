"""bamcache: decode whole BAM files once and answer range queries from memory."""

from .config import BamCacheConfig
from .core import (
    Alignment,
    AlignmentContainer,
    FeatureCache,
    Header,
    NonIndexedBamReader,
    decode_bam,
)
from .errors import (
    BamDecodeError,
    CorruptBlockError,
    IllegalStateError,
    InvalidMagicError,
    MalformedHeaderError,
    MalformedRecordError,
    TruncatedInputError,
)

__version__ = "0.1.0"

__all__ = [
    "Alignment",
    "AlignmentContainer",
    "BamCacheConfig",
    "BamDecodeError",
    "CorruptBlockError",
    "FeatureCache",
    "Header",
    "IllegalStateError",
    "InvalidMagicError",
    "MalformedHeaderError",
    "MalformedRecordError",
    "NonIndexedBamReader",
    "TruncatedInputError",
    "decode_bam",
]
