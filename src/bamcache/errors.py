"""Error taxonomy for BAM decoding and alignment container misuse.

Data errors derive from ``BamDecodeError`` (itself a ``ValueError``) and are
fatal for the whole file: when one is raised, nothing decoded from that
buffer is kept. ``IllegalStateError`` signals API misuse, not bad data.
"""


class BamDecodeError(ValueError):
    """Base class for structural errors found while decoding a BAM buffer."""


class TruncatedInputError(BamDecodeError):
    """Fewer bytes remain than a block or header structure declares."""


class CorruptBlockError(BamDecodeError):
    """A BGZF block has a bad signature, size field, or payload."""


class InvalidMagicError(BamDecodeError):
    """The decompressed stream does not start with the BAM magic."""


class MalformedHeaderError(BamDecodeError):
    """A BAM header declares a negative length."""


class MalformedRecordError(BamDecodeError):
    """An alignment record's declared lengths disagree with the buffer."""


class IllegalStateError(RuntimeError):
    """An object was used out of its lifecycle order."""
