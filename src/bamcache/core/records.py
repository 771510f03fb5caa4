"""BAM alignment record decoding.

Each record is prefixed with its own ``block_size``, so the decoder always
knows where the next record starts even when it cannot interpret every field
of the current one (e.g. an optional tag with an unknown type code).
"""

from __future__ import annotations

import logging
import struct
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from ..constants import (
    ALIGNED_BLOCK_OPS,
    CIGAR_OPS,
    FLAG_DUPLICATE,
    FLAG_FIRST_OF_PAIR,
    FLAG_MATE_REVERSE,
    FLAG_MATE_UNMAPPED,
    FLAG_PAIRED,
    FLAG_PROPER_PAIR,
    FLAG_REVERSE,
    FLAG_SECOND_OF_PAIR,
    FLAG_SECONDARY,
    FLAG_SUPPLEMENTARY,
    FLAG_UNMAPPED,
    FLAG_VENDOR_FAILED,
    QUALITY_NOT_STORED,
    RECORD_FIXED_SIZE,
    REFERENCE_CONSUMING_OPS,
    SEQUENCE_CODES,
)
from ..errors import MalformedRecordError

logger = logging.getLogger(__name__)

_FIXED = struct.Struct("<iiIIiiii")

# Scalar tag types: struct format per type code
_TAG_SCALARS = {
    "A": "c",
    "c": "b",
    "C": "B",
    "s": "h",
    "S": "H",
    "i": "i",
    "I": "I",
    "f": "f",
}
_TAG_ARRAY_TYPES = {"c": "b", "C": "B", "s": "h", "S": "H", "i": "i", "I": "I", "f": "f"}

# Byte -> two bases lookup for the 4-bit packed sequence
_BASE_PAIRS = [SEQUENCE_CODES[b >> 4] + SEQUENCE_CODES[b & 0x0F] for b in range(256)]


@dataclass(frozen=True, slots=True)
class MateInfo:
    """Position of a read's mate, as recorded on the read itself."""

    ref_id: int
    chr: str | None
    position: int
    strand: str


@dataclass(frozen=True, slots=True)
class Alignment:
    """A single decoded BAM record.

    Immutable once decoded: ``tags`` is a read-only view over a private copy and
    array-valued tags are tuples.
    """

    ref_id: int
    chr: str | None
    start: int
    end: int
    flags: int
    mapping_quality: int
    cigar: tuple[tuple[int, str], ...]
    read_name: str
    sequence: str
    qualities: tuple[int, ...] | None
    tags: Mapping[str, Any] = field(default_factory=dict)
    mate: MateInfo | None = None
    insert_size: int = 0

    def __post_init__(self) -> None:
        if not isinstance(self.tags, MappingProxyType):
            object.__setattr__(self, "tags", MappingProxyType(dict(self.tags)))

    @property
    def is_paired(self) -> bool:
        return bool(self.flags & FLAG_PAIRED)

    @property
    def is_proper_pair(self) -> bool:
        return bool(self.flags & FLAG_PROPER_PAIR)

    @property
    def is_mapped(self) -> bool:
        return not self.flags & FLAG_UNMAPPED and self.ref_id >= 0

    @property
    def is_mate_mapped(self) -> bool:
        return self.is_paired and not self.flags & FLAG_MATE_UNMAPPED

    @property
    def is_reverse(self) -> bool:
        return bool(self.flags & FLAG_REVERSE)

    @property
    def is_mate_reverse(self) -> bool:
        return bool(self.flags & FLAG_MATE_REVERSE)

    @property
    def is_first_of_pair(self) -> bool:
        return bool(self.flags & FLAG_FIRST_OF_PAIR)

    @property
    def is_second_of_pair(self) -> bool:
        return bool(self.flags & FLAG_SECOND_OF_PAIR)

    @property
    def is_secondary(self) -> bool:
        return bool(self.flags & FLAG_SECONDARY)

    @property
    def is_vendor_failed(self) -> bool:
        return bool(self.flags & FLAG_VENDOR_FAILED)

    @property
    def is_duplicate(self) -> bool:
        return bool(self.flags & FLAG_DUPLICATE)

    @property
    def is_supplementary(self) -> bool:
        return bool(self.flags & FLAG_SUPPLEMENTARY)

    @property
    def strand(self) -> str:
        return "-" if self.is_reverse else "+"

    @property
    def length_on_ref(self) -> int:
        return self.end - self.start

    @property
    def cigar_string(self) -> str:
        if not self.cigar:
            return "*"
        return "".join(f"{length}{op}" for length, op in self.cigar)

    def blocks(self) -> Iterator[tuple[int, int]]:
        """Yield (reference start, length) for each stretch of aligned bases."""
        pos = self.start
        for length, op in self.cigar:
            if op in ALIGNED_BLOCK_OPS:
                yield pos, length
            if op in REFERENCE_CONSUMING_OPS:
                pos += length


def reference_length(cigar: Sequence[tuple[int, str]]) -> int:
    """Sum the lengths of CIGAR operations that consume reference bases."""
    return sum(length for length, op in cigar if op in REFERENCE_CONSUMING_OPS)


def _cigar_op(packed: int, where: str) -> tuple[int, str]:
    code = packed & 0x0F
    if code >= len(CIGAR_OPS):
        raise MalformedRecordError(f"Invalid CIGAR operation code {code} {where}")
    return packed >> 4, CIGAR_OPS[code]


def decode_cigar(data: bytes, offset: int, n_ops: int) -> tuple[tuple[int, str], ...]:
    where = f"at offset {offset}"
    packed_ops = struct.unpack_from(f"<{n_ops}I", data, offset)
    return tuple(_cigar_op(packed, where) for packed in packed_ops)


def decode_sequence(data: bytes, offset: int, l_seq: int) -> str:
    packed = data[offset : offset + (l_seq + 1) // 2]
    return "".join(_BASE_PAIRS[b] for b in packed)[:l_seq]


def _read_cstring(data: bytes, offset: int, limit: int) -> tuple[str, int]:
    end = data.find(b"\x00", offset, limit)
    if end < 0:
        raise MalformedRecordError(f"Unterminated string at offset {offset}")
    return data[offset:end].decode("latin-1"), end + 1


def decode_tags(data: bytes, offset: int, limit: int) -> dict[str, Any]:
    """Decode the optional-tag region ``data[offset:limit]``.

    An unrecognized type code ends tag parsing for this record; the tags read
    so far are kept. A payload that runs past ``limit`` is a malformed record.
    """
    tags: dict[str, Any] = {}
    while offset + 3 <= limit:
        tag = data[offset : offset + 2].decode("latin-1")
        type_code = chr(data[offset + 2])
        offset += 3

        if type_code in _TAG_SCALARS:
            fmt = "<" + _TAG_SCALARS[type_code]
            size = struct.calcsize(fmt)
            if offset + size > limit:
                raise MalformedRecordError(f"Tag {tag} runs past end of record")
            (value,) = struct.unpack_from(fmt, data, offset)
            if type_code == "A":
                value = value.decode("latin-1")
            offset += size
        elif type_code in ("Z", "H"):
            value, offset = _read_cstring(data, offset, limit)
        elif type_code == "B":
            if offset + 5 > limit:
                raise MalformedRecordError(f"Tag {tag} runs past end of record")
            subtype = chr(data[offset])
            (count,) = struct.unpack_from("<i", data, offset + 1)
            offset += 5
            if subtype not in _TAG_ARRAY_TYPES:
                logger.debug("Unknown array subtype %r for tag %s, skipping tags", subtype, tag)
                break
            if count < 0:
                raise MalformedRecordError(f"Tag {tag} declares negative array length {count}")
            fmt = f"<{count}{_TAG_ARRAY_TYPES[subtype]}"
            size = struct.calcsize(fmt)
            if offset + size > limit:
                raise MalformedRecordError(f"Tag {tag} array runs past end of record")
            value = struct.unpack_from(fmt, data, offset)
            offset += size
        else:
            logger.debug("Unknown tag type %r for tag %s, skipping remaining tags", type_code, tag)
            break

        tags[tag] = value
    return tags


def _expand_long_cigar(
    cigar: tuple[tuple[int, str], ...], l_seq: int, tags: dict[str, Any]
) -> tuple[tuple[int, str], ...]:
    # Records with more than 65535 CIGAR operations store "<l_seq>S<ref_len>N"
    # and keep the real operations in a CG:B,I tag.
    if (
        len(cigar) == 2
        and cigar[0] == (l_seq, "S")
        and cigar[1][1] == "N"
        and isinstance(tags.get("CG"), tuple)
    ):
        return tuple(_cigar_op(packed, "in CG tag") for packed in tags.pop("CG"))
    return cigar


def decode_record(data: bytes, offset: int, end: int, chr_names: Sequence[str]) -> Alignment:
    """Decode one record whose body spans ``data[offset:end]``."""
    (
        ref_id,
        pos,
        bin_mq_nl,
        flag_nc,
        l_seq,
        next_ref_id,
        next_pos,
        tlen,
    ) = _FIXED.unpack_from(data, offset)

    l_read_name = bin_mq_nl & 0xFF
    mapq = (bin_mq_nl >> 8) & 0xFF
    flags = flag_nc >> 16
    n_cigar = flag_nc & 0xFFFF

    if l_seq < 0:
        raise MalformedRecordError(f"Negative sequence length {l_seq} at offset {offset}")
    if ref_id < -1 or ref_id >= len(chr_names):
        raise MalformedRecordError(f"Reference ID {ref_id} out of range at offset {offset}")
    if next_ref_id < -1 or next_ref_id >= len(chr_names):
        raise MalformedRecordError(
            f"Mate reference ID {next_ref_id} out of range at offset {offset}"
        )

    p = offset + RECORD_FIXED_SIZE
    variable = l_read_name + 4 * n_cigar + (l_seq + 1) // 2 + l_seq
    if p + variable > end:
        raise MalformedRecordError(
            f"Record at offset {offset} declares {variable} variable bytes, "
            f"only {end - p} in block"
        )

    read_name, _ = _read_cstring(data, p, p + l_read_name)
    p += l_read_name

    cigar = decode_cigar(data, p, n_cigar)
    p += 4 * n_cigar

    sequence = decode_sequence(data, p, l_seq)
    p += (l_seq + 1) // 2

    qualities: tuple[int, ...] | None = None
    if l_seq and data[p] != QUALITY_NOT_STORED:
        qualities = tuple(data[p : p + l_seq])
    p += l_seq

    tags = decode_tags(data, p, end)
    cigar = _expand_long_cigar(cigar, l_seq, tags)

    chr_name = chr_names[ref_id] if ref_id >= 0 else None
    mate = None
    if flags & FLAG_PAIRED and not flags & FLAG_MATE_UNMAPPED and next_ref_id >= 0:
        mate = MateInfo(
            ref_id=next_ref_id,
            chr=chr_names[next_ref_id],
            position=next_pos,
            strand="-" if flags & FLAG_MATE_REVERSE else "+",
        )

    return Alignment(
        ref_id=ref_id,
        chr=chr_name,
        start=pos,
        end=pos + reference_length(cigar) if ref_id >= 0 else pos,
        flags=flags,
        mapping_quality=mapq,
        cigar=cigar,
        read_name=read_name,
        sequence=sequence,
        qualities=qualities,
        tags=tags,
        mate=mate,
        insert_size=tlen,
    )


def iter_records(data: bytes, start_offset: int, chr_names: Sequence[str]) -> Iterator[Alignment]:
    """Yield alignments from ``data[start_offset:]`` one block at a time."""
    offset = start_offset
    length = len(data)
    while offset < length:
        if offset + 4 > length:
            raise MalformedRecordError(
                f"Trailing {length - offset} bytes at offset {offset} are too short "
                f"for a record size field"
            )
        (block_size,) = struct.unpack_from("<i", data, offset)
        body = offset + 4
        if block_size < RECORD_FIXED_SIZE:
            raise MalformedRecordError(
                f"Record at offset {offset} declares block size {block_size}, "
                f"below the {RECORD_FIXED_SIZE}-byte fixed part"
            )
        end = body + block_size
        if end > length:
            raise MalformedRecordError(
                f"Record at offset {offset} declares {block_size} bytes, "
                f"only {length - body} remain"
            )
        yield decode_record(data, body, end, chr_names)
        offset = end


def decode_records(data: bytes, start_offset: int, chr_names: Sequence[str]) -> list[Alignment]:
    """Decode every alignment record following the header.

    Args:
        data: Uncompressed BAM bytes.
        start_offset: Offset of the first record (the header size).
        chr_names: Reference names from the header, indexed by reference ID.

    Returns:
        Alignments in file order, mapped and unmapped alike.

    Raises:
        MalformedRecordError: Any record's declared lengths are inconsistent
            with the buffer. The whole decode is abandoned.
    """
    return list(iter_records(data, start_offset, chr_names))
