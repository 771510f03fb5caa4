"""BAM header decoding: magic, SAM text, reference table, alias table."""

from __future__ import annotations

import struct
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType

from ..constants import BAM_MAGIC, MITOCHONDRIAL_NAMES
from ..errors import InvalidMagicError, MalformedHeaderError, TruncatedInputError


@dataclass(frozen=True)
class Header:
    """Decoded BAM header.

    ``chr_names[i]`` is the name of reference ID ``i``. ``size`` is the byte
    offset in the uncompressed stream where alignment records begin.
    """

    chr_names: tuple[str, ...]
    chr_lengths: tuple[int, ...]
    size: int
    text: str = ""
    chr_alias_table: Mapping[str, str] = field(default_factory=dict)

    def resolve(self, chr_name: str) -> str:
        """Map an alternate chromosome spelling to the name used in this file."""
        return self.chr_alias_table.get(chr_name, chr_name)

    def reference_name(self, ref_id: int) -> str | None:
        """Return the name for a reference ID, or None for unplaced (-1)."""
        if 0 <= ref_id < len(self.chr_names):
            return self.chr_names[ref_id]
        return None


def _alternate_names(name: str) -> list[str]:
    alternates = [name[3:] if name.startswith("chr") else f"chr{name}"]
    if name in MITOCHONDRIAL_NAMES:
        alternates.extend(n for n in MITOCHONDRIAL_NAMES if n != name)
    return alternates


def build_alias_table(chr_names: Sequence[str]) -> dict[str, str]:
    """Build the alternate-spelling lookup for a reference table.

    Literal names always map to themselves. Derived spellings ("1" for
    "chr1", "chrX" for "X", and the mitochondrial variants) go to the first
    reference that claims them.
    """
    table = {name: name for name in chr_names}
    for name in chr_names:
        for alias in _alternate_names(name):
            table.setdefault(alias, name)
    return table


def _read_int32(data: bytes, offset: int, what: str) -> int:
    if offset + 4 > len(data):
        raise TruncatedInputError(f"BAM header truncated reading {what} at offset {offset}")
    return struct.unpack_from("<i", data, offset)[0]


def decode_header(data: bytes) -> tuple[Header, int]:
    """Parse the BAM header at the start of an uncompressed buffer.

    Args:
        data: Uncompressed BAM bytes.

    Returns:
        Tuple of (Header, number of bytes consumed).

    Raises:
        InvalidMagicError: The first four bytes are not ``BAM\\1``.
        TruncatedInputError: A declared length runs past the buffer.
        MalformedHeaderError: A declared length is negative.
    """
    if data[:4] != BAM_MAGIC:
        raise InvalidMagicError(f"Not a BAM stream: magic {bytes(data[:4])!r}")

    offset = 4
    l_text = _read_int32(data, offset, "text length")
    offset += 4
    if l_text < 0:
        raise MalformedHeaderError(f"Negative header text length {l_text}")
    if offset + l_text > len(data):
        raise TruncatedInputError(f"BAM header text of {l_text} bytes runs past end of input")
    text = bytes(data[offset : offset + l_text]).rstrip(b"\x00").decode("latin-1")
    offset += l_text

    n_ref = _read_int32(data, offset, "reference count")
    offset += 4
    if n_ref < 0:
        raise MalformedHeaderError(f"Negative reference count {n_ref}")

    names: list[str] = []
    lengths: list[int] = []
    for i in range(n_ref):
        l_name = _read_int32(data, offset, f"name length of reference {i}")
        offset += 4
        if l_name < 0:
            raise MalformedHeaderError(f"Negative name length {l_name} for reference {i}")
        if offset + l_name > len(data):
            raise TruncatedInputError(f"Name of reference {i} runs past end of input")
        raw = bytes(data[offset : offset + l_name])
        names.append(raw.split(b"\x00", 1)[0].decode("latin-1"))
        offset += l_name

        l_ref = _read_int32(data, offset, f"length of reference {i}")
        offset += 4
        if l_ref < 0:
            raise MalformedHeaderError(f"Negative sequence length {l_ref} for reference {i}")
        lengths.append(l_ref)

    header = Header(
        chr_names=tuple(names),
        chr_lengths=tuple(lengths),
        size=offset,
        text=text,
        chr_alias_table=MappingProxyType(build_alias_table(names)),
    )
    return header, offset
