"""BGZF block framing: decompress a whole buffer, or write one.

A BGZF file is a series of gzip members, each carrying a ``BC`` extra
subfield whose value is the total block size minus one. Blocks are
independent, so the uncompressed stream is simply their concatenation.
"""

from __future__ import annotations

import struct
import zlib

from ..constants import (
    BGZF_EOF,
    BGZF_FOOTER_SIZE,
    BGZF_HEADER_SIZE,
    BGZF_MAX_BLOCK_PAYLOAD,
)
from ..errors import CorruptBlockError, TruncatedInputError

GZIP_ID1 = 0x1F
GZIP_ID2 = 0x8B
GZIP_CM_DEFLATE = 8
GZIP_FLG_FEXTRA = 0x04

# Offset of XLEN within the gzip member header
_XLEN_OFFSET = 10
_EXTRA_OFFSET = 12


def _block_size(data: bytes | memoryview, offset: int) -> tuple[int, int]:
    """Validate the member header at ``offset``.

    Returns:
        Tuple of (total block size, offset of the deflate payload).
    """
    if (
        data[offset] != GZIP_ID1
        or data[offset + 1] != GZIP_ID2
        or data[offset + 2] != GZIP_CM_DEFLATE
        or not data[offset + 3] & GZIP_FLG_FEXTRA
    ):
        raise CorruptBlockError(f"Invalid BGZF block header at offset {offset}")

    (xlen,) = struct.unpack_from("<H", data, offset + _XLEN_OFFSET)
    extra_start = offset + _EXTRA_OFFSET
    extra_end = extra_start + xlen
    if extra_end > len(data):
        raise TruncatedInputError(f"BGZF extra field at offset {offset} runs past end of input")

    bsize = None
    pos = extra_start
    while pos + 4 <= extra_end:
        si1, si2, slen = struct.unpack_from("<BBH", data, pos)
        if si1 == 66 and si2 == 67 and slen == 2:
            (bsize,) = struct.unpack_from("<H", data, pos + 4)
            break
        pos += 4 + slen

    if bsize is None:
        raise CorruptBlockError(f"BGZF block at offset {offset} has no BC subfield")

    total = bsize + 1
    if total < xlen + _EXTRA_OFFSET + BGZF_FOOTER_SIZE:
        raise CorruptBlockError(f"BGZF block at offset {offset} declares invalid size {total}")

    return total, extra_end


def decompress(data: bytes) -> bytes:
    """Inflate every BGZF block in ``data`` and concatenate them in file order.

    Args:
        data: A complete BGZF-framed buffer.

    Returns:
        The uncompressed bytes.

    Raises:
        CorruptBlockError: A block signature, size field, or payload is invalid.
        TruncatedInputError: Fewer bytes remain than a block declares.
    """
    view = memoryview(data)
    chunks: list[bytes] = []
    offset = 0
    length = len(view)

    while offset < length:
        if length - offset < BGZF_HEADER_SIZE:
            raise TruncatedInputError(
                f"Only {length - offset} bytes left at offset {offset}, "
                f"need at least {BGZF_HEADER_SIZE} for a BGZF header"
            )

        total, payload_start = _block_size(view, offset)
        block_end = offset + total
        if block_end > length:
            raise TruncatedInputError(
                f"BGZF block at offset {offset} declares {total} bytes, "
                f"only {length - offset} remain"
            )

        payload_end = block_end - BGZF_FOOTER_SIZE
        crc, isize = struct.unpack_from("<II", view, payload_end)

        inflater = zlib.decompressobj(-zlib.MAX_WBITS)
        try:
            chunk = inflater.decompress(view[payload_start:payload_end]) + inflater.flush()
        except zlib.error as e:
            raise CorruptBlockError(f"BGZF block at offset {offset} failed to inflate: {e}") from e

        if len(chunk) != isize:
            raise CorruptBlockError(
                f"BGZF block at offset {offset} inflated to {len(chunk)} bytes, "
                f"ISIZE says {isize}"
            )
        if zlib.crc32(chunk) != crc:
            raise CorruptBlockError(f"BGZF block at offset {offset} failed CRC32 check")

        chunks.append(chunk)
        offset = block_end

    return b"".join(chunks)


def compress_block(payload: bytes, level: int = 6) -> bytes:
    """Deflate one payload of at most ``BGZF_MAX_BLOCK_PAYLOAD`` bytes into a block."""
    if len(payload) > BGZF_MAX_BLOCK_PAYLOAD:
        raise ValueError(
            f"BGZF payload of {len(payload)} bytes exceeds {BGZF_MAX_BLOCK_PAYLOAD}"
        )

    deflater = zlib.compressobj(level, zlib.DEFLATED, -zlib.MAX_WBITS)
    body = deflater.compress(payload) + deflater.flush()
    total = BGZF_HEADER_SIZE + len(body) + BGZF_FOOTER_SIZE

    header = struct.pack(
        "<BBBBIBBHBBHH",
        GZIP_ID1,
        GZIP_ID2,
        GZIP_CM_DEFLATE,
        GZIP_FLG_FEXTRA,
        0,  # MTIME
        0,  # XFL
        0xFF,  # OS unknown
        6,  # XLEN
        66,
        67,
        2,
        total - 1,
    )
    footer = struct.pack("<II", zlib.crc32(payload), len(payload))
    return header + body + footer


def compress(data: bytes, level: int = 6) -> bytes:
    """Write ``data`` as BGZF blocks followed by the standard EOF marker."""
    blocks = [
        compress_block(data[i : i + BGZF_MAX_BLOCK_PAYLOAD], level)
        for i in range(0, len(data), BGZF_MAX_BLOCK_PAYLOAD)
    ]
    blocks.append(BGZF_EOF)
    return b"".join(blocks)
