"""AlignmentContainer serialization for bamcache tool responses.

Converts a finished container into a JSON-compatible dict.
"""

from __future__ import annotations

from typing import Any

from .container import AlignmentContainer
from .records import Alignment


def serialize_alignment(a: Alignment, include_sequence: bool) -> dict:
    """Serialize an alignment, omitting mate fields for unpaired reads."""
    d: dict[str, Any] = {
        "name": a.read_name,
        "cigar": a.cigar_string,
        "start": a.start,
        "end": a.end,
        "strand": a.strand,
        "mapping_quality": a.mapping_quality,
        "flags": a.flags,
    }
    if include_sequence:
        d["sequence"] = a.sequence
        d["qualities"] = list(a.qualities) if a.qualities is not None else None
        d["tags"] = dict(a.tags)
    if a.is_paired:
        d["is_paired"] = True
        d["is_proper_pair"] = a.is_proper_pair
        d["is_first_of_pair"] = a.is_first_of_pair
        d["insert_size"] = a.insert_size
        if a.mate is not None:
            d["mate_contig"] = a.mate.chr
            d["mate_position"] = a.mate.position
            d["mate_strand"] = a.mate.strand
    return d


def serialize_container(container: AlignmentContainer, include_sequence: bool = False) -> dict:
    """Serialize a finished AlignmentContainer to a JSON-compatible dict.

    Args:
        container: The finished container.
        include_sequence: Include bases, qualities and tags per alignment.
    """
    return {
        "contig": container.chr,
        "start": container.start,
        "end": container.end,
        "alignments": [serialize_alignment(a, include_sequence) for a in container.alignments],
        "pairs": [
            {
                "name": p.read_name,
                "start": p.start,
                "end": p.end,
                "connecting_start": p.connecting_start,
                "connecting_end": p.connecting_end,
            }
            for p in container.pairs
        ],
        "downsampled_intervals": [
            {"start": d.start, "end": d.end, "count": d.count}
            for d in container.downsampled_intervals
        ],
        "coverage": container.coverage_summary(),
        "sampling": {
            "window_size": container.sampling_window_size,
            "depth": container.sampling_depth,
            "pushed": container.pushed_count,
            "accepted": len(container),
        },
    }
