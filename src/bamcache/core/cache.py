"""In-memory interval cache over decoded alignments."""

from __future__ import annotations

from bisect import bisect_left
from collections.abc import Iterable

from .records import Alignment


class _ChromosomeIndex:
    """Start-sorted alignments for one chromosome.

    ``max_length`` bounds how far left of a query start an overlapping
    alignment can begin, so a binary search on start positions prunes the
    candidates on both sides.
    """

    __slots__ = ("alignments", "starts", "max_length")

    def __init__(self, alignments: list[Alignment]):
        # sorted() is stable: equal starts keep file order
        self.alignments = sorted(alignments, key=lambda a: a.start)
        self.starts = [a.start for a in self.alignments]
        self.max_length = max((a.end - a.start for a in self.alignments), default=0)

    def query(self, start: int, end: int) -> list[Alignment]:
        lo = bisect_left(self.starts, start - self.max_length)
        hi = bisect_left(self.starts, end)
        return [a for a in self.alignments[lo:hi] if a.end > start]


class FeatureCache:
    """Alignments grouped by chromosome and indexed by start coordinate.

    Built once per decoded file and read-only afterwards, so one instance can
    serve any number of queries, including concurrent ones.
    """

    def __init__(self, index: dict[str, _ChromosomeIndex], unplaced: list[Alignment]):
        self._index = index
        self._unplaced = tuple(unplaced)

    @classmethod
    def build(cls, alignments: Iterable[Alignment]) -> FeatureCache:
        """Group alignments by chromosome name and sort each group by start.

        Alignments without a reference (ref ID -1) are kept aside in
        ``unplaced`` and never returned by ``query``.
        """
        groups: dict[str, list[Alignment]] = {}
        unplaced: list[Alignment] = []
        for alignment in alignments:
            if alignment.chr is None:
                unplaced.append(alignment)
            else:
                groups.setdefault(alignment.chr, []).append(alignment)

        index = {chr_name: _ChromosomeIndex(group) for chr_name, group in groups.items()}
        return cls(index, unplaced)

    def query(
        self, chr_name: str, start: int, end: int, include_unmapped: bool = False
    ) -> list[Alignment]:
        """Return alignments on ``chr_name`` overlapping ``[start, end)``.

        An alignment overlaps when ``a.start < end and a.end > start``. Results
        come back in start order. Unknown chromosomes yield an empty list.
        Placed-but-unmapped records are excluded unless ``include_unmapped``.
        """
        chrom = self._index.get(chr_name)
        if chrom is None:
            return []
        hits = chrom.query(start, end)
        if include_unmapped:
            return hits
        return [a for a in hits if a.is_mapped]

    def chromosomes(self) -> list[str]:
        return list(self._index)

    def count(self, chr_name: str) -> int:
        chrom = self._index.get(chr_name)
        return len(chrom.alignments) if chrom else 0

    @property
    def unplaced(self) -> tuple[Alignment, ...]:
        return self._unplaced

    def __len__(self) -> int:
        return sum(len(c.alignments) for c in self._index.values()) + len(self._unplaced)

    def __contains__(self, chr_name: object) -> bool:
        return chr_name in self._index
