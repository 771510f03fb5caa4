"""Query-scoped accumulation of alignments with depth sampling and pairing."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from ..errors import IllegalStateError
from .records import Alignment


@dataclass(frozen=True)
class DownsampledInterval:
    """A sampling window where ``count`` alignments were dropped."""

    start: int
    end: int
    count: int


@dataclass(frozen=True)
class PairedAlignment:
    """Two mates of one template, both present in the container."""

    first: Alignment
    second: Alignment

    @property
    def read_name(self) -> str:
        return self.first.read_name

    @property
    def start(self) -> int:
        return min(self.first.start, self.second.start)

    @property
    def end(self) -> int:
        return max(self.first.end, self.second.end)

    @property
    def connecting_start(self) -> int:
        """End of the leftmost mate, where the insert begins."""
        left, right = sorted((self.first, self.second), key=lambda a: a.start)
        return min(left.end, right.start)

    @property
    def connecting_end(self) -> int:
        """Start of the rightmost mate, where the insert ends."""
        left, right = sorted((self.first, self.second), key=lambda a: a.start)
        return max(left.end, right.start)


@dataclass(frozen=True)
class ReadFilter:
    """Flag and mapping-quality filter applied before sampling."""

    filter_duplicates: bool = True
    filter_vendor_failed: bool = True
    filter_secondary: bool = False
    filter_supplementary: bool = False
    min_mapq: int = 0

    def passes(self, alignment: Alignment) -> bool:
        if self.filter_duplicates and alignment.is_duplicate:
            return False
        if self.filter_vendor_failed and alignment.is_vendor_failed:
            return False
        if self.filter_secondary and alignment.is_secondary:
            return False
        if self.filter_supplementary and alignment.is_supplementary:
            return False
        return alignment.mapping_quality >= self.min_mapq


class AlignmentContainer:
    """Accumulates the alignments returned for one range query.

    The range is cut into windows of ``sampling_window_size`` bases. Each
    window keeps the first ``sampling_depth`` alignments (by push order) that
    start inside it; later ones are dropped and counted in a
    ``DownsampledInterval``. Coverage counts every pushed alignment, sampled
    or not.

    Lifecycle: ``push`` any number of times, then ``finish`` exactly once,
    then read. Reading before ``finish`` or pushing after it raises
    ``IllegalStateError``.
    """

    def __init__(
        self,
        chr_name: str,
        start: int,
        end: int,
        sampling_window_size: int,
        sampling_depth: int,
        pairs_supported: bool = True,
    ):
        if sampling_window_size < 1:
            raise ValueError(f"sampling_window_size must be at least 1, got {sampling_window_size}")
        if sampling_depth < 1:
            raise ValueError(f"sampling_depth must be at least 1, got {sampling_depth}")
        if end < start:
            raise ValueError(f"End ({end}) must not be less than start ({start})")

        self.chr = chr_name
        self.start = start
        self.end = end
        self.sampling_window_size = sampling_window_size
        self.sampling_depth = sampling_depth
        self.pairs_supported = pairs_supported

        self._window_counts: dict[int, int] = {}
        self._dropped: dict[int, int] = {}
        self._accepted: list[Alignment] = []
        self._blocks: list[tuple[int, int]] = []
        self._pushed = 0
        self._finished = False

        self._pairs: list[PairedAlignment] = []
        self._unpaired: list[Alignment] = []
        self._coverage: np.ndarray | None = None

    def _window(self, position: int) -> int:
        return (position - self.start) // self.sampling_window_size

    def push(self, alignment: Alignment) -> None:
        if self._finished:
            raise IllegalStateError("Cannot push to an AlignmentContainer after finish()")

        self._pushed += 1
        for block_start, length in alignment.blocks():
            s = max(block_start, self.start)
            e = min(block_start + length, self.end)
            if s < e:
                self._blocks.append((s - self.start, e - self.start))

        window = self._window(alignment.start)
        count = self._window_counts.get(window, 0)
        if count < self.sampling_depth:
            self._window_counts[window] = count + 1
            self._accepted.append(alignment)
        else:
            self._dropped[window] = self._dropped.get(window, 0) + 1

    def finish(self) -> None:
        """Freeze the container, sort by start and link mates."""
        if self._finished:
            raise IllegalStateError("AlignmentContainer.finish() called twice")
        self._finished = True

        self._accepted.sort(key=lambda a: a.start)
        if self.pairs_supported:
            self._pairs, self._unpaired = _link_pairs(self._accepted)
        else:
            self._unpaired = list(self._accepted)

    def _require_finished(self) -> None:
        if not self._finished:
            raise IllegalStateError("AlignmentContainer must be finished before it is read")

    @property
    def is_finished(self) -> bool:
        return self._finished

    @property
    def pushed_count(self) -> int:
        return self._pushed

    @property
    def alignments(self) -> list[Alignment]:
        """Accepted alignments, sorted by start."""
        self._require_finished()
        return list(self._accepted)

    @property
    def pairs(self) -> list[PairedAlignment]:
        self._require_finished()
        return list(self._pairs)

    @property
    def unpaired(self) -> list[Alignment]:
        """Accepted alignments not linked into a pair."""
        self._require_finished()
        return list(self._unpaired)

    @property
    def downsampled_intervals(self) -> list[DownsampledInterval]:
        self._require_finished()
        w = self.sampling_window_size
        return [
            DownsampledInterval(
                start=self.start + window * w,
                end=self.start + (window + 1) * w,
                count=count,
            )
            for window, count in sorted(self._dropped.items())
        ]

    @property
    def coverage(self) -> np.ndarray:
        """Per-base depth over ``[start, end)`` from all pushed alignments."""
        self._require_finished()
        if self._coverage is None:
            diff = np.zeros(self.end - self.start + 1, dtype=np.int64)
            if self._blocks:
                bounds = np.array(self._blocks, dtype=np.int64)
                np.add.at(diff, bounds[:, 0], 1)
                np.add.at(diff, bounds[:, 1], -1)
            self._coverage = np.cumsum(diff[:-1])
        return self._coverage

    def coverage_summary(self) -> dict:
        """Depth statistics for the queried range."""
        coverage = self.coverage
        if coverage.size == 0:
            return {
                "mean": 0,
                "min": 0,
                "max": 0,
                "median": 0,
                "bases_covered": 0,
                "total_bases": 0,
            }
        return {
            "mean": round(float(coverage.mean()), 2),
            "min": int(coverage.min()),
            "max": int(coverage.max()),
            "median": int(np.sort(coverage)[coverage.size // 2]),
            "bases_covered": int(np.count_nonzero(coverage)),
            "total_bases": int(coverage.size),
        }

    def __len__(self) -> int:
        self._require_finished()
        return len(self._accepted)


def _link_pairs(
    alignments: list[Alignment],
) -> tuple[list[PairedAlignment], list[Alignment]]:
    """Link paired primary alignments that share a read name.

    A name links only when exactly two such alignments were accepted; mates
    outside the range or dropped by sampling leave the read unpaired.
    """
    by_name: dict[str, list[Alignment]] = {}
    for a in alignments:
        if a.is_paired and not a.is_secondary and not a.is_supplementary:
            by_name.setdefault(a.read_name, []).append(a)

    linked: set[int] = set()
    pairs: list[PairedAlignment] = []
    for group in by_name.values():
        if len(group) != 2:
            continue
        first, second = group
        if second.is_first_of_pair and not first.is_first_of_pair:
            first, second = second, first
        pairs.append(PairedAlignment(first=first, second=second))
        linked.update(id(a) for a in group)

    pairs.sort(key=lambda p: p.start)
    unpaired = [a for a in alignments if id(a) not in linked]
    return pairs, unpaired
