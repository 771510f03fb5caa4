"""Unit tests for bamcache.core.cache."""

import random

import pytest
from bam_builder import Read, encode_record

from bamcache.core.cache import FeatureCache
from bamcache.core.records import decode_records

CHR_NAMES = ("chr1", "chr2")


def _alignments(reads):
    raw = b"".join(encode_record(r) for r in reads)
    return decode_records(raw, 0, CHR_NAMES)


def _keys(alignments):
    return [(a.read_name, a.start, a.end) for a in alignments]


class TestFeatureCache:
    """Tests for FeatureCache.build and query."""

    @pytest.mark.unit
    def test_scenario_query(self, scenario_reads):
        cache = FeatureCache.build(_alignments(scenario_reads))
        hits = cache.query("chr1", 90, 200)
        assert [a.read_name for a in hits] == ["read1", "read2"]

    @pytest.mark.unit
    def test_unknown_chromosome_is_empty(self, scenario_reads):
        cache = FeatureCache.build(_alignments(scenario_reads))
        assert cache.query("chr3", 0, 10) == []
        assert cache.query("chr2", 0, 500) == []

    @pytest.mark.unit
    def test_half_open_boundaries(self):
        cache = FeatureCache.build(_alignments([Read("r", pos=100, cigar="10M")]))
        assert cache.query("chr1", 110, 120) == []
        assert cache.query("chr1", 90, 100) == []
        assert len(cache.query("chr1", 109, 110)) == 1
        assert len(cache.query("chr1", 99, 101)) == 1

    @pytest.mark.unit
    def test_long_alignment_starting_far_left(self):
        reads = [
            Read("long", pos=0, cigar="10M5000N10M"),
            Read("short", pos=4000, cigar="10M"),
        ]
        cache = FeatureCache.build(_alignments(reads))
        assert _keys(cache.query("chr1", 4500, 4600)) == [("long", 0, 5020)]

    @pytest.mark.unit
    def test_unsorted_input_returns_sorted_results(self):
        reads = [Read(f"r{p}", pos=p) for p in (500, 10, 300, 10, 40)]
        cache = FeatureCache.build(_alignments(reads))
        hits = cache.query("chr1", 0, 1000)
        assert [a.start for a in hits] == [10, 10, 40, 300, 500]

    @pytest.mark.unit
    def test_ties_keep_input_order(self):
        reads = [Read("b", pos=10), Read("a", pos=10), Read("c", pos=10)]
        cache = FeatureCache.build(_alignments(reads))
        assert [a.read_name for a in cache.query("chr1", 0, 100)] == ["b", "a", "c"]

    @pytest.mark.unit
    def test_unplaced_kept_aside(self):
        reads = [
            Read("placed", pos=10),
            Read("unplaced", ref_id=-1, pos=-1, cigar="*", seq="AC", flag=0x4),
        ]
        cache = FeatureCache.build(_alignments(reads))
        assert len(cache) == 2
        assert [a.read_name for a in cache.unplaced] == ["unplaced"]
        assert cache.chromosomes() == ["chr1"]

    @pytest.mark.unit
    def test_placed_unmapped_excluded_unless_requested(self):
        reads = [
            Read("mapped", pos=100, cigar="10M"),
            Read("unmapped", pos=105, cigar="*", seq="ACGT", flag=0x4),
        ]
        cache = FeatureCache.build(_alignments(reads))
        assert [a.read_name for a in cache.query("chr1", 100, 110)] == ["mapped"]
        hits = cache.query("chr1", 100, 110, include_unmapped=True)
        assert [a.read_name for a in hits] == ["mapped", "unmapped"]

    @pytest.mark.unit
    def test_count_and_contains(self, scenario_reads):
        cache = FeatureCache.build(_alignments(scenario_reads))
        assert cache.count("chr1") == 3
        assert cache.count("chr2") == 0
        assert "chr1" in cache
        assert "chr2" not in cache

    @pytest.mark.unit
    def test_repeated_queries_are_equal(self, scenario_reads):
        cache = FeatureCache.build(_alignments(scenario_reads))
        first = _keys(cache.query("chr1", 0, 1000))
        for _ in range(3):
            assert _keys(cache.query("chr1", 0, 1000)) == first

    @pytest.mark.unit
    def test_matches_brute_force_scan(self):
        rng = random.Random(1234)
        cigars = ["20M", "5S30M", "10M200N10M", "15M5D15M", "*", "50M"]
        reads = []
        for i in range(400):
            cigar = rng.choice(cigars)
            seq = "ACGT" if cigar == "*" else None
            ref_id = rng.randint(0, 1)
            pos = rng.randint(0, 5000)
            reads.append(Read(f"r{i}", ref_id=ref_id, pos=pos, cigar=cigar, seq=seq))
        alignments = _alignments(reads)
        cache = FeatureCache.build(alignments)

        for _ in range(300):
            chr_name = rng.choice(CHR_NAMES)
            start = rng.randint(-100, 5200)
            end = start + rng.randint(0, 800)
            expected = sorted(
                _keys(
                    a
                    for a in alignments
                    if a.chr == chr_name and a.start < end and a.end > start
                )
            )
            assert sorted(_keys(cache.query(chr_name, start, end))) == expected
