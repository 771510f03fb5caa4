"""Decode BAM files written by htslib (via pysam) and compare with pysam's view."""

import pytest

from bamcache.core.reader import NonIndexedBamReader, decode_bam

pysam = pytest.importorskip("pysam")


@pytest.fixture
def htslib_bam(tmp_path):
    """A small BAM written by pysam, with tags, pairs and an unmapped read."""
    bam_path = tmp_path / "htslib.bam"
    header = {
        "HD": {"VN": "1.6", "SO": "coordinate"},
        "SQ": [{"SN": "chr1", "LN": 1000}, {"SN": "chr2", "LN": 500}],
    }

    with pysam.AlignmentFile(str(bam_path), "wb", header=header) as outf:
        for i, (pos, cigar, flag) in enumerate(
            [
                (100, [(0, 50)], 0),
                (120, [(4, 5), (0, 20), (2, 3), (0, 25)], 16),
                (130, [(0, 10), (1, 2), (0, 38)], 0x1 | 0x40 | 0x20),
                (400, [(0, 30), (3, 100), (0, 20)], 0x1 | 0x80 | 0x10),
            ]
        ):
            a = pysam.AlignedSegment()
            a.query_name = f"read{i}" if i < 2 else "pair"
            a.reference_id = 0
            a.reference_start = pos
            a.cigartuples = cigar
            qlen = sum(n for op, n in cigar if op in (0, 1, 4, 7, 8))
            a.query_sequence = ("ACGTN" * 40)[:qlen]
            a.query_qualities = pysam.qualitystring_to_array("I" * qlen)
            a.flag = flag
            a.mapping_quality = 40 + i
            if flag & 0x1:
                a.next_reference_id = 0
                a.next_reference_start = 400 if flag & 0x40 else 130
            a.set_tag("NM", i)
            a.set_tag("RG", "grp")
            a.set_tag("XB", [1, 2, 3])
            outf.write(a)

        u = pysam.AlignedSegment()
        u.query_name = "unmapped"
        u.flag = 4
        u.reference_id = -1
        u.reference_start = -1
        u.query_sequence = "ACGT"
        u.query_qualities = pysam.qualitystring_to_array("IIII")
        outf.write(u)

    return str(bam_path)


class TestHtslibInterop:
    """Our decode should agree with htslib on every field we expose."""

    @pytest.mark.integration
    def test_fields_match_pysam(self, htslib_bam):
        with open(htslib_bam, "rb") as f:
            decoded = decode_bam(f.read())

        with pysam.AlignmentFile(htslib_bam, "rb", check_sq=False) as samfile:
            expected = list(samfile.fetch(until_eof=True))

        assert decoded.header.chr_names == ("chr1", "chr2")
        ours = decoded.cache.query("chr1", 0, 1000) + list(decoded.cache.unplaced)
        assert len(ours) == len(expected)

        for a, e in zip(ours, expected, strict=True):
            assert a.read_name == e.query_name
            assert a.flags == e.flag
            assert a.sequence == e.query_sequence
            assert a.mapping_quality == e.mapping_quality
            if e.is_unmapped:
                assert a.chr is None
                continue
            assert a.start == e.reference_start
            assert a.end == e.reference_end
            assert a.cigar_string == e.cigarstring
            assert list(a.qualities) == list(e.query_qualities)
            assert a.tags["NM"] == e.get_tag("NM")
            assert a.tags["RG"] == e.get_tag("RG")
            assert a.tags["XB"] == tuple(e.get_tag("XB"))

    @pytest.mark.integration
    def test_pairs_from_htslib_file(self, htslib_bam):
        reader = NonIndexedBamReader()
        with open(htslib_bam, "rb") as f:
            reader.load_bytes(f.read())

        container = reader.query("1", 0, 1000)
        (pair,) = container.pairs
        assert pair.read_name == "pair"
        assert pair.first.start == 130
        assert pair.second.start == 400
        assert [a.read_name for a in container.unpaired] == ["read0", "read1"]
