"""Shared test fixtures for bamcache tests."""

import pytest
from bam_builder import Read, build_bam

from bamcache.core import tools as _tools_module

REFS = [("chr1", 1000), ("chr2", 500)]

# paired, proper pair, first of pair on forward strand with mate reverse (and vice versa)
FIRST_FORWARD = 0x1 | 0x2 | 0x20 | 0x40
SECOND_REVERSE = 0x1 | 0x2 | 0x10 | 0x80


@pytest.fixture(autouse=True)
def _reset_reader_registry():
    """Reset the module-level reader registry between tests."""
    yield
    _tools_module.clear_readers()


@pytest.fixture
def refs():
    return list(REFS)


@pytest.fixture
def scenario_reads():
    """Three reads on chr1 starting at 100, 150 and 500."""
    return [
        Read("read1", pos=100, cigar="50M"),
        Read("read2", pos=150, cigar="20M5D20M", flag=16),
        Read("read3", pos=500, cigar="30M"),
    ]


@pytest.fixture
def scenario_bam(refs, scenario_reads):
    """BGZF bytes for the three-read scenario."""
    return build_bam(refs, scenario_reads, text="@HD\tVN:1.6\tSO:coordinate\n")


@pytest.fixture
def scenario_bam_path(tmp_path, scenario_bam):
    path = tmp_path / "scenario.bam"
    path.write_bytes(scenario_bam)
    return str(path)


@pytest.fixture
def paired_reads():
    """Two complete pairs on chr1 plus one read whose mate is far away."""
    return [
        Read("pairA", pos=100, cigar="50M", flag=FIRST_FORWARD, next_ref_id=0, next_pos=300),
        Read("pairB", pos=120, cigar="50M", flag=FIRST_FORWARD, next_ref_id=0, next_pos=260),
        Read("pairB", pos=260, cigar="50M", flag=SECOND_REVERSE, next_ref_id=0, next_pos=120),
        Read("pairA", pos=300, cigar="50M", flag=SECOND_REVERSE, next_ref_id=0, next_pos=100),
        Read("lonely", pos=310, cigar="40M", flag=0x1 | 0x40, next_ref_id=1, next_pos=50),
    ]
