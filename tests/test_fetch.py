"""Unit tests for bamcache.core.fetch."""

import httpx
import pytest
from pytest_httpx import IteratorStream

from bamcache.core.fetch import fetch_bytes
from bamcache.core.reader import NonIndexedBamReader

BAM_URL = "https://example.com/data/sample.bam"


class TestFetchBytes:
    """Tests for fetch_bytes."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_local_file(self, tmp_path):
        path = tmp_path / "x.bam"
        path.write_bytes(b"\x1f\x8bdata")
        assert await fetch_bytes(str(path)) == b"\x1f\x8bdata"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_local_file_too_large(self, tmp_path):
        path = tmp_path / "x.bam"
        path.write_bytes(b"0123456789")
        with pytest.raises(ValueError, match="exceeding"):
            await fetch_bytes(str(path), max_bytes=5)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_missing_local_file(self, tmp_path):
        with pytest.raises(OSError):
            await fetch_bytes(str(tmp_path / "missing.bam"))

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_remote_file(self, httpx_mock):
        httpx_mock.add_response(url=BAM_URL, content=b"remote-bytes")
        assert await fetch_bytes(BAM_URL) == b"remote-bytes"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_remote_error_status(self, httpx_mock):
        httpx_mock.add_response(url=BAM_URL, status_code=404)
        with pytest.raises(httpx.HTTPStatusError):
            await fetch_bytes(BAM_URL)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_remote_too_large(self, httpx_mock):
        """A declared Content-Length over the limit is refused before the body is read."""
        httpx_mock.add_response(url=BAM_URL, content=b"x" * 100)
        with pytest.raises(ValueError, match="exceeding"):
            await fetch_bytes(BAM_URL, max_bytes=10)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_remote_too_large_stops_reading(self, httpx_mock):
        """Without Content-Length the download is abandoned once the limit is passed."""
        pulled = []

        def chunks():
            for i in range(1000):
                pulled.append(i)
                yield b"x" * 100

        httpx_mock.add_response(url=BAM_URL, stream=IteratorStream(chunks()))
        with pytest.raises(ValueError, match="exceeding"):
            await fetch_bytes(BAM_URL, max_bytes=1000)
        assert len(pulled) < 20

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_remote_streamed_within_limit(self, httpx_mock):
        httpx_mock.add_response(url=BAM_URL, stream=IteratorStream([b"abc", b"def"]))
        assert await fetch_bytes(BAM_URL, max_bytes=6) == b"abcdef"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_redirect_to_private_address_blocked(self, httpx_mock):
        httpx_mock.add_response(
            url=BAM_URL,
            status_code=302,
            headers={"Location": "http://169.254.169.254/latest/meta-data"},
        )
        with pytest.raises(ValueError, match="private/internal"):
            await fetch_bytes(BAM_URL)
        assert [str(r.url) for r in httpx_mock.get_requests()] == [BAM_URL]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_relative_redirect_to_loopback_host_blocked(self, httpx_mock):
        httpx_mock.add_response(
            url="http://127.0.0.1:8080/start.bam",
            status_code=301,
            headers={"Location": "/admin/secret.bam"},
        )
        with pytest.raises(ValueError, match="private/internal"):
            await fetch_bytes("http://127.0.0.1:8080/start.bam")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_redirect_to_public_address_followed(self, httpx_mock):
        mirror = "https://93.184.216.34/mirror/sample.bam"
        httpx_mock.add_response(url=BAM_URL, status_code=302, headers={"Location": mirror})
        httpx_mock.add_response(url=mirror, content=b"mirrored")
        assert await fetch_bytes(BAM_URL) == b"mirrored"
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_reader_over_http(self, httpx_mock, scenario_bam):
        httpx_mock.add_response(url=BAM_URL, content=scenario_bam)
        reader = NonIndexedBamReader(BAM_URL)

        first = await reader.read_alignments("chr1", 90, 200)
        second = await reader.read_alignments("chr1", 400, 600)

        assert [a.read_name for a in first.alignments] == ["read1", "read2"]
        assert [a.read_name for a in second.alignments] == ["read3"]
        assert len(httpx_mock.get_requests()) == 1
