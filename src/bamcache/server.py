"""MCP server setup for bamcache using FastMCP."""

from __future__ import annotations

from mcp.server.fastmcp import FastMCP

from .config import BamCacheConfig
from .core.tools import (
    handle_get_coverage,
    handle_list_contigs,
    handle_query_alignments,
)


def create_server(config: BamCacheConfig | None = None) -> FastMCP:
    """Create and configure the bamcache MCP server."""
    if config is None:
        config = BamCacheConfig.from_env()

    mcp = FastMCP(name="bamcache", host=config.host, port=config.port)

    # -- Tools ---------------------------------------------------------------
    # Thin wrappers delegate to the handlers in core/tools.py.
    # FastMCP derives the JSON-Schema from the function signature.

    @mcp.tool(
        description=(
            "List chromosomes/contigs declared in a BAM file with the number of "
            "decoded alignments on each. The file is decoded once and kept in memory."
        ),
    )
    async def list_contigs(file_path: str) -> str:
        result = await handle_list_contigs({"file_path": file_path}, config)
        return str(result["content"][0]["text"])

    @mcp.tool(
        description=(
            "Return depth-sampled alignments, mate pairs and a coverage summary for a "
            "region such as chr1:1000-2000 (0-based, half-open). 'chr1' and '1' are "
            "interchangeable."
        ),
    )
    async def query_alignments(
        file_path: str,
        region: str,
        include_sequence: bool = False,
    ) -> str:
        result = await handle_query_alignments(
            {"file_path": file_path, "region": region, "include_sequence": include_sequence},
            config,
        )
        return str(result["content"][0]["text"])

    @mcp.tool(description="Calculate depth of coverage statistics for a region")
    async def get_coverage(file_path: str, region: str) -> str:
        result = await handle_get_coverage({"file_path": file_path, "region": region}, config)
        return str(result["content"][0]["text"])

    return mcp
