"""MCP server exposing link preview tools."""

from __future__ import annotations

import logging
from typing import Optional

from mcp.server.fastmcp import FastMCP

from .config import PreviewConfig
from .pipeline import LinkPreviewPipeline

logger = logging.getLogger("link_preview.mcp")
logger.setLevel(logging.ERROR)

mcp = FastMCP(name="link-preview")

_pipeline: Optional[LinkPreviewPipeline] = None


def _get_pipeline() -> LinkPreviewPipeline:
    # A single pipeline keeps one throttle across tool calls.
    global _pipeline
    if _pipeline is None:
        _pipeline = LinkPreviewPipeline(PreviewConfig())
    return _pipeline


@mcp.tool()
async def preview(url: str, title: str = "") -> str:
    """Fetch a web page and return its Markdown link preview."""
    result = await _get_pipeline().extract(url, title_hint=title or None)
    return f"# {result.final_title}\n\n{result.content}\n"


@mcp.tool()
async def metadata(url: str) -> dict:
    """Fetch a web page and return its title, preview image and product metadata."""
    result = await _get_pipeline().extract(url)
    return result.as_dict()


def main() -> None:
    """Entry point for running the MCP server."""
    logging.basicConfig(level=logging.ERROR)
    mcp.run()


if __name__ == "__main__":
    main()
