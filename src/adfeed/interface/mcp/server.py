"""MCP server factory.

Creates a feed (consumer), studio (owners and moderators) or combined
server. Each surface registers only its own tool set.
"""

from __future__ import annotations

from mcp.server.fastmcp import FastMCP

from .tools import register_feed_tools, register_studio_tools


_SERVER_NAMES = {
    "feed": "adfeed-feed",
    "studio": "adfeed-studio",
    "all": "adfeed",
}


def create_server(mode: str = "all") -> FastMCP:
    """Build and return a configured FastMCP server.

    Args:
        mode: ``"feed"`` for browsing and engagement tools, ``"studio"``
            for posting, moderation and dashboards, ``"all"`` for both.

    Returns:
        A FastMCP instance with the appropriate tools registered.
    """
    if mode not in _SERVER_NAMES:
        raise ValueError(f"Unknown MCP mode {mode!r}; expected 'feed', 'studio' or 'all'")

    server = FastMCP(_SERVER_NAMES[mode])
    if mode in ("feed", "all"):
        register_feed_tools(server)
    if mode in ("studio", "all"):
        register_studio_tools(server)
    return server
