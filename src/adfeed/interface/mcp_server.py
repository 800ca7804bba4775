"""MCP entrypoint.

Usage:
    python -m adfeed.interface.mcp_server --mode feed
    # or via the script entrypoint:
    adfeed-mcp --mode studio
"""

from __future__ import annotations

import argparse
import logging

from .mcp.auth import SERVER_MODES, check_scope
from .mcp.server import create_server


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the adfeed MCP server over stdio")
    parser.add_argument("--mode", choices=SERVER_MODES, default="all", help="Tool surface to expose")
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")
    args = parser.parse_args()

    logging.basicConfig(level=args.log_level.upper())
    check_scope(args.mode)
    server = create_server(mode=args.mode)
    server.run(transport="stdio")


if __name__ == "__main__":
    main()
