"""MCP entrypoint.

Starts the rule synthesis MCP server over stdio.

Usage:
    python -m sigstream.interface.mcp_server
    # or via the script entrypoint:
    sigstream-mcp
"""

from __future__ import annotations

from .mcp.server import create_server


def main() -> None:
    from .mcp.auth import require_mcp_scope
    require_mcp_scope()
    server = create_server()
    server.run(transport="stdio")


if __name__ == "__main__":
    main()
