"""MCP auth: gate server start on a shared key when configured."""

from __future__ import annotations

import os


def require_mcp_scope() -> None:
    """Raise PermissionError if a key is required but not present."""
    from ...config.runtime import get_settings

    settings = get_settings()
    if not settings.require_mcp_key:
        return
    if not os.environ.get("SIGSTREAM_MCP_KEY"):
        raise PermissionError("MCP server requires SIGSTREAM_MCP_KEY to be set")
