"""MCP auth: the studio surface (posting, moderation, dashboards) can be gated by a key."""

from __future__ import annotations

import os

SERVER_MODES = ("feed", "studio", "all")


def require_studio_scope() -> None:
    """Raises PermissionError if studio tools are gated and no key is set."""
    from ...config.runtime import get_settings

    settings = get_settings()
    if not settings.require_studio_key:
        return
    if not os.environ.get("ADFEED_STUDIO_KEY"):
        raise PermissionError("Studio requires ADFEED_STUDIO_KEY to be set")


def check_scope(mode: str) -> None:
    """Check scope for the given server mode. Call at server start."""
    if mode not in SERVER_MODES:
        raise ValueError(f"Unknown mode: {mode!r}")
    if mode in ("studio", "all"):
        require_studio_scope()
