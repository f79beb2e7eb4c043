"""Meta and health check tools."""

from fastmcp import FastMCP, Context

from .. import __version__
from ..core.handles import SupportedBrowser
from .common import get_context

meta_router = FastMCP(
    name="MetaTools",
    instructions="Health check and server information tools",
)


@meta_router.tool(
    description="Health check - verify server is running and get server info",
    tags={"meta", "health"},
)
async def ping() -> dict:
    """
    Simple health check returning server status.

    Returns:
        Server status, version, and configuration info
    """
    from ..config import settings

    return {
        "status": "ok",
        "version": __version__,
        "grid_url": settings.selenium_grid_url,
        "supported_browsers": [b.value for b in SupportedBrowser],
    }


@meta_router.tool(
    description="List all active host sessions",
    tags={"meta", "sessions"},
)
async def list_sessions(ctx: Context) -> dict:
    """
    List all active host sessions with their resource counts.

    Returns:
        List of active sessions with IDs, timestamps and counts
    """
    app_ctx = get_context(ctx)
    sessions = app_ctx.session_manager.list_sessions()

    return {
        "sessions": sessions,
        "count": len(sessions),
    }
