"""MCP tool definitions organized by resource kind."""

from fastmcp import FastMCP

from .meta import meta_router
from .session import session_router
from .browser import browser_router
from .page import page_router
from .element import element_router


def create_tool_router() -> FastMCP:
    """Create empty router - tools will be imported async in setup."""
    return FastMCP("BrowserRegistryTools")


async def import_all_tools(router: FastMCP) -> None:
    """Import all tool sub-routers into the main router (async)."""
    await router.import_server(meta_router)
    await router.import_server(session_router)
    await router.import_server(browser_router)
    await router.import_server(page_router)
    await router.import_server(element_router)


__all__ = ["create_tool_router", "import_all_tools"]
