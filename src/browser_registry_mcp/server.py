"""Main FastMCP server with lifespan management."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator

from fastmcp import FastMCP
from fastmcp.server.auth.providers.debug import DebugTokenVerifier
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from . import __version__
from .config import Settings, settings
from .core.browsers import BrowserService
from .core.elements import ElementService
from .core.engine import SeleniumEngine
from .core.lifecycle import LifecycleCoordinator
from .core.pages import PageService
from .core.session_manager import SessionManager, SessionSweeper
from .tools import create_tool_router, import_all_tools

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def create_auth_verifier():
    """Create auth verifier if API key is configured.

    Returns:
        DebugTokenVerifier instance if an API key is configured, None otherwise.
    """
    api_key = settings.get_api_key()

    if not api_key:
        logger.info("No API key configured - authentication disabled")
        return None

    def validate_token(token: str) -> bool:
        """Validate bearer token against configured API key."""
        return token == api_key

    logger.info("API key authentication enabled")
    return DebugTokenVerifier(
        validate=validate_token,
        client_id="browser-registry-mcp-client",
        scopes=["*"],
    )


@dataclass
class AppContext:
    """Lifespan context holding all services shared across tools."""

    session_manager: SessionManager
    browsers: BrowserService
    pages: PageService
    elements: ElementService
    settings: Settings


def build_services(
    app_settings: Settings,
    engine: SeleniumEngine,
) -> tuple[BrowserService, PageService, ElementService]:
    """Wire the command services around one engine and one lifecycle coordinator."""
    coordinator = LifecycleCoordinator(engine)
    browsers = BrowserService(engine, app_settings, coordinator)
    pages = PageService(engine, app_settings, browsers, coordinator)
    elements = ElementService(engine, app_settings)
    return browsers, pages, elements


@asynccontextmanager
async def app_lifespan(server: FastMCP) -> AsyncIterator[AppContext]:
    """
    Initialize services on startup, cleanup on shutdown.

    This lifespan function:
    1. Creates the Selenium engine, the command services and the SessionManager
    2. Starts the background session sweeper
    3. Yields the context for tools to access
    4. On shutdown, stops sweeper and closes all sessions (stopping their browsers)
    """
    logger.info(
        f"Starting browser registry MCP server (grid: {settings.selenium_grid_url}, "
        f"storage: {settings.storage_path})"
    )

    engine = SeleniumEngine(
        grid_url=settings.selenium_grid_url,
        script_timeout=settings.script_timeout_seconds,
        implicit_wait=settings.implicit_wait_seconds,
    )
    browsers, pages, elements = build_services(settings, engine)

    session_manager = SessionManager(
        max_sessions=settings.max_concurrent_sessions,
        max_lifetime_seconds=settings.session_max_lifetime_seconds,
        max_idle_seconds=settings.session_max_idle_seconds,
        teardown=browsers.teardown_session,
    )

    # Start background session sweeper
    sweeper = SessionSweeper(
        session_manager=session_manager,
        interval_seconds=settings.sweep_interval_seconds,
    )
    await sweeper.start()

    try:
        yield AppContext(
            session_manager=session_manager,
            browsers=browsers,
            pages=pages,
            elements=elements,
            settings=settings,
        )
    finally:
        # Shutdown: stop sweeper and close all sessions
        logger.info("Shutting down browser registry MCP server...")
        await sweeper.stop()
        closed = await session_manager.close_all()
        logger.info(f"Shutdown complete ({closed} sessions closed)")


def create_server() -> FastMCP:
    """Create and configure the main MCP server (without tools - they're added async)."""
    # Create auth verifier if API key is configured
    auth = create_auth_verifier()

    mcp = FastMCP(
        name="browser-registry-mcp",
        instructions=(
            "Browser automation over a session-scoped registry of browsers, pages "
            "and elements. Use create_session first, then start_browser, new_page "
            "and find_elements. Every tool that takes a browser, page or element "
            "accepts either the handle returned by an earlier tool or a short id "
            "such as 'Chrome', 'Page1' or 'Chrome_Page1'. "
            "Always close sessions when done with close_session."
        ),
        lifespan=app_lifespan,
        auth=auth,
    )
    return mcp


async def setup_server(mcp: FastMCP) -> None:
    """Import all tool routers into the server (async)."""
    tool_router = create_tool_router()
    await import_all_tools(tool_router)
    await mcp.import_server(tool_router)


# Create the global server instance
mcp = create_server()


# Health check endpoint for Docker/Kubernetes health probes
@mcp.custom_route("/health", methods=["GET"])
async def health_check(request: Request) -> Response:
    """Health check endpoint for container orchestration."""
    return JSONResponse({"status": "ok", "version": __version__})


def run_server() -> None:
    """Run the MCP server with HTTP transport."""
    # Setup tools before running
    asyncio.run(setup_server(mcp))

    mcp.run(
        transport="http",
        host=settings.host,
        port=settings.port,
    )
