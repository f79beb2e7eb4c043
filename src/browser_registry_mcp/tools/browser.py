"""Browser install and lifecycle tools."""

from typing import Annotated, Optional, Union
from pydantic import Field
from fastmcp import FastMCP, Context

from .common import confirmation, get_context, get_session, tool_error

browser_router = FastMCP(
    name="BrowserTools",
    instructions="Install, start, list and stop browsers",
)

BrowserReference = Annotated[
    Optional[Union[str, dict]],
    Field(description="Browser id or type name (e.g. 'Chrome'), or a browser handle returned by start_browser"),
]


@browser_router.tool(
    description="Install a browser type into the local browser storage",
    tags={"browser", "install"},
)
async def install_browser(
    ctx: Context,
    browser_type: Annotated[
        str,
        Field(description="Browser type: Chrome, Chromium, ChromeHeadlessShell, Firefox or Edge"),
    ],
) -> dict:
    """
    Prepare a browser type for use.

    Args:
        browser_type: Browser type name (case-insensitive)

    Returns:
        Install path and whether the browser was already installed
    """
    app_ctx = get_context(ctx)

    try:
        result = await app_ctx.browsers.install(browser_type)
        await ctx.info(f"Installed {result['browser_type']} at {result['install_path']}")
        return result

    except Exception as e:
        raise tool_error(e)


@browser_router.tool(
    description="Uninstall a browser type, stopping it first if it is running",
    tags={"browser", "install"},
)
async def uninstall_browser(
    ctx: Context,
    session_id: Annotated[str, Field(description="Active session ID")],
    browser_type: Annotated[
        str,
        Field(description="Browser type: Chrome, Chromium, ChromeHeadlessShell, Firefox or Edge"),
    ],
    force: Annotated[
        bool,
        Field(description="Skip the confirmation prompt when stopping a running browser"),
    ] = False,
) -> dict:
    """
    Stop a running browser of this type in the session, then remove its install.

    Args:
        session_id: Active session ID
        browser_type: Browser type name (case-insensitive)
        force: Do not ask for confirmation

    Returns:
        Whether an install was removed, and the stop outcome if one was running
    """
    app_ctx = get_context(ctx)

    try:
        session = get_session(ctx, session_id)
        async with session.lock:
            return await app_ctx.browsers.uninstall(
                session, browser_type, confirm=confirmation(ctx, force)
            )

    except Exception as e:
        raise tool_error(e)


@browser_router.tool(
    description="Start a browser and register it in the session under its type name",
    tags={"browser", "lifecycle"},
)
async def start_browser(
    ctx: Context,
    session_id: Annotated[str, Field(description="Active session ID")],
    browser_type: Annotated[
        Optional[str],
        Field(description="Browser type to start (defaults to the server's default browser)"),
    ] = None,
    headless: Annotated[
        bool,
        Field(description="Run browser in headless mode (no visible window)"),
    ] = False,
    width: Annotated[
        Optional[int],
        Field(description="Viewport width in pixels"),
    ] = None,
    height: Annotated[
        Optional[int],
        Field(description="Viewport height in pixels"),
    ] = None,
    arguments: Annotated[
        Optional[list[str]],
        Field(description="Extra command-line arguments for the browser"),
    ] = None,
) -> dict:
    """
    Launch a browser.

    The browser is registered with id = its type name, e.g. 'Chrome'. A
    browser of the same type already registered in the session is stopped
    and replaced.

    Args:
        session_id: Active session ID
        browser_type: Browser type name (case-insensitive)
        headless: Whether to run in headless mode
        width: Optional viewport width
        height: Optional viewport height
        arguments: Extra browser arguments

    Returns:
        The browser handle; pass it (or its id) to new_page
    """
    app_ctx = get_context(ctx)

    try:
        session = get_session(ctx, session_id)
        async with session.lock:
            handle = await app_ctx.browsers.start(
                session,
                browser_type or app_ctx.settings.default_browser,
                headless=headless,
                width=width,
                height=height,
                arguments=arguments or (),
            )

        await ctx.info(f"Started browser: {handle.id}")
        return {"success": True, **handle.to_dict()}

    except Exception as e:
        raise tool_error(e)


@browser_router.tool(
    description="List installed browser types and browsers registered in the session",
    tags={"browser", "info"},
)
async def get_browsers(
    ctx: Context,
    session_id: Annotated[str, Field(description="Active session ID")],
) -> dict:
    """
    List browsers.

    Registered browsers whose process has died are still listed, with
    running set to false; stop them to clean up.

    Args:
        session_id: Active session ID

    Returns:
        Browser entries with installed, registered and running flags
    """
    app_ctx = get_context(ctx)

    try:
        session = get_session(ctx, session_id)
        browsers = await app_ctx.browsers.list_browsers(session)
        return {
            "browsers": browsers,
            "count": len(browsers),
        }

    except Exception as e:
        raise tool_error(e)


@browser_router.tool(
    description="Stop a browser and remove it from the session",
    tags={"browser", "lifecycle"},
)
async def stop_browser(
    ctx: Context,
    session_id: Annotated[str, Field(description="Active session ID")],
    browser: BrowserReference = None,
    force: Annotated[
        bool,
        Field(description="Skip the confirmation prompt"),
    ] = False,
) -> dict:
    """
    Stop a browser.

    A browser that is already disconnected is only removed from the
    session and reported as cleaned up. Its pages stay registered.

    Args:
        session_id: Active session ID
        browser: Browser id, type name or handle
        force: Do not ask for confirmation

    Returns:
        Outcome: closed, cleaned_up or cancelled
    """
    app_ctx = get_context(ctx)

    try:
        session = get_session(ctx, session_id)
        async with session.lock:
            result = await app_ctx.browsers.stop(
                session, browser, confirm=confirmation(ctx, force)
            )

        await ctx.info(result.message)
        return result.to_dict()

    except Exception as e:
        raise tool_error(e)
