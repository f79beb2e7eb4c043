"""Page lifecycle and navigation tools."""

from typing import Annotated, Literal, Optional, Union
from pydantic import Field
from fastmcp import FastMCP, Context

from .common import confirmation, get_context, get_session, tool_error

page_router = FastMCP(
    name="PageTools",
    instructions="Open, list, navigate and remove browser pages",
)

BrowserReference = Annotated[
    Optional[Union[str, dict]],
    Field(description="Browser id or type name (e.g. 'Chrome'), or a browser handle"),
]

PageReference = Annotated[
    Optional[Union[str, dict]],
    Field(description="Page id (e.g. 'Chrome_Page1'), short name (e.g. 'Page1'), or a page handle"),
]


@page_router.tool(
    description="Open a new page in a browser",
    tags={"page", "lifecycle"},
)
async def new_page(
    ctx: Context,
    session_id: Annotated[str, Field(description="Active session ID")],
    browser: BrowserReference = None,
    name: Annotated[
        Optional[str],
        Field(description="Page name; defaults to the next free PageN"),
    ] = None,
    url: Annotated[
        Optional[str],
        Field(description="URL to open in the new page"),
    ] = None,
    wait_for_load: Annotated[
        bool,
        Field(description="Wait for the full load event instead of DOMContentLoaded"),
    ] = False,
    width: Annotated[
        Optional[int],
        Field(description="Viewport width in pixels"),
    ] = None,
    height: Annotated[
        Optional[int],
        Field(description="Viewport height in pixels"),
    ] = None,
) -> dict:
    """
    Open a page and register it as '{browserId}_{name}'.

    Args:
        session_id: Active session ID
        browser: Browser id, type name or handle
        name: Optional page name
        url: Optional URL to navigate to
        wait_for_load: Wait for the load event
        width: Optional viewport width
        height: Optional viewport height

    Returns:
        The page handle; pass it (or its id or name) to the element tools
    """
    app_ctx = get_context(ctx)

    try:
        session = get_session(ctx, session_id)
        async with session.lock:
            page = await app_ctx.pages.create(
                session,
                browser=browser,
                name=name or "",
                url=url or "about:blank",
                wait_for_load=wait_for_load,
                width=width,
                height=height,
            )

        await ctx.info(f"Opened page: {page.id}")
        return {"success": True, **page.to_dict()}

    except Exception as e:
        raise tool_error(e)


@page_router.tool(
    description="List pages registered in the session",
    tags={"page", "info"},
)
async def get_pages(
    ctx: Context,
    session_id: Annotated[str, Field(description="Active session ID")],
    browser: BrowserReference = None,
    page_id: Annotated[
        Optional[str],
        Field(description="Only return pages with this id or short name (e.g. 'Page1')"),
    ] = None,
) -> dict:
    """
    List pages, optionally for one browser.

    Closed pages are still listed with is_closed set; a page whose browser
    was stopped shows browser_type 'Unknown'.

    Args:
        session_id: Active session ID
        browser: Optional browser filter
        page_id: Optional page id or short name filter

    Returns:
        Page entries with URL, title and state
    """
    app_ctx = get_context(ctx)

    try:
        session = get_session(ctx, session_id)
        pages = await app_ctx.pages.list_pages(session, browser=browser, page_id=page_id)
        return {
            "pages": pages,
            "count": len(pages),
        }

    except Exception as e:
        raise tool_error(e)


@page_router.tool(
    description="Navigate a page to a URL",
    tags={"page", "navigation"},
)
async def navigate_page(
    ctx: Context,
    session_id: Annotated[str, Field(description="Active session ID")],
    url: Annotated[
        str,
        Field(description="URL to navigate to; a bare host gets an http:// prefix"),
    ],
    page: PageReference = None,
    timeout_ms: Annotated[
        Optional[int],
        Field(description="Navigation timeout in milliseconds"),
    ] = None,
    wait_until: Annotated[
        Literal["load", "domcontentloaded"],
        Field(description="Document state to wait for"),
    ] = "load",
    referer: Annotated[
        Optional[str],
        Field(description="Referer to send with the navigation (Chromium only)"),
    ] = None,
) -> dict:
    """
    Navigate a page.

    Args:
        session_id: Active session ID
        url: Target URL
        page: Page id, name or handle
        timeout_ms: Navigation timeout (default from config)
        wait_until: load or domcontentloaded
        referer: Optional referer URL

    Returns:
        Final URL, title and ready state
    """
    app_ctx = get_context(ctx)

    try:
        session = get_session(ctx, session_id)
        async with session.lock:
            result = await app_ctx.pages.navigate(
                session,
                url,
                page=page,
                timeout_ms=timeout_ms,
                wait_until=wait_until,
                referer=referer,
            )

        await ctx.info(f"Navigated {result['id']} to {result['url']}")
        return {"success": True, **result}

    except Exception as e:
        raise tool_error(e)


@page_router.tool(
    description="Close a page and remove it from the session",
    tags={"page", "lifecycle"},
)
async def remove_page(
    ctx: Context,
    session_id: Annotated[str, Field(description="Active session ID")],
    page: PageReference = None,
    force: Annotated[
        bool,
        Field(description="Skip the confirmation prompt"),
    ] = False,
) -> dict:
    """
    Close a page.

    A page that is already closed is only removed from the session and
    reported as cleaned up.

    Args:
        session_id: Active session ID
        page: Page id, name or handle
        force: Do not ask for confirmation

    Returns:
        Outcome: closed, cleaned_up or cancelled
    """
    app_ctx = get_context(ctx)

    try:
        session = get_session(ctx, session_id)
        async with session.lock:
            result = await app_ctx.pages.remove(
                session, page, confirm=confirmation(ctx, force)
            )

        await ctx.info(result.message)
        return result.to_dict()

    except Exception as e:
        raise tool_error(e)
