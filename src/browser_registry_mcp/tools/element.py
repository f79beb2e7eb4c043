"""Element discovery and interaction tools."""

from typing import Annotated, Literal, Optional, Union
from pydantic import Field
from fastmcp import FastMCP, Context

from .common import get_context, get_session, tool_error

element_router = FastMCP(
    name="ElementTools",
    instructions="Find elements by CSS selector and interact with them",
)

PageReference = Annotated[
    Optional[Union[str, dict]],
    Field(description="Page id (e.g. 'Chrome_Page1'), short name (e.g. 'Page1'), or a page handle"),
]

ElementReference = Annotated[
    Optional[Union[str, dict]],
    Field(description="Element id as returned by find_elements, or an element handle"),
]


@element_router.tool(
    description="Find elements on a page by CSS selector",
    tags={"element", "query"},
)
async def find_elements(
    ctx: Context,
    session_id: Annotated[str, Field(description="Active session ID")],
    selector: Annotated[str, Field(description="CSS selector")],
    page: PageReference = None,
    first: Annotated[
        bool,
        Field(description="Only return the first match"),
    ] = False,
    timeout_ms: Annotated[
        Optional[int],
        Field(description="How long to wait for the selector to appear, in milliseconds"),
    ] = None,
    wait_for_visible: Annotated[
        bool,
        Field(description="Wait for a visible match instead of any match"),
    ] = False,
) -> dict:
    """
    Find and register elements.

    Each match gets an id '{pageName}_Element_{timestamp}_{index}'. No match
    within the timeout gives an empty list, not an error. Repeating a find
    for the same selector on the same page replaces the earlier elements.

    Args:
        session_id: Active session ID
        selector: CSS selector
        page: Page id, name or handle
        first: Only keep the first match
        timeout_ms: Wait timeout (default from config, 0 = no wait)
        wait_for_visible: Wait for visibility

    Returns:
        Element handles with tag name, text and visibility
    """
    app_ctx = get_context(ctx)

    try:
        session = get_session(ctx, session_id)
        async with session.lock:
            handles = await app_ctx.elements.find(
                session,
                selector,
                page=page,
                first=first,
                timeout_ms=timeout_ms,
                wait_for_visible=wait_for_visible,
            )
            elements = [await app_ctx.elements.describe(h) for h in handles]

        return {
            "success": True,
            "selector": selector,
            "elements": elements,
            "count": len(elements),
        }

    except Exception as e:
        raise tool_error(e)


@element_router.tool(
    description="Click an element",
    tags={"element", "action"},
)
async def click_element(
    ctx: Context,
    session_id: Annotated[str, Field(description="Active session ID")],
    element: ElementReference = None,
    button: Annotated[
        Literal["left", "right", "middle"],
        Field(description="Mouse button"),
    ] = "left",
    click_count: Annotated[
        int,
        Field(description="Number of clicks (2 for double click)", ge=1),
    ] = 1,
    click_delay_ms: Annotated[
        int,
        Field(description="Delay between clicks in milliseconds", ge=0),
    ] = 0,
    wait_for_navigation: Annotated[
        bool,
        Field(description="Wait for a navigation triggered by the click"),
    ] = False,
    navigation_timeout_ms: Annotated[
        Optional[int],
        Field(description="Navigation wait timeout in milliseconds"),
    ] = None,
) -> dict:
    """
    Click an element.

    A navigation that does not finish in time is reported as a warning;
    the click itself happened.

    Args:
        session_id: Active session ID
        element: Element id or handle
        button: left, right or middle
        click_count: Number of clicks
        click_delay_ms: Delay between clicks
        wait_for_navigation: Wait for navigation after the click
        navigation_timeout_ms: Navigation timeout (default from config)

    Returns:
        Click result, with a warning if navigation timed out
    """
    app_ctx = get_context(ctx)

    try:
        session = get_session(ctx, session_id)
        async with session.lock:
            result = await app_ctx.elements.click(
                session,
                element,
                button=button,
                click_count=click_count,
                delay_ms=click_delay_ms,
                wait_for_navigation=wait_for_navigation,
                navigation_timeout_ms=navigation_timeout_ms,
            )

        if "warning" in result:
            await ctx.warning(result["warning"])
        return result

    except Exception as e:
        raise tool_error(e)


@element_router.tool(
    description="Type text into an element",
    tags={"element", "action"},
)
async def type_text(
    ctx: Context,
    session_id: Annotated[str, Field(description="Active session ID")],
    text: Annotated[str, Field(description="Text to type")],
    element: ElementReference = None,
    clear: Annotated[
        bool,
        Field(description="Clear existing content first"),
    ] = False,
    type_delay_ms: Annotated[
        Optional[int],
        Field(description="Delay between keystrokes in milliseconds"),
    ] = None,
    press_enter: Annotated[
        bool,
        Field(description="Press Enter after typing"),
    ] = False,
    press_tab: Annotated[
        bool,
        Field(description="Press Tab after typing"),
    ] = False,
) -> dict:
    """
    Type text into an input element.

    Args:
        session_id: Active session ID
        text: Text to type
        element: Element id or handle
        clear: Clear the field before typing
        type_delay_ms: Keystroke delay (default from config)
        press_enter: Press Enter afterwards
        press_tab: Press Tab afterwards

    Returns:
        Element handle and number of characters typed
    """
    app_ctx = get_context(ctx)

    try:
        session = get_session(ctx, session_id)
        async with session.lock:
            return await app_ctx.elements.type_text(
                session,
                text,
                element,
                clear=clear,
                delay_ms=type_delay_ms,
                press_enter=press_enter,
                press_tab=press_tab,
            )

    except Exception as e:
        raise tool_error(e)


@element_router.tool(
    description="Press a keyboard key on an element",
    tags={"element", "action"},
)
async def press_key(
    ctx: Context,
    session_id: Annotated[str, Field(description="Active session ID")],
    key: Annotated[
        str,
        Field(description="Key name (ENTER, TAB, ESCAPE, BACKSPACE, arrows, ...) or a single character"),
    ],
    element: ElementReference = None,
) -> dict:
    """
    Press a key while an element has focus.

    Args:
        session_id: Active session ID
        key: Key name or character
        element: Element id or handle

    Returns:
        Element handle and the key pressed
    """
    app_ctx = get_context(ctx)

    try:
        session = get_session(ctx, session_id)
        async with session.lock:
            return await app_ctx.elements.press_key(session, key, element)

    except Exception as e:
        raise tool_error(e)


@element_router.tool(
    description="Wait until an element matching a selector meets a condition",
    tags={"element", "wait"},
)
async def wait_for_element(
    ctx: Context,
    session_id: Annotated[str, Field(description="Active session ID")],
    selector: Annotated[str, Field(description="CSS selector")],
    page: PageReference = None,
    condition: Annotated[
        Literal["visible", "hidden", "enabled", "disabled", "textcontains", "attributeequals"],
        Field(description="Condition to wait for"),
    ] = "visible",
    value: Annotated[
        Optional[str],
        Field(description="Expected text (textcontains) or attribute value (attributeequals)"),
    ] = None,
    attribute: Annotated[
        Optional[str],
        Field(description="Attribute name for attributeequals"),
    ] = None,
    timeout_ms: Annotated[
        Optional[int],
        Field(description="Timeout in milliseconds"),
    ] = None,
    polling_interval_ms: Annotated[
        Optional[int],
        Field(description="Polling interval in milliseconds"),
    ] = None,
) -> dict:
    """
    Wait for the first element matching a selector to meet a condition.

    Conditions:
    - visible / hidden: rendered and not hidden by style (hidden also
      accepts a missing element)
    - enabled / disabled: the element's disabled state
    - textcontains: the element's text contains value
    - attributeequals: attribute equals value

    Args:
        session_id: Active session ID
        selector: CSS selector
        page: Page id, name or handle
        condition: What to wait for
        value: Expected value for text and attribute conditions
        attribute: Attribute name for attributeequals
        timeout_ms: Timeout (default from config)
        polling_interval_ms: Polling interval (default from config)

    Returns:
        The matching element, registered so it can be used by other tools
    """
    app_ctx = get_context(ctx)

    try:
        session = get_session(ctx, session_id)
        async with session.lock:
            handle = await app_ctx.elements.wait_for(
                session,
                selector,
                page=page,
                condition=condition,
                value=value,
                attribute=attribute,
                timeout_ms=timeout_ms,
                polling_interval_ms=polling_interval_ms,
            )
            element = await app_ctx.elements.describe(handle) if handle is not None else None

        result = {
            "success": True,
            "selector": selector,
            "condition": condition,
            "element": element,
        }
        if element is None:
            result["message"] = f"No element matches '{selector}'"
        return result

    except Exception as e:
        raise tool_error(e)


@element_router.tool(
    description="Read attributes, properties, bounding box and style of an element",
    tags={"element", "observation"},
)
async def get_element_attribute(
    ctx: Context,
    session_id: Annotated[str, Field(description="Active session ID")],
    element: ElementReference = None,
    name: Annotated[
        Optional[str],
        Field(description="Attribute name; all attributes when omitted"),
    ] = None,
    properties: Annotated[
        bool,
        Field(description="Include DOM properties (value, checked, href, ...)"),
    ] = False,
    bounding_box: Annotated[
        bool,
        Field(description="Include the bounding box"),
    ] = False,
    computed_style: Annotated[
        bool,
        Field(description="Include common computed style values"),
    ] = False,
) -> dict:
    """
    Inspect an element.

    Inner text, inner HTML and viewport visibility are always included.

    Args:
        session_id: Active session ID
        element: Element id or handle
        name: Optional single attribute
        properties: Include DOM properties
        bounding_box: Include x, y, width, height
        computed_style: Include computed style

    Returns:
        Requested element data
    """
    app_ctx = get_context(ctx)

    try:
        session = get_session(ctx, session_id)
        async with session.lock:
            result = await app_ctx.elements.get_attributes(
                session,
                element,
                name=name,
                properties=properties,
                bounding_box=bounding_box,
                computed_style=computed_style,
            )
        return {"success": True, **result}

    except Exception as e:
        raise tool_error(e)
