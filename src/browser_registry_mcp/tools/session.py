"""Host session lifecycle tools."""

from typing import Annotated
from pydantic import Field
from fastmcp import FastMCP, Context

from ..core.exceptions import SessionNotFoundError
from .common import get_context, tool_error

session_router = FastMCP(
    name="SessionTools",
    instructions="Host session lifecycle management",
)


@session_router.tool(
    description="Create a new host session that holds browsers, pages and elements",
    tags={"session", "lifecycle"},
)
async def create_session(ctx: Context) -> dict:
    """
    Create a new, empty host session.

    Returns a session_id that must be used in all subsequent tool calls.
    The session will be automatically closed after the configured timeout.

    Returns:
        Session ID and creation time
    """
    app_ctx = get_context(ctx)

    try:
        session = await app_ctx.session_manager.create_session()
        await ctx.info(f"Created session: {session.session_id}")

        return {
            "success": True,
            "session_id": session.session_id,
            "created_at": session.created_at,
        }

    except Exception as e:
        raise tool_error(e)


@session_router.tool(
    description="Close a host session, stopping its browsers and releasing all handles",
    tags={"session", "lifecycle"},
)
async def close_session(
    ctx: Context,
    session_id: Annotated[
        str,
        Field(description="Session ID to close"),
    ],
) -> dict:
    """
    Close a host session and release its resources.

    Every browser of the session is stopped (disconnected ones are only
    cleaned up) and the browser, page and element registries are dropped.

    Args:
        session_id: The session ID to close

    Returns:
        Confirmation that the session was closed
    """
    app_ctx = get_context(ctx)

    try:
        closed = await app_ctx.session_manager.close_session(session_id)

        if not closed:
            raise SessionNotFoundError(session_id)

        await ctx.info(f"Closed session: {session_id}")

        return {
            "success": True,
            "closed": True,
            "session_id": session_id,
            "message": "Session closed successfully",
        }

    except Exception as e:
        raise tool_error(e)
