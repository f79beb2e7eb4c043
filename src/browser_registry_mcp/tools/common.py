"""Helpers shared by the tool routers."""

import logging
from typing import Optional

from fastmcp import Context
from fastmcp.exceptions import ToolError

from ..core.lifecycle import Confirm
from ..core.session_manager import HostSession
from ..utils.error_mapper import error_response_for

logger = logging.getLogger(__name__)


def get_context(ctx: Context):
    """Helper to retrieve app context from lifespan."""
    return ctx.request_context.lifespan_context


def get_session(ctx: Context, session_id: str) -> HostSession:
    """Get session from manager."""
    app_ctx = get_context(ctx)
    return app_ctx.session_manager.get_session(session_id)


def tool_error(exc: Exception) -> ToolError:
    """Build the ToolError carrying the structured error response for ``exc``."""
    error_response = error_response_for(exc)
    logger.debug(f"Tool failed with {error_response.error_code}: {error_response.message}")
    return ToolError(str(error_response.to_dict()))


def confirmation(ctx: Context, force: bool) -> Optional[Confirm]:
    """
    Confirmation callback for destructive commands.

    None (no prompt) when ``force`` is set or confirmation is disabled in
    the server settings; otherwise the client is asked through elicitation.
    """
    if force or not get_context(ctx).settings.confirm_destructive:
        return None

    async def confirm(prompt: str) -> bool:
        try:
            result = await ctx.elicit(prompt, response_type=None)
        except Exception as e:
            logger.warning(f"Confirmation request failed, not proceeding: {e}")
            return False
        return result.action == "accept"

    return confirm
