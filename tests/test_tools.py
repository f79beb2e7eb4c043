"""Tests for the MCP tool functions, called through the decorated tools' ``fn``."""

import pytest
import pytest_asyncio
from unittest.mock import MagicMock, AsyncMock

from fastmcp.exceptions import ToolError

from browser_registry_mcp.core.session_manager import SessionManager
from browser_registry_mcp.tools import browser, element, meta, page, session


@pytest.fixture
def app_ctx(settings, browsers, pages, elements):
    """Lifespan context with real services over the mocked engine."""
    app_ctx = MagicMock()
    app_ctx.settings = settings
    app_ctx.browsers = browsers
    app_ctx.pages = pages
    app_ctx.elements = elements
    app_ctx.session_manager = SessionManager(teardown=browsers.teardown_session)
    return app_ctx


@pytest.fixture
def mock_ctx(app_ctx):
    """Create a mock FastMCP Context."""
    ctx = MagicMock()
    ctx.request_context.lifespan_context = app_ctx
    ctx.info = AsyncMock()
    ctx.warning = AsyncMock()
    ctx.elicit = AsyncMock(return_value=MagicMock(action="accept"))
    return ctx


@pytest_asyncio.fixture
async def session_id(mock_ctx):
    result = await session.create_session.fn(mock_ctx)
    return result["session_id"]


class TestSessionTools:
    """Tests for session and meta tools."""

    @pytest.mark.asyncio
    async def test_create_and_close(self, mock_ctx):
        created = await session.create_session.fn(mock_ctx)
        assert created["success"] is True

        listed = await meta.list_sessions.fn(mock_ctx)
        assert listed["count"] == 1

        closed = await session.close_session.fn(mock_ctx, session_id=created["session_id"])
        assert closed["closed"] is True

    @pytest.mark.asyncio
    async def test_close_unknown_session(self, mock_ctx):
        with pytest.raises(ToolError) as exc:
            await session.close_session.fn(mock_ctx, session_id="sess_missing")

        assert "SESSION_NOT_FOUND" in str(exc.value)

    @pytest.mark.asyncio
    async def test_ping(self):
        result = await meta.ping.fn()

        assert result["status"] == "ok"
        assert "Chrome" in result["supported_browsers"]


class TestPipeline:
    """Handles returned by one tool are accepted by the next."""

    @pytest.mark.asyncio
    async def test_handles_chain(self, mock_ctx, session_id, engine):
        engine.query_selector_all.return_value = [MagicMock(), MagicMock()]
        engine.evaluate.return_value = "a"

        started = await browser.start_browser.fn(mock_ctx, session_id=session_id, browser_type="chrome")
        assert started["id"] == "Chrome"

        opened = await page.new_page.fn(mock_ctx, session_id=session_id, browser=started)
        assert opened["id"] == "Chrome_Page1"

        found = await element.find_elements.fn(
            mock_ctx, session_id=session_id, selector="a", page=opened
        )
        assert found["count"] == 2

        clicked = await element.click_element.fn(
            mock_ctx, session_id=session_id, element=found["elements"][1]
        )
        assert clicked["index"] == 1

    @pytest.mark.asyncio
    async def test_string_references(self, mock_ctx, session_id, engine):
        await browser.start_browser.fn(mock_ctx, session_id=session_id, browser_type="Firefox")
        await page.new_page.fn(mock_ctx, session_id=session_id, browser="firefox", name="docs")

        navigated = await page.navigate_page.fn(
            mock_ctx, session_id=session_id, url="example.com", page="docs"
        )

        assert navigated["id"] == "Firefox_docs"
        assert navigated["url"] == "http://example.com"

        listed = await page.get_pages.fn(mock_ctx, session_id=session_id, browser="Firefox")
        assert listed["count"] == 1

    @pytest.mark.asyncio
    async def test_click_navigation_warning(self, mock_ctx, session_id, engine):
        engine.query_selector_all.return_value = [MagicMock()]
        engine.click.return_value = False
        await browser.start_browser.fn(mock_ctx, session_id=session_id, browser_type="Chrome")
        await page.new_page.fn(mock_ctx, session_id=session_id, browser="Chrome")
        found = await element.find_elements.fn(mock_ctx, session_id=session_id, selector="a", page="Page1")

        result = await element.click_element.fn(
            mock_ctx,
            session_id=session_id,
            element=found["elements"][0]["id"],
            wait_for_navigation=True,
        )

        assert "warning" in result
        mock_ctx.warning.assert_awaited_once()


class TestErrors:
    """Tests for structured tool errors."""

    @pytest.mark.asyncio
    async def test_missing_reference(self, mock_ctx, session_id):
        await browser.start_browser.fn(mock_ctx, session_id=session_id, browser_type="Chrome")
        await page.new_page.fn(mock_ctx, session_id=session_id, browser="Chrome")

        with pytest.raises(ToolError) as exc:
            await page.remove_page.fn(mock_ctx, session_id=session_id)

        assert "MISSING_IDENTIFIER" in str(exc.value)

    @pytest.mark.asyncio
    async def test_unavailable(self, mock_ctx, session_id):
        with pytest.raises(ToolError) as exc:
            await element.click_element.fn(mock_ctx, session_id=session_id, element="Page1_Element_1_0")

        assert "RESOURCE_UNAVAILABLE" in str(exc.value)

    @pytest.mark.asyncio
    async def test_not_found(self, mock_ctx, session_id):
        await browser.start_browser.fn(mock_ctx, session_id=session_id, browser_type="Chrome")

        with pytest.raises(ToolError) as exc:
            await browser.stop_browser.fn(mock_ctx, session_id=session_id, browser="Edge")

        assert "RESOURCE_NOT_FOUND" in str(exc.value)

    @pytest.mark.asyncio
    async def test_wait_timeout(self, mock_ctx, session_id, engine):
        await browser.start_browser.fn(mock_ctx, session_id=session_id, browser_type="Chrome")
        await page.new_page.fn(mock_ctx, session_id=session_id, browser="Chrome")

        with pytest.raises(ToolError) as exc:
            await element.wait_for_element.fn(
                mock_ctx, session_id=session_id, selector="#never", page="Page1", timeout_ms=30
            )

        assert "RESOURCE_UNAVAILABLE" in str(exc.value)


class TestDestructiveTools:
    """Tests for stop and remove, with and without confirmation."""

    @pytest.mark.asyncio
    async def test_stop_dead_browser_is_cleaned_up(self, mock_ctx, session_id, engine):
        await browser.start_browser.fn(mock_ctx, session_id=session_id, browser_type="Chrome")
        engine.is_connected.return_value = False

        result = await browser.stop_browser.fn(mock_ctx, session_id=session_id, browser="Chrome")

        assert result["outcome"] == "cleaned_up"
        assert result["success"] is True

    @pytest.mark.asyncio
    async def test_declined_confirmation(self, mock_ctx, session_id, settings):
        settings.confirm_destructive = True
        mock_ctx.elicit.return_value = MagicMock(action="decline")
        await browser.start_browser.fn(mock_ctx, session_id=session_id, browser_type="Chrome")

        result = await browser.stop_browser.fn(mock_ctx, session_id=session_id, browser="Chrome")

        assert result["outcome"] == "cancelled"
        mock_ctx.elicit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_force_skips_confirmation(self, mock_ctx, session_id, settings):
        settings.confirm_destructive = True
        await browser.start_browser.fn(mock_ctx, session_id=session_id, browser_type="Chrome")
        await page.new_page.fn(mock_ctx, session_id=session_id, browser="Chrome")

        result = await page.remove_page.fn(
            mock_ctx, session_id=session_id, page="Page1", force=True
        )

        assert result["outcome"] == "closed"
        mock_ctx.elicit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_get_browsers_after_stop(self, mock_ctx, session_id):
        await browser.start_browser.fn(mock_ctx, session_id=session_id, browser_type="Chrome")
        await browser.stop_browser.fn(mock_ctx, session_id=session_id, browser="Chrome")

        result = await browser.get_browsers.fn(mock_ctx, session_id=session_id)

        assert result["count"] == 0
