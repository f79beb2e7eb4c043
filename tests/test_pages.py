"""Tests for page commands."""

import pytest
from unittest.mock import MagicMock

from browser_registry_mcp.core.exceptions import (
    AlreadyDisconnectedError,
    DomainNotAllowedError,
    EngineFailureError,
    ResourceUnavailableError,
)
from browser_registry_mcp.core.handles import ResourceKind
from browser_registry_mcp.core.lifecycle import Outcome
from browser_registry_mcp.core.registry import get_registry

from conftest import add_browser, add_page


class TestCreate:
    """Tests for opening pages."""

    @pytest.mark.asyncio
    async def test_first_page_is_page1(self, session, pages, engine):
        add_browser(session, "Chrome")

        page = await pages.create(session, "Chrome")

        assert page.id == "Chrome_Page1"
        assert page.name == "Page1"
        assert page.browser_id == "Chrome"
        engine.set_viewport.assert_awaited_once_with(page.connection, 1280, 720)
        engine.navigate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_auto_name_uses_highest_plus_one(self, session, pages):
        add_browser(session, "Chrome")
        add_page(session, "Chrome", "Page1")
        add_page(session, "Chrome", "Page3")

        page = await pages.create(session, "Chrome")

        assert page.id == "Chrome_Page4"

    @pytest.mark.asyncio
    async def test_custom_name(self, session, pages):
        add_browser(session, "Firefox")

        page = await pages.create(session, browser_name="firefox", name="login")

        assert page.id == "Firefox_login"

    @pytest.mark.asyncio
    async def test_browser_handle_reference(self, session, pages):
        browser = add_browser(session, "Edge")

        page = await pages.create(session, browser)

        assert page.id == "Edge_Page1"

    @pytest.mark.asyncio
    async def test_navigates_to_url(self, session, pages, engine):
        add_browser(session, "Chrome")

        page = await pages.create(session, "Chrome", url="example.com", wait_for_load=True)

        args = engine.navigate.await_args
        assert args.args[0] is page.connection
        assert args.args[1] == "http://example.com"
        assert args.kwargs["wait_until"] == "load"

    @pytest.mark.asyncio
    async def test_disconnected_browser(self, session, pages, engine):
        add_browser(session, "Chrome")
        engine.is_connected.return_value = False

        with pytest.raises(AlreadyDisconnectedError):
            await pages.create(session, "Chrome")

        engine.new_page.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_no_browsers(self, session, pages):
        with pytest.raises(ResourceUnavailableError):
            await pages.create(session, "Chrome")

    @pytest.mark.asyncio
    async def test_failed_navigation_closes_orphan(self, session, pages, engine):
        add_browser(session, "Chrome")
        engine.navigate.side_effect = EngineFailureError("Navigation", TimeoutError())

        with pytest.raises(EngineFailureError):
            await pages.create(session, "Chrome", url="https://example.com")

        engine.close_page.assert_awaited_once()
        assert get_registry(session, ResourceKind.PAGE) is None

    @pytest.mark.asyncio
    async def test_same_name_replaces_page(self, session, pages, engine):
        add_browser(session, "Chrome")
        old = add_page(session, "Chrome", "login")

        new = await pages.create(session, "Chrome", name="login")

        engine.close_page.assert_awaited_once_with(old.connection)
        assert get_registry(session, ResourceKind.PAGE).get("Chrome_login") is new

    @pytest.mark.asyncio
    async def test_blocked_domain(self, session, pages, settings, engine):
        settings.allowed_domains = "example.com"
        add_browser(session, "Chrome")

        with pytest.raises(DomainNotAllowedError):
            await pages.create(session, "Chrome", url="https://evil.test")

        engine.new_page.assert_not_awaited()


class TestList:
    """Tests for listing pages."""

    @pytest.mark.asyncio
    async def test_empty_session(self, session, pages):
        assert await pages.list_pages(session) == []

    @pytest.mark.asyncio
    async def test_filter_by_browser(self, session, pages):
        add_browser(session, "Chrome")
        add_browser(session, "Firefox")
        add_page(session, "Chrome", "Page1")
        add_page(session, "Firefox", "Page1")

        listed = await pages.list_pages(session, "chrome")

        assert [p["id"] for p in listed] == ["Chrome_Page1"]
        assert listed[0]["browser_type"] == "Chrome"
        assert listed[0]["title"] == "Example Domain"

    @pytest.mark.asyncio
    async def test_orphan_page_shows_unknown_browser(self, session, pages):
        """Pages of a stopped browser stay listed."""
        add_page(session, "Chrome", "Page1")

        listed = await pages.list_pages(session, "Chrome")

        assert listed[0]["browser_type"] == "Unknown"

    @pytest.mark.asyncio
    async def test_closed_page_listed(self, session, pages, engine):
        add_page(session, "Chrome", "Page1")
        engine.is_page_closed.return_value = True

        listed = await pages.list_pages(session)

        assert listed[0]["is_closed"] is True
        assert listed[0]["title"] == "Unknown"
        engine.get_title.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unreadable_title(self, session, pages, engine):
        add_page(session, "Chrome", "Page1")
        engine.get_title.side_effect = EngineFailureError("Reading title")

        listed = await pages.list_pages(session)

        assert listed[0]["title"] == "Unknown"

    @pytest.mark.asyncio
    async def test_filter_by_page_id(self, session, pages):
        add_page(session, "Chrome", "Page1")
        add_page(session, "Chrome", "Page2")

        listed = await pages.list_pages(session, page_id="Chrome_Page2")

        assert [p["name"] for p in listed] == ["Page2"]

    @pytest.mark.asyncio
    async def test_filter_by_short_page_name(self, session, pages):
        add_page(session, "Chrome", "Page1")
        add_page(session, "Firefox", "Page1")
        add_page(session, "Chrome", "Page2")

        listed = await pages.list_pages(session, page_id="page1")

        assert [p["id"] for p in listed] == ["Chrome_Page1", "Firefox_Page1"]


class TestNavigateAndRemove:
    """Tests for navigation and removal."""

    @pytest.mark.asyncio
    async def test_navigate_by_short_name(self, session, pages, engine):
        page = add_page(session, "Chrome", "Page1")

        result = await pages.navigate(session, "example.org/docs", "Page1", timeout_ms=5000)

        assert result["id"] == "Chrome_Page1"
        assert result["url"] == "http://example.org/docs"
        engine.navigate.assert_awaited_once_with(
            page.connection,
            "http://example.org/docs",
            5000,
            wait_until="load",
            referer=None,
        )

    @pytest.mark.asyncio
    async def test_navigate_invalid_url(self, session, pages):
        add_page(session, "Chrome", "Page1")

        with pytest.raises(ValueError):
            await pages.navigate(session, "   ", "Page1")

    @pytest.mark.asyncio
    async def test_remove_page(self, session, pages):
        add_page(session, "Chrome", "Page1")

        result = await pages.remove(session, "Page1")

        assert result.outcome is Outcome.CLOSED
        assert len(get_registry(session, ResourceKind.PAGE)) == 0

    @pytest.mark.asyncio
    async def test_remove_closed_page(self, session, pages, engine):
        add_page(session, "Chrome", "Page1", connection=MagicMock())
        engine.is_page_closed.return_value = True

        result = await pages.remove(session, "Chrome_Page1")

        assert result.outcome is Outcome.CLEANED_UP
