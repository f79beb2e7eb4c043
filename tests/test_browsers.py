"""Tests for browser commands."""

import pytest
from unittest.mock import AsyncMock

from browser_registry_mcp.core.exceptions import (
    EngineFailureError,
    ResourceNotFoundError,
    UnsupportedBrowserError,
)
from browser_registry_mcp.core.handles import ResourceKind, SupportedBrowser
from browser_registry_mcp.core.lifecycle import Outcome
from browser_registry_mcp.core.registry import get_registry

from conftest import add_browser, add_page


class TestInstall:
    """Tests for install and uninstall."""

    @pytest.mark.asyncio
    async def test_install_creates_directory(self, browsers, settings):
        result = await browsers.install("firefox")

        assert result["browser_type"] == "Firefox"
        assert result["already_installed"] is False
        assert (settings.storage_path / "Firefox").is_dir()

    @pytest.mark.asyncio
    async def test_install_twice(self, browsers):
        await browsers.install("Chrome")
        result = await browsers.install("Chrome")

        assert result["already_installed"] is True

    @pytest.mark.asyncio
    async def test_install_unsupported(self, browsers):
        with pytest.raises(UnsupportedBrowserError):
            await browsers.install("Netscape")

    @pytest.mark.asyncio
    async def test_uninstall_stops_running_browser(self, session, browsers, engine, settings):
        await browsers.install("Chrome")
        add_browser(session, "Chrome")

        result = await browsers.uninstall(session, "chrome")

        assert result["removed"] is True
        assert result["stopped"]["outcome"] == "closed"
        engine.close.assert_awaited_once()
        assert not (settings.storage_path / "Chrome").exists()

    @pytest.mark.asyncio
    async def test_uninstall_cancelled_keeps_install(self, session, browsers, settings):
        await browsers.install("Chrome")
        add_browser(session, "Chrome")

        result = await browsers.uninstall(session, "Chrome", confirm=AsyncMock(return_value=False))

        assert result["outcome"] == "cancelled"
        assert (settings.storage_path / "Chrome").is_dir()

    @pytest.mark.asyncio
    async def test_uninstall_not_installed(self, session, browsers):
        result = await browsers.uninstall(session, "Edge")

        assert result["removed"] is False
        assert result["stopped"] is None


class TestStart:
    """Tests for starting browsers."""

    @pytest.mark.asyncio
    async def test_start_registers_by_type_name(self, session, browsers, engine):
        handle = await browsers.start(session, "chrome", headless=True)

        assert handle.id == "Chrome"
        assert handle.viewport == "1280x720"
        assert get_registry(session, ResourceKind.BROWSER).get("Chrome") is handle
        args = engine.launch.await_args.args
        assert args[0] is SupportedBrowser.CHROME
        assert args[1] is None

    @pytest.mark.asyncio
    async def test_start_uses_install_path(self, session, browsers, engine, settings):
        await browsers.install("Firefox")

        await browsers.start(session, "Firefox", width=800, height=600)

        args = engine.launch.await_args.args
        assert args[1] == settings.storage_path / "Firefox"
        assert args[3:5] == (800, 600)

    @pytest.mark.asyncio
    async def test_start_replaces_existing(self, session, browsers, engine):
        first = await browsers.start(session, "Chrome")
        second = await browsers.start(session, "Chrome")

        engine.close.assert_awaited_once_with(first.connection)
        assert get_registry(session, ResourceKind.BROWSER).get("Chrome") is second

    @pytest.mark.asyncio
    async def test_launch_failure_registers_nothing(self, session, browsers, engine):
        engine.launch.side_effect = EngineFailureError("Launching Chrome", RuntimeError("no driver"))

        with pytest.raises(EngineFailureError):
            await browsers.start(session, "Chrome")

        assert get_registry(session, ResourceKind.BROWSER) is None


class TestStopAndList:
    """Tests for stop, describe and list."""

    @pytest.mark.asyncio
    async def test_stop_by_name_ignores_case(self, session, browsers):
        add_browser(session, "Chrome")

        result = await browsers.stop(session, "chrome")

        assert result.outcome is Outcome.CLOSED
        assert result.resource_id == "Chrome"

    @pytest.mark.asyncio
    async def test_stop_unknown(self, session, browsers):
        add_browser(session, "Chrome")

        with pytest.raises(ResourceNotFoundError):
            await browsers.stop(session, "Firefox")

    @pytest.mark.asyncio
    async def test_list_shows_stale_entries(self, session, browsers, engine):
        """A browser whose process died is listed, not removed."""
        add_browser(session, "Chrome")
        add_page(session, "Chrome", "Page1")
        engine.is_connected.return_value = False

        listed = await browsers.list_browsers(session)

        assert len(listed) == 1
        assert listed[0]["id"] == "Chrome"
        assert listed[0]["running"] is False
        assert listed[0]["registered"] is True
        assert listed[0]["page_count"] == 1
        assert "Chrome" in get_registry(session, ResourceKind.BROWSER)

    @pytest.mark.asyncio
    async def test_list_includes_installed_types(self, session, browsers):
        await browsers.install("Edge")

        listed = await browsers.list_browsers(session)

        assert [b["id"] for b in listed] == ["Edge"]
        assert listed[0]["installed"] is True
        assert listed[0]["registered"] is False

    @pytest.mark.asyncio
    async def test_teardown_stops_every_browser(self, session, browsers, engine):
        add_browser(session, "Chrome")
        add_browser(session, "Firefox")

        assert await browsers.teardown_session(session) == 2
        assert engine.close.await_count == 2
