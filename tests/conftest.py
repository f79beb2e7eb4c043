"""Pytest fixtures for testing the browser registry MCP server."""

import time

import pytest
from unittest.mock import MagicMock, AsyncMock

from browser_registry_mcp.config import Settings
from browser_registry_mcp.core.browsers import BrowserService
from browser_registry_mcp.core.elements import ElementService
from browser_registry_mcp.core.handles import (
    BrowserHandle,
    ElementHandle,
    PageHandle,
    ResourceKind,
)
from browser_registry_mcp.core.lifecycle import LifecycleCoordinator
from browser_registry_mcp.core.pages import PageService
from browser_registry_mcp.core.registry import get_registry
from browser_registry_mcp.core.session_manager import HostSession, SessionManager


@pytest.fixture
def engine():
    """Create a mock AutomationEngine whose connections are all alive."""
    engine = MagicMock()
    engine.launch = AsyncMock(side_effect=lambda browser, *args, **kwargs: MagicMock(name=f"driver-{browser.value}"))
    engine.close = AsyncMock()
    engine.is_connected = AsyncMock(return_value=True)
    engine.new_page = AsyncMock(side_effect=lambda connection: MagicMock(name="page"))
    engine.close_page = AsyncMock()
    engine.is_page_closed = AsyncMock(return_value=False)
    engine.set_viewport = AsyncMock()
    engine.navigate = AsyncMock(
        side_effect=lambda page, url, *args, **kwargs: {
            "url": url,
            "title": "Example Domain",
            "ready_state": "complete",
        }
    )
    engine.query_selector_all = AsyncMock(return_value=[])
    engine.click = AsyncMock(return_value=True)
    engine.type_text = AsyncMock()
    engine.press = AsyncMock()
    engine.evaluate = AsyncMock(return_value=None)
    engine.bounding_box = AsyncMock(return_value={"x": 10, "y": 20, "width": 80, "height": 30})
    engine.get_title = AsyncMock(return_value="Example Domain")
    engine.get_url = AsyncMock(return_value="https://example.com/")
    engine.is_intersecting_viewport = AsyncMock(return_value=True)
    return engine


@pytest.fixture
def settings(tmp_path):
    """Settings with browser storage in a temporary directory."""
    return Settings(
        browser_storage_path=str(tmp_path / "browsers"),
        find_timeout_ms=0,
        wait_timeout_ms=200,
        wait_polling_interval_ms=10,
        type_delay_ms=0,
    )


@pytest.fixture
def session():
    """Create an empty HostSession."""
    now = time.time()
    return HostSession(session_id="sess_test", created_at=now, last_activity=now)


@pytest.fixture
def coordinator(engine):
    return LifecycleCoordinator(engine)


@pytest.fixture
def browsers(engine, settings, coordinator):
    return BrowserService(engine, settings, coordinator)


@pytest.fixture
def pages(engine, settings, browsers, coordinator):
    return PageService(engine, settings, browsers, coordinator)


@pytest.fixture
def elements(engine, settings):
    return ElementService(engine, settings, clock=lambda: 1700000000000)


@pytest.fixture
def session_manager():
    """Create SessionManager with small limits."""
    return SessionManager(
        max_sessions=5,
        max_lifetime_seconds=900,
        max_idle_seconds=300,
    )


def add_browser(session, browser_id="Chrome", connection=None):
    """Register a browser handle directly in a session."""
    handle = BrowserHandle(
        id=browser_id,
        connection=connection or MagicMock(name=f"driver-{browser_id}"),
        headless=True,
        viewport_width=1280,
        viewport_height=720,
    )
    get_registry(session, ResourceKind.BROWSER, create=True).save(handle.id, handle)
    return handle


def add_page(session, browser_id="Chrome", name="Page1", connection=None):
    """Register a page handle directly in a session."""
    handle = PageHandle(
        id=f"{browser_id}_{name}",
        name=name,
        browser_id=browser_id,
        connection=connection or MagicMock(name=f"page-{name}"),
        viewport_width=1280,
        viewport_height=720,
    )
    get_registry(session, ResourceKind.PAGE, create=True).save(handle.id, handle)
    return handle


def add_element(session, page, selector="button", index=0, timestamp=1700000000000):
    """Register an element handle directly in a session."""
    handle = ElementHandle(
        id=f"{page.name}_Element_{timestamp}_{index}",
        page_id=page.id,
        page_name=page.name,
        connection=MagicMock(name=f"element-{index}"),
        selector=selector,
        index=index,
    )
    get_registry(session, ResourceKind.ELEMENT, create=True).save(handle.id, handle)
    return handle
