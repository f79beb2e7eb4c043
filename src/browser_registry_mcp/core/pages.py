"""Page commands: create, list, navigate, remove."""

from __future__ import annotations

import logging
from typing import Any, Optional

from ..config import Settings
from ..utils.guardrails import check_navigation_allowed, normalize_url
from .browsers import BrowserService
from .engine import AutomationEngine
from .exceptions import AlreadyDisconnectedError, EngineFailureError, UnsupportedBrowserError
from .handles import (
    UNKNOWN,
    BrowserHandle,
    HandleRef,
    PageHandle,
    ResourceKind,
    SupportedBrowser,
    as_reference,
    make_page_id,
    next_page_name,
    split_id,
)
from .lifecycle import Confirm, LifecycleCoordinator, LifecycleResult
from .registry import get_registry
from .resolver import Resolved, page_resolver
from .session_manager import HostSession

logger = logging.getLogger(__name__)

BLANK_URL = "about:blank"


class PageService:
    """Page commands; pages are addressed by full id or by short name."""

    def __init__(
        self,
        engine: AutomationEngine,
        settings: Settings,
        browsers: BrowserService,
        coordinator: Optional[LifecycleCoordinator] = None,
    ):
        self.engine = engine
        self.settings = settings
        self.browsers = browsers
        self.coordinator = coordinator or browsers.coordinator

    def resolve(
        self,
        session: HostSession,
        reference: Any = None,
        page_id: Optional[str] = None,
    ) -> Resolved[PageHandle]:
        return page_resolver.resolve(session, reference, page_id)

    def _prepare_url(self, url: str) -> str:
        target = normalize_url(url)
        check_navigation_allowed(target, self.settings.allowed_domain_list)
        return target

    async def create(
        self,
        session: HostSession,
        browser: Any = None,
        browser_name: Optional[str] = None,
        name: str = "",
        url: str = BLANK_URL,
        wait_for_load: bool = False,
        width: Optional[int] = None,
        height: Optional[int] = None,
    ) -> PageHandle:
        """
        Open a page in a browser and register it as ``{browserId}_{name}``.

        Without a name the page is called ``Page{N}`` with N one above the
        highest number in use under that browser.

        Raises:
            AlreadyDisconnectedError: If the browser's connection is dead
        """
        parent = self.browsers.resolve(session, browser, browser_name).handle
        target = self._prepare_url(url) if url and url != BLANK_URL else None

        if not await self.engine.is_connected(parent.connection):
            raise AlreadyDisconnectedError(ResourceKind.BROWSER.value, parent.id)

        registry = get_registry(session, ResourceKind.PAGE)
        existing_ids = list(registry.get_all()) if registry is not None else []
        page_name = name.strip() if name and name.strip() else next_page_name(parent.id, existing_ids)
        page_id = make_page_id(parent.id, page_name)

        previous = registry.find(page_id) if registry is not None else None
        if previous is not None:
            logger.info(f"Page '{page_id}' is already registered; replacing it")
            await self.coordinator.remove_page(session, previous)

        width = width or self.settings.default_viewport_width
        height = height or self.settings.default_viewport_height

        connection = await self.engine.new_page(parent.connection)
        try:
            await self.engine.set_viewport(connection, width, height)
            if target is not None:
                await self.engine.navigate(
                    connection,
                    target,
                    self.settings.navigation_timeout_ms,
                    wait_until="load" if wait_for_load else "domcontentloaded",
                )
        except EngineFailureError:
            try:
                await self.engine.close_page(connection)
            except EngineFailureError as e:
                logger.warning(f"Could not close half-created page '{page_id}': {e}")
            raise

        page = PageHandle(
            id=page_id,
            name=page_name,
            browser_id=parent.id,
            connection=connection,
            viewport_width=width,
            viewport_height=height,
        )
        get_registry(session, ResourceKind.PAGE, create=True).save(page.id, page)
        logger.info(f"Page '{page.id}' created ({page.viewport})")
        return page

    async def describe(self, session: HostSession, page: PageHandle) -> dict:
        """Page metadata; missing or broken parts show as Unknown instead of failing."""
        browsers = get_registry(session, ResourceKind.BROWSER)
        parent = browsers.find(page.browser_id) if browsers is not None else None

        closed = await self.engine.is_page_closed(page.connection)
        url, title = BLANK_URL, UNKNOWN
        if not closed:
            try:
                url = await self.engine.get_url(page.connection)
                title = await self.engine.get_title(page.connection)
            except EngineFailureError as e:
                logger.debug(f"Could not read state of page '{page.id}': {e}")

        return {
            **page.to_dict(),
            "browser_type": parent.browser_type if parent is not None else UNKNOWN,
            "is_closed": closed,
            "url": url,
            "title": title,
        }

    async def list_pages(
        self,
        session: HostSession,
        browser: Any = None,
        browser_name: Optional[str] = None,
        page_id: Optional[str] = None,
    ) -> list[dict]:
        """
        List registered pages, closed ones included.

        The browser filter compares ids only, so pages of a stopped browser
        can still be listed.
        """
        registry = get_registry(session, ResourceKind.PAGE)
        if registry is None or len(registry) == 0:
            logger.info("No browser pages are currently open")
            return []

        browser_id = self._browser_filter(browser, browser_name)
        results = []
        for page in registry.get_all().values():
            if browser_id and page.browser_id.lower() != browser_id.lower():
                continue
            if page_id and not self._matches_page_id(page.id, page_id):
                continue
            results.append(await self.describe(session, page))
        return results

    @staticmethod
    def _matches_page_id(identifier: str, wanted: str) -> bool:
        """Exact id, or the short name after the first ``_``, ignoring case."""
        return wanted.lower() in (identifier.lower(), split_id(identifier)[1].lower())

    @staticmethod
    def _browser_filter(browser: Any, browser_name: Optional[str]) -> Optional[str]:
        ref = as_reference(browser) or as_reference(browser_name)
        if ref is None:
            return None
        if isinstance(ref, HandleRef):
            return ref.handle.id if isinstance(ref.handle, BrowserHandle) else None
        try:
            return SupportedBrowser.parse(ref.name).value
        except UnsupportedBrowserError:
            return ref.name

    async def navigate(
        self,
        session: HostSession,
        url: str,
        page: Any = None,
        page_id: Optional[str] = None,
        timeout_ms: Optional[int] = None,
        wait_until: str = "load",
        referer: Optional[str] = None,
    ) -> dict:
        """Navigate a page; the page is resolved before the URL is checked."""
        handle = self.resolve(session, page, page_id).handle
        target = self._prepare_url(url)
        timeout_ms = self.settings.navigation_timeout_ms if timeout_ms is None else timeout_ms

        logger.debug(f"Navigating page '{handle.id}' to {target} (timeout {timeout_ms}ms)")
        state = await self.engine.navigate(
            handle.connection,
            target,
            timeout_ms,
            wait_until=wait_until,
            referer=referer or None,
        )
        return {**handle.to_dict(), **state}

    async def remove(
        self,
        session: HostSession,
        page: Any = None,
        page_id: Optional[str] = None,
        confirm: Optional[Confirm] = None,
    ) -> LifecycleResult:
        handle = self.resolve(session, page, page_id).handle
        return await self.coordinator.remove_page(session, handle, confirm)
