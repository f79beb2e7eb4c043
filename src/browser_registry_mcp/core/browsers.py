"""Browser commands: install, uninstall, start, stop, list."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Any, Optional, Sequence

import anyio

from ..config import Settings
from .engine import AutomationEngine
from .exceptions import UnsupportedBrowserError
from .handles import BrowserHandle, NameRef, ResourceKind, SupportedBrowser, as_reference
from .lifecycle import Confirm, LifecycleCoordinator, LifecycleResult, Outcome
from .registry import get_registry
from .resolver import Resolved, browser_resolver
from .session_manager import HostSession

logger = logging.getLogger(__name__)


class BrowserService:
    """Browser commands for one server; session state is passed per call."""

    def __init__(
        self,
        engine: AutomationEngine,
        settings: Settings,
        coordinator: Optional[LifecycleCoordinator] = None,
    ):
        self.engine = engine
        self.settings = settings
        self.coordinator = coordinator or LifecycleCoordinator(engine)

    def install_path(self, browser: SupportedBrowser) -> Path:
        return self.settings.storage_path / browser.value

    def installed_types(self) -> list[SupportedBrowser]:
        """Browser types with an install directory under the storage path."""
        root = self.settings.storage_path
        if not root.is_dir():
            return []
        names = {p.name for p in root.iterdir() if p.is_dir()}
        return [b for b in SupportedBrowser if b.value in names]

    def resolve(
        self,
        session: HostSession,
        reference: Any = None,
        name: Optional[str] = None,
    ) -> Resolved[BrowserHandle]:
        """Resolve a browser reference; type names are matched case-insensitively."""
        ref = as_reference(reference) or as_reference(name)
        if isinstance(ref, NameRef):
            try:
                ref = NameRef(SupportedBrowser.parse(ref.name).value)
            except UnsupportedBrowserError:
                pass
        return browser_resolver.resolve(session, ref)

    async def install(self, browser_type: str) -> dict:
        """
        Prepare the install directory for a browser type.

        Downloads are left to Selenium Manager, which fetches a matching
        browser and driver on first start.
        """
        browser = SupportedBrowser.parse(browser_type)
        path = self.install_path(browser)
        existed = path.is_dir()
        if not existed:
            await anyio.to_thread.run_sync(lambda: path.mkdir(parents=True, exist_ok=True))
            logger.info(f"Installed {browser.value} at {path}")
        return {
            "success": True,
            "browser_type": browser.value,
            "friendly_name": browser.friendly_name,
            "install_path": str(path),
            "already_installed": existed,
        }

    async def uninstall(
        self,
        session: HostSession,
        browser_type: str,
        confirm: Optional[Confirm] = None,
    ) -> dict:
        """Stop a running browser of this type, then delete its install directory."""
        browser = SupportedBrowser.parse(browser_type)
        stop_result: Optional[LifecycleResult] = None

        registry = get_registry(session, ResourceKind.BROWSER)
        handle = registry.find(browser.value) if registry is not None else None
        if handle is not None:
            stop_result = await self.coordinator.stop_browser(session, handle, confirm)
            if stop_result.outcome == Outcome.CANCELLED:
                return {**stop_result.to_dict(), "browser_type": browser.value}

        path = self.install_path(browser)
        removed = path.is_dir()
        if removed:
            await anyio.to_thread.run_sync(shutil.rmtree, path)
            logger.info(f"Uninstalled {browser.value} from {path}")

        return {
            "success": True,
            "browser_type": browser.value,
            "install_path": str(path),
            "removed": removed,
            "stopped": stop_result.to_dict() if stop_result else None,
        }

    async def start(
        self,
        session: HostSession,
        browser_type: str,
        headless: bool = False,
        width: Optional[int] = None,
        height: Optional[int] = None,
        arguments: Sequence[str] = (),
    ) -> BrowserHandle:
        """
        Launch a browser and register it under its type name.

        A browser already registered under that name is stopped first.
        """
        browser = SupportedBrowser.parse(browser_type)
        width = width or self.settings.default_viewport_width
        height = height or self.settings.default_viewport_height

        registry = get_registry(session, ResourceKind.BROWSER)
        existing = registry.find(browser.value) if registry is not None else None
        if existing is not None:
            logger.info(f"{browser.value} is already registered; replacing it")
            await self.coordinator.stop_browser(session, existing)

        install_path = self.install_path(browser)
        connection = await self.engine.launch(
            browser,
            install_path if install_path.is_dir() else None,
            headless,
            width,
            height,
            arguments,
        )

        handle = BrowserHandle(
            id=browser.value,
            connection=connection,
            headless=headless,
            viewport_width=width,
            viewport_height=height,
            install_path=install_path,
        )
        get_registry(session, ResourceKind.BROWSER, create=True).save(handle.id, handle)
        logger.info(f"Started browser '{handle.id}' in session {session.session_id}")
        return handle

    async def stop(
        self,
        session: HostSession,
        reference: Any = None,
        name: Optional[str] = None,
        confirm: Optional[Confirm] = None,
    ) -> LifecycleResult:
        resolved = self.resolve(session, reference, name)
        return await self.coordinator.stop_browser(session, resolved.handle, confirm)

    async def describe(self, session: HostSession, handle: BrowserHandle) -> dict:
        pages = get_registry(session, ResourceKind.PAGE)
        page_count = 0
        if pages is not None:
            page_count = sum(1 for p in pages.get_all().values() if p.browser_id == handle.id)
        return {
            **handle.to_dict(),
            "running": await self.engine.is_connected(handle.connection),
            "page_count": page_count,
        }

    async def list_browsers(self, session: HostSession) -> list[dict]:
        """
        List installed browser types joined with registered browsers.

        Disconnected entries stay visible with ``running: False``.
        """
        registry = get_registry(session, ResourceKind.BROWSER)
        registered = registry.get_all() if registry is not None else {}
        installed = {b.value for b in self.installed_types()}

        results = []
        for browser in SupportedBrowser:
            handle = registered.get(browser.value)
            if handle is None and browser.value not in installed:
                continue
            if handle is not None:
                entry = await self.describe(session, handle)
            else:
                entry = {
                    "kind": ResourceKind.BROWSER.value,
                    "id": browser.value,
                    "browser_type": browser.value,
                    "install_path": str(self.install_path(browser)),
                    "running": False,
                }
            entry["installed"] = browser.value in installed
            entry["registered"] = handle is not None
            results.append(entry)
        return results

    async def teardown_session(self, session: HostSession) -> int:
        """Stop every browser of a closing session. Returns the number handled."""
        registry = get_registry(session, ResourceKind.BROWSER)
        if registry is None:
            return 0
        count = 0
        for handle in registry.get_all().values():
            try:
                await self.coordinator.stop_browser(session, handle)
                count += 1
            except Exception as e:
                logger.warning(f"Failed to stop browser '{handle.id}' during teardown: {e}")
        return count
