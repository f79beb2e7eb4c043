"""Keeps registry entries consistent with the liveness of their connections."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional, Union

from .engine import AutomationEngine
from .exceptions import EngineFailureError
from .handles import BrowserHandle, PageHandle, ResourceKind
from .registry import get_registry
from .session_manager import HostSession

logger = logging.getLogger(__name__)

Confirm = Callable[[str], Awaitable[bool]]


class Outcome(str, Enum):
    """Result of a destructive command."""

    CLOSED = "closed"
    CLEANED_UP = "cleaned_up"
    CANCELLED = "cancelled"


@dataclass
class LifecycleResult:
    outcome: Outcome
    kind: ResourceKind
    resource_id: str
    message: str

    def to_dict(self) -> dict:
        return {
            "success": self.outcome != Outcome.CANCELLED,
            "outcome": self.outcome.value,
            "kind": self.kind.value,
            "id": self.resource_id,
            "message": self.message,
        }


class LifecycleCoordinator:
    """
    Destroys browsers and pages while keeping the session registries honest.

    A live connection is closed and then purged. A connection that is
    already dead is only purged and reported as cleaned up, so repeated
    cleanup after the browser process died is safe. Reads never go through
    here: listing shows stale entries as they are.
    """

    def __init__(self, engine: AutomationEngine):
        self._engine = engine

    async def stop_browser(
        self,
        session: HostSession,
        browser: BrowserHandle,
        confirm: Optional[Confirm] = None,
    ) -> LifecycleResult:
        """Stop a browser. Its pages stay registered."""

        async def is_alive() -> bool:
            return await self._engine.is_connected(browser.connection)

        async def close() -> None:
            await self._engine.close(browser.connection)

        return await self._destroy(
            session,
            ResourceKind.BROWSER,
            browser,
            is_alive,
            close,
            prompt=f"Stop browser '{browser.id}'?",
            confirm=confirm,
        )

    async def remove_page(
        self,
        session: HostSession,
        page: PageHandle,
        confirm: Optional[Confirm] = None,
    ) -> LifecycleResult:
        """Close a page and drop it from the session."""

        async def is_alive() -> bool:
            return not await self._engine.is_page_closed(page.connection)

        async def close() -> None:
            await self._engine.close_page(page.connection)

        return await self._destroy(
            session,
            ResourceKind.PAGE,
            page,
            is_alive,
            close,
            prompt=f"Close page '{page.name}'?",
            confirm=confirm,
        )

    async def _destroy(
        self,
        session: HostSession,
        kind: ResourceKind,
        handle: Union[BrowserHandle, PageHandle],
        is_alive: Callable[[], Awaitable[bool]],
        close: Callable[[], Awaitable[None]],
        prompt: str,
        confirm: Optional[Confirm] = None,
    ) -> LifecycleResult:
        label = kind.value.capitalize()
        resource_id = handle.id

        if not await is_alive():
            logger.warning(f"{label} '{resource_id}' appears to be already disconnected")
            self._purge(session, kind, handle)
            return LifecycleResult(
                Outcome.CLEANED_UP,
                kind,
                resource_id,
                f"Cleaned up disconnected {kind.value} '{resource_id}' from session.",
            )

        if confirm is not None and not await confirm(prompt):
            return LifecycleResult(
                Outcome.CANCELLED, kind, resource_id, f"{label} close cancelled."
            )

        try:
            await close()
        except EngineFailureError as e:
            logger.warning(f"Closing {kind.value} '{resource_id}' failed, purging anyway: {e}")
            raise
        finally:
            self._purge(session, kind, handle)

        logger.info(f"{label} '{resource_id}' closed")
        return LifecycleResult(
            Outcome.CLOSED,
            kind,
            resource_id,
            f"{label} '{resource_id}' closed successfully.",
        )

    @staticmethod
    def _purge(
        session: HostSession,
        kind: ResourceKind,
        handle: Union[BrowserHandle, PageHandle],
    ) -> None:
        """Drop ``handle`` from the session, leaving any replacement under its id."""
        resource_id = handle.id
        registry = get_registry(session, kind)
        try:
            current = registry.find(resource_id) if registry is not None else None
            if current is None:
                logger.debug(f"{kind.value} '{resource_id}' was not registered")
            elif current is not handle:
                logger.info(
                    f"{kind.value} '{resource_id}' has been replaced; keeping the newer entry"
                )
            else:
                registry.remove(resource_id)
        except Exception as e:
            logger.error(f"Failed to purge {kind.value} '{resource_id}' from session: {e}")
