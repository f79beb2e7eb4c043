"""Element commands: find, click, type, press, wait, inspect."""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Callable, Optional

import anyio

from ..config import Settings
from .engine import AutomationEngine
from .exceptions import EngineFailureError, WaitTimeoutError
from .handles import ElementHandle, PageHandle, ResourceKind, make_element_id
from .registry import get_registry
from .resolver import Resolved, element_resolver, page_resolver
from .session_manager import HostSession

logger = logging.getLogger(__name__)

WAIT_CONDITIONS = ("visible", "hidden", "enabled", "disabled", "textcontains", "attributeequals")

IS_VISIBLE_JS = """
const el = arguments[0];
const style = window.getComputedStyle(el);
const rect = el.getBoundingClientRect();
return style.display !== 'none' && style.visibility !== 'hidden' &&
    style.opacity !== '0' && rect.width > 0 && rect.height > 0;
"""

IS_ENABLED_JS = "return !arguments[0].disabled;"

TEXT_JS = "return arguments[0].innerText || arguments[0].textContent || '';"

ALL_ATTRIBUTES_JS = """
const result = {};
for (const attr of arguments[0].attributes) {
    result[attr.name] = attr.value;
}
return result;
"""

PROPERTIES_JS = """
const el = arguments[0];
return {
    tagName: el.tagName ? el.tagName.toLowerCase() : null,
    id: el.id || null,
    className: el.className || null,
    value: el.value === undefined ? null : el.value,
    checked: el.checked === undefined ? null : el.checked,
    disabled: el.disabled === undefined ? null : el.disabled,
    href: el.href || null,
    src: el.src || null,
    type: el.type || null,
    name: el.name || null,
    childElementCount: el.childElementCount
};
"""

COMPUTED_STYLE_JS = """
const style = window.getComputedStyle(arguments[0]);
const names = ['display', 'visibility', 'opacity', 'color', 'background-color',
    'font-size', 'font-family', 'font-weight', 'position', 'z-index',
    'width', 'height', 'margin', 'padding', 'border'];
const result = {};
for (const name of names) {
    result[name] = style.getPropertyValue(name);
}
return result;
"""


def _now_ms() -> int:
    return int(time.time() * 1000)


def _truncate(text: str, limit: int = 50) -> str:
    text = " ".join((text or "").split())
    return text if len(text) <= limit else text[: limit - 3] + "..."


class ElementService:
    """
    Element commands.

    Elements found by one query share a timestamp and are told apart by
    their index in the batch. ``clock`` returns that timestamp in
    milliseconds.
    """

    def __init__(
        self,
        engine: AutomationEngine,
        settings: Settings,
        clock: Callable[[], int] = _now_ms,
    ):
        self.engine = engine
        self.settings = settings
        self.clock = clock

    def resolve(
        self,
        session: HostSession,
        reference: Any = None,
        element_id: Optional[str] = None,
    ) -> Resolved[ElementHandle]:
        return element_resolver.resolve(session, reference, element_id)

    def _free_timestamp(self, registry, page_name: str, count: int) -> int:
        """Read the clock, moving past any millisecond whose ids are already taken."""
        timestamp = self.clock()
        while any(
            make_element_id(page_name, timestamp, index) in registry for index in range(count)
        ):
            timestamp += 1
        return timestamp

    def _register(
        self,
        session: HostSession,
        page: PageHandle,
        selector: str,
        connections: list,
    ) -> list[ElementHandle]:
        """Register a batch of matches, replacing earlier finds of the same selector on the page."""
        registry = get_registry(session, ResourceKind.ELEMENT, create=True)
        timestamp = self._free_timestamp(registry, page.name, len(connections))
        superseded = [
            element.id
            for element in registry.get_all().values()
            if element.page_id == page.id and element.selector == selector
        ]
        for element_id in superseded:
            registry.remove(element_id)
        if superseded:
            logger.debug(f"Superseded {len(superseded)} elements for '{selector}' on '{page.id}'")

        handles = []
        for index, connection in enumerate(connections):
            handle = ElementHandle(
                id=make_element_id(page.name, timestamp, index),
                page_id=page.id,
                page_name=page.name,
                connection=connection,
                selector=selector,
                index=index,
            )
            registry.save(handle.id, handle)
            handles.append(handle)
        return handles

    async def find(
        self,
        session: HostSession,
        selector: str,
        page: Any = None,
        page_id: Optional[str] = None,
        first: bool = False,
        timeout_ms: Optional[int] = None,
        wait_for_visible: bool = False,
    ) -> list[ElementHandle]:
        """
        Find elements matching a CSS selector and register them.

        An empty result is not an error. Earlier elements of the same
        selector on the page are only replaced when the new find matches.
        """
        selector = (selector or "").strip()
        if not selector:
            raise ValueError("A CSS selector is required")

        parent = page_resolver.resolve(session, page, page_id).handle
        timeout_ms = self.settings.find_timeout_ms if timeout_ms is None else timeout_ms

        matches = await self.engine.query_selector_all(
            parent.connection, selector, timeout_ms, wait_for_visible
        )
        if not matches:
            logger.warning(f"No elements found for selector '{selector}' on page '{parent.id}'")
            return []
        if first:
            matches = matches[:1]

        handles = self._register(session, parent, selector, matches)
        logger.info(f"Found {len(handles)} elements for '{selector}' on page '{parent.id}'")
        return handles

    async def click(
        self,
        session: HostSession,
        reference: Any = None,
        element_id: Optional[str] = None,
        button: str = "left",
        click_count: int = 1,
        delay_ms: int = 0,
        wait_for_navigation: bool = False,
        navigation_timeout_ms: Optional[int] = None,
    ) -> dict:
        element = self.resolve(session, reference, element_id).handle
        if navigation_timeout_ms is None:
            navigation_timeout_ms = self.settings.click_navigation_timeout_ms

        navigated = await self.engine.click(
            element.connection,
            button=button,
            click_count=click_count,
            delay_ms=delay_ms,
            wait_for_navigation=wait_for_navigation,
            navigation_timeout_ms=navigation_timeout_ms,
        )

        result = {
            **element.to_dict(),
            "success": True,
            "button": button,
            "click_count": click_count,
        }
        if wait_for_navigation and not navigated:
            result["warning"] = (
                f"Navigation timeout after {navigation_timeout_ms}ms - "
                "element was clicked but navigation didn't complete"
            )
        return result

    async def type_text(
        self,
        session: HostSession,
        text: str,
        reference: Any = None,
        element_id: Optional[str] = None,
        clear: bool = False,
        delay_ms: Optional[int] = None,
        press_enter: bool = False,
        press_tab: bool = False,
    ) -> dict:
        element = self.resolve(session, reference, element_id).handle
        delay_ms = self.settings.type_delay_ms if delay_ms is None else delay_ms

        await self.engine.type_text(
            element.connection,
            text,
            clear=clear,
            delay_ms=delay_ms,
            press_enter=press_enter,
            press_tab=press_tab,
        )
        return {**element.to_dict(), "success": True, "typed_length": len(text)}

    async def press_key(
        self,
        session: HostSession,
        key: str,
        reference: Any = None,
        element_id: Optional[str] = None,
    ) -> dict:
        element = self.resolve(session, reference, element_id).handle
        await self.engine.press(element.connection, key)
        return {**element.to_dict(), "success": True, "key": key}

    async def _matches(
        self,
        connection: Any,
        condition: str,
        value: Optional[str],
        attribute: Optional[str],
    ) -> bool:
        if condition in ("visible", "hidden"):
            visible = bool(await self.engine.evaluate(connection, IS_VISIBLE_JS))
            return visible if condition == "visible" else not visible
        if condition in ("enabled", "disabled"):
            enabled = bool(await self.engine.evaluate(connection, IS_ENABLED_JS))
            return enabled if condition == "enabled" else not enabled
        if condition == "textcontains":
            text = await self.engine.evaluate(connection, TEXT_JS)
            return (value or "") in (text or "")
        script = f"return arguments[0].getAttribute({json.dumps(attribute)});"
        return await self.engine.evaluate(connection, script) == value

    async def wait_for(
        self,
        session: HostSession,
        selector: str,
        page: Any = None,
        page_id: Optional[str] = None,
        condition: str = "visible",
        value: Optional[str] = None,
        attribute: Optional[str] = None,
        timeout_ms: Optional[int] = None,
        polling_interval_ms: Optional[int] = None,
    ) -> Optional[ElementHandle]:
        """
        Poll until the first match of ``selector`` meets ``condition``.

        The matching element is registered at index 0 and returned. For
        ``hidden`` an absent element also counts; None is returned then.

        Raises:
            ValueError: For an unknown condition or missing condition arguments
            WaitTimeoutError: If the condition is not met in time
        """
        condition = (condition or "").lower()
        if condition not in WAIT_CONDITIONS:
            raise ValueError(
                f"Unsupported condition: {condition}. Supported: {list(WAIT_CONDITIONS)}"
            )
        if condition == "textcontains" and value is None:
            raise ValueError("The 'textcontains' condition needs a value")
        if condition == "attributeequals" and (not attribute or value is None):
            raise ValueError("The 'attributeequals' condition needs an attribute and a value")

        parent = page_resolver.resolve(session, page, page_id).handle
        timeout_ms = self.settings.wait_timeout_ms if timeout_ms is None else timeout_ms
        interval = (polling_interval_ms or self.settings.wait_polling_interval_ms) / 1000.0
        description = f"'{selector}' to be {condition}"

        with anyio.move_on_after(timeout_ms / 1000.0):
            while True:
                matches = await self.engine.query_selector_all(parent.connection, selector)
                if not matches:
                    if condition == "hidden":
                        return None
                else:
                    try:
                        if await self._matches(matches[0], condition, value, attribute):
                            return self._register(session, parent, selector, matches[:1])[0]
                    except EngineFailureError as e:
                        # The element may be replaced between query and check
                        logger.debug(f"Condition check for {description} failed: {e}")
                await anyio.sleep(interval)

        raise WaitTimeoutError(description, timeout_ms)

    async def describe(self, element: ElementHandle) -> dict:
        """Element summary; values that cannot be read fall back to defaults."""
        tag_name, text, visible = "unknown", "", False
        try:
            tag_name = await self.engine.evaluate(
                element.connection, "return arguments[0].tagName.toLowerCase();"
            )
            text = await self.engine.evaluate(element.connection, TEXT_JS)
            visible = await self.engine.is_intersecting_viewport(element.connection)
        except EngineFailureError as e:
            logger.debug(f"Could not read element '{element.id}': {e}")

        summary = f"{tag_name}[{element.index}]"
        if text:
            summary += f" '{_truncate(text, 30)}'"
        summary += f" ({element.selector})"
        return {
            **element.to_dict(),
            "tag_name": tag_name,
            "text": _truncate(text, 100),
            "is_visible": bool(visible),
            "summary": summary,
        }

    async def get_attributes(
        self,
        session: HostSession,
        reference: Any = None,
        element_id: Optional[str] = None,
        name: Optional[str] = None,
        properties: bool = False,
        bounding_box: bool = False,
        computed_style: bool = False,
    ) -> dict:
        """
        Read attributes of an element: one by name, or all of them.

        Inner text, inner HTML and visibility are always included and
        degrade to defaults when they cannot be read.
        """
        element = self.resolve(session, reference, element_id).handle
        connection = element.connection
        result: dict = {**element.to_dict()}

        if name:
            script = f"return arguments[0].getAttribute({json.dumps(name)});"
            result["attribute"] = name
            result["value"] = await self.engine.evaluate(connection, script)
        else:
            result["attributes"] = await self.engine.evaluate(connection, ALL_ATTRIBUTES_JS) or {}

        if properties:
            result["properties"] = await self.engine.evaluate(connection, PROPERTIES_JS)
        if bounding_box:
            result["bounding_box"] = await self.engine.bounding_box(connection)
        if computed_style:
            result["computed_style"] = await self.engine.evaluate(connection, COMPUTED_STYLE_JS)

        try:
            result["inner_text"] = await self.engine.evaluate(connection, TEXT_JS)
        except EngineFailureError as e:
            logger.debug(f"Could not read inner text of '{element.id}': {e}")
            result["inner_text"] = ""
        try:
            result["inner_html"] = await self.engine.evaluate(
                connection, "return arguments[0].innerHTML;"
            )
        except EngineFailureError as e:
            logger.debug(f"Could not read inner HTML of '{element.id}': {e}")
            result["inner_html"] = ""
        try:
            result["is_visible"] = await self.engine.is_intersecting_viewport(connection)
        except EngineFailureError as e:
            logger.debug(f"Could not check visibility of '{element.id}': {e}")
            result["is_visible"] = False

        return result
