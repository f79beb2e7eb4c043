"""Handle model: browser, page and element handles and their identifiers."""

from __future__ import annotations

import re
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Iterable, Optional, Union

from .exceptions import UnsupportedBrowserError

ID_SEPARATOR = "_"
ELEMENT_MARKER = "Element"
AUTO_PAGE_PREFIX = "Page"
UNKNOWN = "Unknown"


class ResourceKind(str, Enum):
    """The three kinds of handles kept in a session."""

    BROWSER = "browser"
    PAGE = "page"
    ELEMENT = "element"

    @property
    def slot(self) -> str:
        """Name of the session slot holding this kind's registry."""
        return f"registry:{self.value}"


class SupportedBrowser(str, Enum):
    """Browser types that can be installed and started."""

    CHROME = "Chrome"
    CHROMIUM = "Chromium"
    CHROME_HEADLESS_SHELL = "ChromeHeadlessShell"
    FIREFOX = "Firefox"
    EDGE = "Edge"

    @classmethod
    def parse(cls, name: str) -> "SupportedBrowser":
        """Parse a browser type name case-insensitively."""
        for member in cls:
            if member.value.lower() == (name or "").strip().lower():
                return member
        raise UnsupportedBrowserError(name, [m.value for m in cls])

    @property
    def friendly_name(self) -> str:
        return {
            SupportedBrowser.CHROME: "Google Chrome",
            SupportedBrowser.CHROMIUM: "Chromium",
            SupportedBrowser.CHROME_HEADLESS_SHELL: "Chrome Headless Shell",
            SupportedBrowser.FIREFOX: "Mozilla Firefox",
            SupportedBrowser.EDGE: "Microsoft Edge",
        }[self]


@dataclass
class BrowserHandle:
    """A running browser registered in a session. Its id is the browser type name."""

    id: str
    connection: Any
    headless: bool
    viewport_width: int
    viewport_height: int
    install_path: Optional[Path] = None
    created_at: float = field(default_factory=time.time)

    @property
    def browser_type(self) -> str:
        return self.id

    @property
    def viewport(self) -> str:
        return f"{self.viewport_width}x{self.viewport_height}"

    def to_dict(self) -> dict:
        return {
            "kind": ResourceKind.BROWSER.value,
            "id": self.id,
            "browser_type": self.browser_type,
            "headless": self.headless,
            "viewport": self.viewport,
            "install_path": str(self.install_path) if self.install_path else None,
            "created_at": self.created_at,
        }


@dataclass
class PageHandle:
    """A page opened under a browser.

    ``browser_id`` is a lookup key, not ownership: the browser entry may be
    gone while the page entry remains.
    """

    id: str
    name: str
    browser_id: str
    connection: Any
    viewport_width: int
    viewport_height: int
    created_at: float = field(default_factory=time.time)

    @property
    def viewport(self) -> str:
        return f"{self.viewport_width}x{self.viewport_height}"

    def to_dict(self) -> dict:
        return {
            "kind": ResourceKind.PAGE.value,
            "id": self.id,
            "name": self.name,
            "browser_id": self.browser_id,
            "viewport": self.viewport,
            "created_at": self.created_at,
        }


@dataclass
class ElementHandle:
    """An element discovered on a page by a selector query."""

    id: str
    page_id: str
    page_name: str
    connection: Any
    selector: str
    index: int
    found_at: float = field(default_factory=time.time)

    def to_dict(self) -> dict:
        return {
            "kind": ResourceKind.ELEMENT.value,
            "id": self.id,
            "page_id": self.page_id,
            "page_name": self.page_name,
            "selector": self.selector,
            "index": self.index,
            "found_at": self.found_at,
        }


Handle = Union[BrowserHandle, PageHandle, ElementHandle]

HANDLE_TYPES = {
    ResourceKind.BROWSER: BrowserHandle,
    ResourceKind.PAGE: PageHandle,
    ResourceKind.ELEMENT: ElementHandle,
}


@dataclass(frozen=True)
class HandleRef:
    """Reference carrying a live handle (pipeline chaining)."""

    handle: Any


@dataclass(frozen=True)
class NameRef:
    """Reference carrying a string id or short name."""

    name: str


Reference = Union[HandleRef, NameRef]


def as_reference(value: Any) -> Optional[Reference]:
    """
    Normalize caller input into a Reference.

    Accepts a Reference, a live handle, a handle dict as returned by the
    tools (its ``id`` is used), or a string. Empty input gives None.
    """
    if value is None:
        return None
    if isinstance(value, (HandleRef, NameRef)):
        return value
    if isinstance(value, (BrowserHandle, PageHandle, ElementHandle)):
        return HandleRef(value)
    if isinstance(value, dict):
        value = value.get("id")
        if value is None:
            return None
    text = str(value).strip()
    if not text:
        return None
    return NameRef(text)


def make_page_id(browser_id: str, page_name: str) -> str:
    """Compose a page id: ``{browserId}_{pageName}``."""
    return f"{browser_id}{ID_SEPARATOR}{page_name}"


def make_element_id(page_name: str, timestamp: int, index: int) -> str:
    """Compose an element id: ``{pageName}_Element_{timestamp}_{index}``."""
    return f"{page_name}{ID_SEPARATOR}{ELEMENT_MARKER}{ID_SEPARATOR}{timestamp}{ID_SEPARATOR}{index}"


def split_id(identifier: str) -> tuple[str, str]:
    """Split a composite id on its first separator into (prefix, suffix)."""
    prefix, sep, suffix = identifier.partition(ID_SEPARATOR)
    if not sep:
        return identifier, ""
    return prefix, suffix


def next_page_name(browser_id: str, existing_ids: Iterable[str]) -> str:
    """
    Allocate the next automatic page name under a browser.

    Uses the highest ``N`` among ``{browserId}_Page{N}`` ids plus one; gaps
    are never reused.
    """
    pattern = re.compile(
        rf"^{re.escape(browser_id)}{ID_SEPARATOR}{AUTO_PAGE_PREFIX}(\d+)$"
    )
    highest = 0
    for identifier in existing_ids:
        match = pattern.match(identifier)
        if match:
            highest = max(highest, int(match.group(1)))
    return f"{AUTO_PAGE_PREFIX}{highest + 1}"
