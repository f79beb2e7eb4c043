"""Automation engine: the capability surface used by the commands, backed by Selenium."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional, Protocol, Sequence, TypeVar

import anyio
from selenium import webdriver
from selenium.common.exceptions import TimeoutException
from selenium.webdriver.common.actions.action_builder import ActionBuilder
from selenium.webdriver.common.actions.mouse_button import MouseButton
from selenium.webdriver.common.by import By
from selenium.webdriver.common.keys import Keys
from selenium.webdriver.remote.webdriver import WebDriver
from selenium.webdriver.remote.webelement import WebElement
from selenium.webdriver.support import expected_conditions as EC
from selenium.webdriver.support.ui import WebDriverWait

from .exceptions import BrowserRegistryError, EngineFailureError
from .handles import SupportedBrowser

logger = logging.getLogger(__name__)

R = TypeVar("R")

DEFAULT_ARGUMENTS = ("--no-first-run", "--disable-default-apps", "--disable-extensions")

CHROMIUM_FAMILY = (
    SupportedBrowser.CHROME,
    SupportedBrowser.CHROMIUM,
    SupportedBrowser.CHROME_HEADLESS_SHELL,
)

BINARY_NAMES = {
    SupportedBrowser.CHROME: ("chrome", "chrome.exe", "Google Chrome for Testing"),
    SupportedBrowser.CHROMIUM: ("chromium", "chrome", "chrome.exe", "Chromium"),
    SupportedBrowser.CHROME_HEADLESS_SHELL: (
        "chrome-headless-shell",
        "chrome-headless-shell.exe",
    ),
    SupportedBrowser.FIREFOX: ("firefox", "firefox.exe"),
    SupportedBrowser.EDGE: ("msedge", "msedge.exe"),
}

READY_STATES = {
    "load": ("complete",),
    "domcontentloaded": ("interactive", "complete"),
}

MOUSE_BUTTONS = {
    "left": MouseButton.LEFT,
    "middle": MouseButton.MIDDLE,
    "right": MouseButton.RIGHT,
}

# Key name mapping
KEY_MAP = {
    "ENTER": Keys.ENTER,
    "RETURN": Keys.RETURN,
    "TAB": Keys.TAB,
    "ESCAPE": Keys.ESCAPE,
    "ESC": Keys.ESCAPE,
    "BACKSPACE": Keys.BACKSPACE,
    "DELETE": Keys.DELETE,
    "SPACE": Keys.SPACE,
    "UP": Keys.UP,
    "DOWN": Keys.DOWN,
    "LEFT": Keys.LEFT,
    "RIGHT": Keys.RIGHT,
    "HOME": Keys.HOME,
    "END": Keys.END,
    "PAGE_UP": Keys.PAGE_UP,
    "PAGE_DOWN": Keys.PAGE_DOWN,
    "F5": Keys.F5,
    "F12": Keys.F12,
}

INTERSECTS_VIEWPORT_JS = """
const rect = arguments[0].getBoundingClientRect();
const width = window.innerWidth || document.documentElement.clientWidth;
const height = window.innerHeight || document.documentElement.clientHeight;
return rect.width > 0 && rect.height > 0 &&
    rect.bottom > 0 && rect.right > 0 && rect.top < height && rect.left < width;
"""


@dataclass
class SeleniumPage:
    """Page connection: one window of a WebDriver."""

    driver: WebDriver
    window_handle: str


@dataclass
class SeleniumElement:
    """Element connection: a WebElement bound to the page it was found on."""

    page: SeleniumPage
    element: WebElement


class AutomationEngine(Protocol):
    """Capabilities the commands need from a browser automation backend."""

    async def launch(
        self,
        browser: SupportedBrowser,
        install_path: Optional[Path],
        headless: bool,
        width: int,
        height: int,
        arguments: Sequence[str] = (),
    ) -> Any: ...

    async def close(self, connection: Any) -> None: ...

    async def is_connected(self, connection: Any) -> bool: ...

    async def new_page(self, connection: Any) -> Any: ...

    async def close_page(self, page: Any) -> None: ...

    async def is_page_closed(self, page: Any) -> bool: ...

    async def set_viewport(self, page: Any, width: int, height: int) -> None: ...

    async def navigate(
        self,
        page: Any,
        url: str,
        timeout_ms: int,
        wait_until: str = "load",
        referer: Optional[str] = None,
    ) -> dict: ...

    async def query_selector_all(
        self,
        page: Any,
        selector: str,
        timeout_ms: int = 0,
        wait_for_visible: bool = False,
    ) -> list: ...

    async def click(
        self,
        element: Any,
        button: str = "left",
        click_count: int = 1,
        delay_ms: int = 0,
        wait_for_navigation: bool = False,
        navigation_timeout_ms: int = 5000,
    ) -> bool: ...

    async def type_text(
        self,
        element: Any,
        text: str,
        clear: bool = False,
        delay_ms: int = 0,
        press_enter: bool = False,
        press_tab: bool = False,
    ) -> None: ...

    async def press(self, element: Any, key: str) -> None: ...

    async def evaluate(self, element: Any, script: str) -> Any: ...

    async def bounding_box(self, element: Any) -> Optional[dict]: ...

    async def get_title(self, page: Any) -> str: ...

    async def get_url(self, page: Any) -> str: ...

    async def is_intersecting_viewport(self, element: Any) -> bool: ...


def resolve_key(key: str) -> str:
    """Map a key name (ENTER, TAB, ...) or a single character to Selenium keys."""
    mapped = KEY_MAP.get(key.upper())
    if mapped is not None:
        return mapped
    if len(key) == 1:
        return key
    raise ValueError(f"Unsupported key: {key}. Supported keys: {list(KEY_MAP.keys())}")


def find_browser_binary(browser: SupportedBrowser, install_path: Optional[Path]) -> Optional[Path]:
    """Look for the browser executable below its install directory."""
    if install_path is None or not install_path.is_dir():
        return None
    for name in BINARY_NAMES[browser]:
        for candidate in sorted(install_path.rglob(name)):
            if candidate.is_file():
                return candidate
    return None


class SeleniumEngine:
    """
    AutomationEngine backed by Selenium WebDriver.

    Browsers are local drivers, or RemoteWebDriver sessions when a Grid URL
    is configured. Every blocking Selenium call runs in a worker thread so
    the event loop is never blocked; failures surface as EngineFailureError.
    """

    def __init__(
        self,
        grid_url: Optional[str] = None,
        script_timeout: int = 30,
        implicit_wait: int = 0,
    ):
        self.grid_url = grid_url
        self.script_timeout = script_timeout
        self.implicit_wait = implicit_wait

    async def _run(self, operation: str, func: Callable[[], R]) -> R:
        try:
            return await anyio.to_thread.run_sync(func)
        except BrowserRegistryError:
            raise
        except Exception as e:
            raise EngineFailureError(operation, e) from e

    @staticmethod
    def _focus(page: SeleniumPage) -> WebDriver:
        driver = page.driver
        if driver.current_window_handle != page.window_handle:
            driver.switch_to.window(page.window_handle)
        return driver

    async def launch(
        self,
        browser: SupportedBrowser,
        install_path: Optional[Path],
        headless: bool,
        width: int,
        height: int,
        arguments: Sequence[str] = (),
    ) -> WebDriver:
        """
        Start a browser and return its WebDriver.

        Raises:
            EngineFailureError: If the browser cannot be started
        """
        options = self._build_options(browser, install_path, headless, width, height, arguments)

        def _launch() -> WebDriver:
            driver = self._create_driver(browser, options)
            driver.set_script_timeout(self.script_timeout)
            driver.implicitly_wait(self.implicit_wait)
            if browser not in CHROMIUM_FAMILY:
                driver.set_window_size(width, height)
            return driver

        driver = await self._run(f"Launching {browser.value}", _launch)
        logger.info(f"Launched {browser.value} (headless={headless}, viewport={width}x{height})")
        return driver

    def _create_driver(self, browser: SupportedBrowser, options) -> WebDriver:
        if self.grid_url:
            return webdriver.Remote(command_executor=self.grid_url, options=options)
        if browser == SupportedBrowser.FIREFOX:
            return webdriver.Firefox(options=options)
        if browser == SupportedBrowser.EDGE:
            return webdriver.Edge(options=options)
        return webdriver.Chrome(options=options)

    def _build_options(
        self,
        browser: SupportedBrowser,
        install_path: Optional[Path],
        headless: bool,
        width: int,
        height: int,
        arguments: Sequence[str],
    ):
        """Build browser-specific options object."""
        if browser == SupportedBrowser.FIREFOX:
            options = webdriver.FirefoxOptions()
            if headless:
                options.add_argument("-headless")
        elif browser == SupportedBrowser.EDGE:
            options = webdriver.EdgeOptions()
            options.add_argument("--no-sandbox")
            options.add_argument("--disable-dev-shm-usage")
            if headless:
                options.add_argument("--headless=new")
        else:
            options = webdriver.ChromeOptions()
            options.add_argument("--no-sandbox")
            options.add_argument("--disable-dev-shm-usage")
            for argument in DEFAULT_ARGUMENTS:
                options.add_argument(argument)
            if headless or browser == SupportedBrowser.CHROME_HEADLESS_SHELL:
                options.add_argument("--headless=new")
            options.add_argument(f"--window-size={width},{height}")

        for argument in arguments:
            options.add_argument(argument)

        binary = find_browser_binary(browser, install_path)
        if binary is not None and not self.grid_url:
            logger.debug(f"Using {browser.value} binary at {binary}")
            options.binary_location = str(binary)

        return options

    async def close(self, connection: WebDriver) -> None:
        await self._run("Closing browser", connection.quit)

    async def is_connected(self, connection: WebDriver) -> bool:
        def _probe() -> bool:
            try:
                _ = connection.window_handles  # Triggers a round trip
                return True
            except Exception as e:
                logger.debug(f"Browser connection probe failed: {e}")
                return False

        return await anyio.to_thread.run_sync(_probe)

    async def new_page(self, connection: WebDriver) -> SeleniumPage:
        def _new_page() -> SeleniumPage:
            connection.switch_to.new_window("tab")
            return SeleniumPage(connection, connection.current_window_handle)

        return await self._run("Opening page", _new_page)

    async def close_page(self, page: SeleniumPage) -> None:
        def _close() -> None:
            driver = self._focus(page)
            driver.close()
            remaining = driver.window_handles
            if remaining:
                driver.switch_to.window(remaining[0])

        await self._run("Closing page", _close)

    async def is_page_closed(self, page: SeleniumPage) -> bool:
        def _probe() -> bool:
            try:
                return page.window_handle not in page.driver.window_handles
            except Exception as e:
                logger.debug(f"Page probe failed: {e}")
                return True

        return await anyio.to_thread.run_sync(_probe)

    async def set_viewport(self, page: SeleniumPage, width: int, height: int) -> None:
        await self._run(
            "Setting viewport",
            lambda: self._focus(page).set_window_size(width, height),
        )

    async def navigate(
        self,
        page: SeleniumPage,
        url: str,
        timeout_ms: int,
        wait_until: str = "load",
        referer: Optional[str] = None,
    ) -> dict:
        """
        Navigate a page and wait for the requested document ready state.

        Raises:
            EngineFailureError: On navigation errors and timeouts
        """
        if wait_until not in READY_STATES:
            raise ValueError(
                f"Unsupported wait_until: {wait_until}. Supported: {list(READY_STATES)}"
            )
        timeout = timeout_ms / 1000.0

        def _navigate() -> dict:
            driver = self._focus(page)
            driver.set_page_load_timeout(timeout)
            if referer and hasattr(driver, "execute_cdp_cmd"):
                driver.execute_cdp_cmd("Page.navigate", {"url": url, "referrer": referer})
            else:
                if referer:
                    logger.warning("Referer is only supported on Chromium drivers; ignoring it")
                driver.get(url)

            WebDriverWait(driver, timeout).until(
                lambda d: d.execute_script("return document.readyState") in READY_STATES[wait_until]
            )
            return {
                "url": driver.current_url,
                "title": driver.title,
                "ready_state": driver.execute_script("return document.readyState"),
            }

        return await self._run(f"Navigation to '{url}'", _navigate)

    async def query_selector_all(
        self,
        page: SeleniumPage,
        selector: str,
        timeout_ms: int = 0,
        wait_for_visible: bool = False,
    ) -> list[SeleniumElement]:
        """
        Find all elements matching a CSS selector.

        With a timeout, first waits for the selector to appear (or become
        visible); a wait timeout gives an empty list.
        """
        timeout = timeout_ms / 1000.0
        locator = (By.CSS_SELECTOR, selector)

        def _query() -> list[SeleniumElement]:
            driver = self._focus(page)
            try:
                if wait_for_visible:
                    WebDriverWait(driver, timeout).until(EC.visibility_of_element_located(locator))
                elif timeout_ms > 0:
                    WebDriverWait(driver, timeout).until(EC.presence_of_element_located(locator))
            except TimeoutException:
                logger.warning(
                    f"Timeout waiting for selector '{selector}' to appear within {timeout_ms}ms"
                )
                return []
            return [SeleniumElement(page, el) for el in driver.find_elements(*locator)]

        return await self._run(f"Query '{selector}'", _query)

    async def click(
        self,
        element: SeleniumElement,
        button: str = "left",
        click_count: int = 1,
        delay_ms: int = 0,
        wait_for_navigation: bool = False,
        navigation_timeout_ms: int = 5000,
    ) -> bool:
        """
        Click an element.

        Returns False when a navigation was awaited but did not complete in
        time (the click itself happened).
        """
        if button not in MOUSE_BUTTONS:
            raise ValueError(f"Unsupported button: {button}. Supported: {list(MOUSE_BUTTONS)}")

        def _click() -> bool:
            driver = self._focus(element.page)
            old_url = driver.current_url
            for i in range(max(click_count, 1)):
                if button == "left":
                    element.element.click()
                else:
                    builder = ActionBuilder(driver)
                    builder.pointer_action.click(element.element, button=MOUSE_BUTTONS[button])
                    builder.perform()
                if i < click_count - 1 and delay_ms > 0:
                    time.sleep(delay_ms / 1000.0)

            if not wait_for_navigation:
                return True
            try:
                WebDriverWait(driver, navigation_timeout_ms / 1000.0).until(
                    lambda d: d.current_url != old_url
                    and d.execute_script("return document.readyState") == "complete"
                )
                return True
            except TimeoutException:
                logger.warning(
                    f"Navigation timeout after {navigation_timeout_ms}ms - "
                    "element was clicked but navigation didn't complete"
                )
                return False

        return await self._run("Click", _click)

    async def type_text(
        self,
        element: SeleniumElement,
        text: str,
        clear: bool = False,
        delay_ms: int = 0,
        press_enter: bool = False,
        press_tab: bool = False,
    ) -> None:
        def _type() -> None:
            driver = self._focus(element.page)
            target = element.element
            driver.execute_script("arguments[0].focus();", target)
            if clear:
                target.clear()
            if delay_ms > 0:
                for char in text:
                    target.send_keys(char)
                    time.sleep(delay_ms / 1000.0)
            else:
                target.send_keys(text)
            if press_enter:
                target.send_keys(Keys.ENTER)
            if press_tab:
                target.send_keys(Keys.TAB)

        await self._run("Typing", _type)

    async def press(self, element: SeleniumElement, key: str) -> None:
        keys = resolve_key(key)

        def _press() -> None:
            self._focus(element.page)
            element.element.send_keys(keys)

        await self._run(f"Pressing {key}", _press)

    async def evaluate(self, element: SeleniumElement, script: str) -> Any:
        return await self._run(
            "Script evaluation",
            lambda: self._focus(element.page).execute_script(script, element.element),
        )

    async def bounding_box(self, element: SeleniumElement) -> Optional[dict]:
        def _rect() -> Optional[dict]:
            self._focus(element.page)
            rect = element.element.rect
            if not rect:
                return None
            return {
                "x": rect.get("x"),
                "y": rect.get("y"),
                "width": rect.get("width"),
                "height": rect.get("height"),
            }

        return await self._run("Bounding box", _rect)

    async def get_title(self, page: SeleniumPage) -> str:
        return await self._run("Reading title", lambda: self._focus(page).title)

    async def get_url(self, page: SeleniumPage) -> str:
        return await self._run("Reading URL", lambda: self._focus(page).current_url)

    async def is_intersecting_viewport(self, element: SeleniumElement) -> bool:
        return bool(
            await self._run(
                "Visibility check",
                lambda: self._focus(element.page).execute_script(
                    INTERSECTS_VIEWPORT_JS, element.element
                ),
            )
        )
