"""Browser controller for the screen-reader agent with multi-browser support."""
from __future__ import annotations

import logging
from typing import Any, Literal, Optional

from playwright.async_api import (
    Browser,
    BrowserContext,
    Locator,
    Page,
    Playwright,
    async_playwright,
    TimeoutError as PlaywrightTimeout,
)

from exceptions import BrowserNotStartedError, NavigationError

BrowserType = Literal["chromium", "firefox", "webkit"]
MouseButton = Literal["left", "right", "middle"]

_DESCRIBE_FOCUS_JS = """() => {
    const el = document.activeElement;
    if (!el || el === document.body || el === document.documentElement) {
        return null;
    }
    const labelled = el.getAttribute('aria-labelledby');
    let name = el.getAttribute('aria-label') || '';
    if (!name && labelled) {
        name = labelled.split(/\\s+/)
            .map(id => document.getElementById(id))
            .filter(Boolean)
            .map(node => node.textContent.trim())
            .join(' ');
    }
    if (!name && el.labels && el.labels.length) {
        name = el.labels[0].textContent.trim();
    }
    if (!name) {
        name = (el.innerText || el.value || el.getAttribute('placeholder') || '').trim();
    }
    return {
        tag: el.tagName.toLowerCase(),
        role: el.getAttribute('role') || '',
        type: el.getAttribute('type') || '',
        name: name.slice(0, 200),
        value: typeof el.value === 'string' ? el.value.slice(0, 200) : '',
    };
}"""


class SimpleBrowser:
    """Browser manager using Playwright with one page per session."""

    def __init__(
        self,
        browser_type: BrowserType = "chromium",
        headless: bool = True,
        viewport_width: int = 1280,
        viewport_height: int = 720,
        slow_mo: int = 0,
        logger: Optional[logging.Logger] = None,
    ):
        self.browser_type = browser_type
        self.headless = headless
        self.viewport_width = viewport_width
        self.viewport_height = viewport_height
        self.slow_mo = slow_mo
        self.logger = logger or logging.getLogger("browser")

        self._playwright: Optional[Playwright] = None
        self.browser: Optional[Browser] = None
        self.context: Optional[BrowserContext] = None
        self.page: Optional[Page] = None

    def _ensure_started(self) -> None:
        """Raise if browser not started."""
        if self.page is None:
            raise BrowserNotStartedError()

    @property
    def is_started(self) -> bool:
        return self.page is not None

    async def start(self) -> None:
        """Start the browser with specified engine."""
        self._playwright = await async_playwright().start()

        # Select browser engine
        browser_launcher = getattr(self._playwright, self.browser_type)
        launch_options: dict[str, Any] = {"headless": self.headless}
        if self.slow_mo > 0:
            launch_options["slow_mo"] = self.slow_mo

        self.browser = await browser_launcher.launch(**launch_options)
        self.context = await self.browser.new_context(
            viewport={"width": self.viewport_width, "height": self.viewport_height}
        )
        self.page = await self.context.new_page()

        self.logger.info(f"Browser started: {self.browser_type} (headless={self.headless})")

    async def close(self) -> None:
        """Close the browser and clean up whatever was started."""
        try:
            if self.page:
                await self.page.close()
            if self.context:
                await self.context.close()
            if self.browser:
                await self.browser.close()
        finally:
            if self._playwright:
                await self._playwright.stop()
            self.page = None
            self.context = None
            self.browser = None
            self._playwright = None
        self.logger.info("Browser closed")

    # ─────────────────────────────────────────────────────────────────────────
    # Navigation and waiting
    # ─────────────────────────────────────────────────────────────────────────

    async def goto(
        self,
        url: str,
        wait_until: Literal["load", "domcontentloaded", "networkidle", "commit"] = "load",
        timeout: float = 30000,
    ) -> None:
        """Navigate to a URL with configurable wait strategy."""
        self._ensure_started()
        try:
            await self.page.goto(url, wait_until=wait_until, timeout=timeout)
        except PlaywrightTimeout as e:
            raise NavigationError(f"Navigation timed out: {url}", url=url, timeout=timeout) from e
        except Exception as e:
            raise NavigationError(f"Navigation failed: {e}", url=url) from e

    async def wait_for_load_state(
        self,
        state: Literal["load", "domcontentloaded", "networkidle"] = "load",
        timeout: float = 30000,
    ) -> None:
        """Wait for page to reach specified load state."""
        self._ensure_started()
        await self.page.wait_for_load_state(state, timeout=timeout)

    async def settle(self, timeout: float = 2500) -> None:
        """Give the page a moment to react to an interaction."""
        try:
            await self.wait_for_load_state("domcontentloaded", timeout=timeout)
        except PlaywrightTimeout:
            self.logger.debug("Page did not settle within %sms", timeout)

    async def wait_for_selector(
        self,
        selector: str,
        state: Literal["attached", "detached", "visible", "hidden"] = "attached",
        timeout: float = 10000,
    ) -> None:
        """Wait for an element matching selector."""
        self._ensure_started()
        try:
            await self.page.wait_for_selector(selector, state=state, timeout=timeout)
        except PlaywrightTimeout as e:
            raise NavigationError(
                f"Page never became ready: '{selector}' not found",
                url=self.page.url,
                timeout=timeout,
            ) from e

    def get_url(self) -> str:
        """Get current URL."""
        self._ensure_started()
        return self.page.url

    async def get_title(self) -> str:
        """Get current page title."""
        self._ensure_started()
        return await self.page.title()

    # ─────────────────────────────────────────────────────────────────────────
    # Accessibility tree
    # ─────────────────────────────────────────────────────────────────────────

    async def aria_snapshot(self, selector: str = "body") -> str:
        """Return the YAML aria snapshot of the element matching selector."""
        self._ensure_started()
        return await self.page.locator(selector).aria_snapshot()

    def locate_by_role(self, role: str, name: str = "", nth: int = 0) -> Locator:
        """Locator for the nth element exposing role and accessible name."""
        self._ensure_started()
        if role in ("text", "paragraph"):
            # Static text has no accessible name, only content
            locator = self.page.get_by_text(name, exact=True)
        elif name:
            locator = self.page.get_by_role(role, name=name, exact=True)
        else:
            locator = self.page.get_by_role(role)
        return locator.nth(nth)

    async def click_by_role(
        self,
        role: str,
        name: str = "",
        nth: int = 0,
        button: MouseButton = "left",
        timeout: float = 5000,
    ) -> None:
        """Click the element exposing role and accessible name."""
        locator = self.locate_by_role(role, name, nth)
        await locator.click(button=button, timeout=timeout)

    async def focus_by_role(self, role: str, name: str = "", nth: int = 0, timeout: float = 5000) -> None:
        """Move keyboard focus to the element exposing role and accessible name."""
        locator = self.locate_by_role(role, name, nth)
        await locator.focus(timeout=timeout)

    async def describe_focus(self) -> dict[str, Any] | None:
        """Describe the focused element, or None when nothing has focus."""
        self._ensure_started()
        return await self.page.evaluate(_DESCRIBE_FOCUS_JS)

    # ─────────────────────────────────────────────────────────────────────────
    # Keyboard input
    # ─────────────────────────────────────────────────────────────────────────

    async def type_text(self, text: str, delay: int = 0) -> None:
        """Type text into whatever has focus."""
        self._ensure_started()
        await self.page.keyboard.type(text, delay=delay)

    async def press_key(self, key: str) -> None:
        """Press a keyboard key."""
        self._ensure_started()
        await self.page.keyboard.press(key)
