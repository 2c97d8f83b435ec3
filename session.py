"""Browser plus screen-reader session shared by every goal of a run."""
from __future__ import annotations

import logging
from typing import Optional

from browser import SimpleBrowser
from config import BrowserConfig
from exceptions import SessionStartError
from screen_reader import ScreenReader, VirtualScreenReader


class ScreenReaderSession:
    """Owns exactly one browser and one screen reader for the run.

    Use as an async context manager: both are started on entry and released
    on every exit path, including a failed start.
    """

    def __init__(
        self,
        browser: SimpleBrowser,
        screen_reader: ScreenReader,
        ready_selector: str = "body",
        navigation_timeout: float = 30000,
        logger: Optional[logging.Logger] = None,
    ):
        self.browser = browser
        self.screen_reader = screen_reader
        self.ready_selector = ready_selector
        self.navigation_timeout = navigation_timeout
        self.logger = logger or logging.getLogger("session")
        self._released = False

    @classmethod
    def from_config(
        cls,
        config: BrowserConfig,
        logger: Optional[logging.Logger] = None,
    ) -> "ScreenReaderSession":
        browser = SimpleBrowser(
            browser_type=config.browser,
            headless=config.headless,
            viewport_width=config.viewport_width,
            viewport_height=config.viewport_height,
            slow_mo=config.slow_mo,
        )
        return cls(
            browser=browser,
            screen_reader=VirtualScreenReader(browser),
            ready_selector=config.ready_selector,
            navigation_timeout=config.navigation_timeout,
            logger=logger,
        )

    async def start(self) -> None:
        """Launch the browser, then the screen reader."""
        component = "browser"
        try:
            await self.browser.start()
            component = "screen reader"
            await self.screen_reader.start()
        except Exception as exc:
            self.logger.error(f"Failed to start {component}: {exc}")
            error = SessionStartError(f"Failed to start {component}: {exc}", component=component)
            try:
                await self.release()
            except Exception as release_exc:
                self.logger.warning(f"Cleanup after failed start also failed: {release_exc}")
            raise error from exc

    async def release(self) -> None:
        """Stop the screen reader and close the browser, once."""
        if self._released:
            return
        self._released = True
        try:
            await self.screen_reader.stop()
        finally:
            await self.browser.close()
        self.logger.info("Session released")

    async def reset(self, url: str) -> None:
        """Load the target page and put the reading cursor at the top of content."""
        await self.browser.goto(url, wait_until="load", timeout=self.navigation_timeout)
        await self.browser.wait_for_selector(self.ready_selector)
        await self.screen_reader.navigate_to_web_content()

    async def __aenter__(self) -> "ScreenReaderSession":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.release()
