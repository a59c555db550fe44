"""
Browser Controller

Owns the Playwright instance, the browser and its pages. Agents never touch
it directly; they go through ``PlaywrightBrowserContext``.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal, Optional

from dotenv import load_dotenv
from playwright.async_api import (
    Browser,
    BrowserContext as PlaywrightContext,
    Page,
    Playwright,
    async_playwright,
)

load_dotenv()

logger = logging.getLogger(__name__)

BrowserType = Literal["chromium", "firefox", "webkit"]

_BROWSER_TYPE_ALIASES = {
    "chrome": "chromium",
    "chromium": "chromium",
    "firefox": "firefox",
    "webkit": "webkit",
    "safari": "webkit",
}


@dataclass
class BrowserConfig:
    """
    Configuration for the browser instance.

    Reads from environment variables with sensible defaults.
    """

    browser_type: BrowserType = "chromium"

    # Visible browser by default so the user can watch the agent
    headless: bool = False

    viewport_width: int = 1280
    viewport_height: int = 720

    # Slow motion delay in ms (useful for debugging)
    slow_mo: int = 0

    # Persistent profile keeps logins between runs
    persist_session: bool = False
    sessions_dir: Path = field(default_factory=lambda: Path(".browser-sessions"))

    # Timeouts in ms
    page_load_timeout: int = 30000
    navigation_timeout: int = 30000

    @classmethod
    def from_env(cls) -> "BrowserConfig":
        """
        Create BrowserConfig from environment variables.

        Environment variables:
            BROWSER_TYPE: chrome/chromium, firefox, webkit/safari (default: chromium)
            BROWSER_HEADLESS: true/false (default: false)
            BROWSER_VIEWPORT_WIDTH / BROWSER_VIEWPORT_HEIGHT: int
            BROWSER_SLOW_MO: int in ms (default: 0)
            SESSION_PERSIST: true/false (default: false)
            SESSIONS_DIR: path (default: .browser-sessions)
            PAGE_LOAD_TIMEOUT / NAVIGATION_TIMEOUT: int in ms (default: 30000)
        """
        env_type = os.getenv("BROWSER_TYPE", "chromium").lower()

        return cls(
            browser_type=_BROWSER_TYPE_ALIASES.get(env_type, "chromium"),
            headless=os.getenv("BROWSER_HEADLESS", "false").lower() in ("true", "1", "yes"),
            viewport_width=int(os.getenv("BROWSER_VIEWPORT_WIDTH", "1280")),
            viewport_height=int(os.getenv("BROWSER_VIEWPORT_HEIGHT", "720")),
            slow_mo=int(os.getenv("BROWSER_SLOW_MO", "0")),
            persist_session=os.getenv("SESSION_PERSIST", "false").lower() in ("true", "1", "yes"),
            sessions_dir=Path(os.getenv("SESSIONS_DIR", ".browser-sessions")),
            page_load_timeout=int(os.getenv("PAGE_LOAD_TIMEOUT", "30000")),
            navigation_timeout=int(os.getenv("NAVIGATION_TIMEOUT", "30000")),
        )


class BrowserController:
    """
    Controls the Playwright browser instance.

    Usage:
        >>> async with create_browser() as browser:
        ...     page = browser.current_page
        ...     await page.goto("https://example.com")
    """

    def __init__(self, config: Optional[BrowserConfig] = None):
        self.config = config or BrowserConfig.from_env()

        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[PlaywrightContext] = None

    @property
    def is_initialized(self) -> bool:
        return self._context is not None

    @property
    def pages(self) -> list[Page]:
        """Open pages (tabs), oldest first."""
        if self._context is None:
            return []
        return [page for page in self._context.pages if not page.is_closed()]

    @property
    def current_page(self) -> Optional[Page]:
        """The most recently opened page."""
        pages = self.pages
        return pages[-1] if pages else None

    async def initialize(self) -> None:
        """Start Playwright, launch the browser and open a first page."""
        if self._playwright is not None:
            return

        self._playwright = await async_playwright().start()
        launcher = getattr(self._playwright, self.config.browser_type)
        viewport = {
            "width": self.config.viewport_width,
            "height": self.config.viewport_height,
        }

        if self.config.persist_session:
            self.config.sessions_dir.mkdir(parents=True, exist_ok=True)
            user_data_dir = str(self.config.sessions_dir / self.config.browser_type)
            self._context = await launcher.launch_persistent_context(
                user_data_dir,
                headless=self.config.headless,
                slow_mo=self.config.slow_mo,
                viewport=viewport,
            )
        else:
            self._browser = await launcher.launch(
                headless=self.config.headless,
                slow_mo=self.config.slow_mo,
            )
            self._context = await self._browser.new_context(viewport=viewport)

        self._context.set_default_timeout(self.config.page_load_timeout)
        self._context.set_default_navigation_timeout(self.config.navigation_timeout)

        if not self._context.pages:
            await self._context.new_page()
        logger.info("Launched %s (headless=%s)", self.config.browser_type, self.config.headless)

    async def new_page(self) -> Page:
        if self._context is None:
            await self.initialize()
        return await self._context.new_page()

    async def close(self) -> None:
        """Close the browser and release Playwright."""
        if self._context:
            try:
                await self._context.close()
            except Exception as e:
                logger.debug("Error closing browser context: %s", e)
            self._context = None

        if self._browser:
            try:
                await self._browser.close()
            except Exception as e:
                logger.debug("Error closing browser: %s", e)
            self._browser = None

        if self._playwright:
            await self._playwright.stop()
            self._playwright = None

    async def __aenter__(self) -> "BrowserController":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


def create_browser(config: Optional[BrowserConfig] = None) -> BrowserController:
    """
    Create a browser controller (not yet initialized).

    Use with async context manager:
        >>> async with create_browser() as browser:
        ...     ...
    """
    return BrowserController(config)
