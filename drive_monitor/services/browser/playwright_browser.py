"""Playwright-backed controlled browser with stealth launch settings."""

from typing import Any, Dict, Optional

from loguru import logger
from playwright.async_api import Browser, BrowserContext, Locator, Page, Playwright
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from drive_monitor.constants import StealthProfile, Timeouts
from drive_monitor.core.exceptions import BrowserError
from drive_monitor.models.selector import SelectorSpec

from .controlled_browser import ControlledBrowser, ElementHandle, StateBlob


class PlaywrightElement(ElementHandle):
    """Element handle backed by a Playwright locator."""

    def __init__(self, locator: Locator, action_timeout: int = Timeouts.ELEMENT_ACTION):
        self._locator = locator
        self._timeout = action_timeout

    async def click(self) -> None:
        try:
            await self._locator.click(timeout=self._timeout)
        except PlaywrightError as e:
            raise BrowserError("click", str(e)) from e

    async def type(self, text: str) -> None:
        try:
            await self._locator.fill(text, timeout=self._timeout)
        except PlaywrightError as e:
            # Do not echo the typed text, it may be a password
            raise BrowserError("type", e.__class__.__name__) from e

    async def wait_visible(self, timeout: float) -> bool:
        try:
            await self._locator.wait_for(state="visible", timeout=timeout * 1000)
            return True
        except PlaywrightTimeoutError:
            return False

    async def get_attribute(self, name: str) -> Optional[str]:
        try:
            return await self._locator.get_attribute(name, timeout=self._timeout)
        except PlaywrightError as e:
            raise BrowserError("get_attribute", str(e)) from e

    async def is_enabled(self) -> bool:
        try:
            return await self._locator.is_enabled(timeout=self._timeout)
        except PlaywrightError:
            return False

    async def is_visible(self) -> bool:
        try:
            return await self._locator.is_visible()
        except PlaywrightError:
            return False

    async def text(self) -> str:
        try:
            return (await self._locator.inner_text(timeout=self._timeout)).strip()
        except PlaywrightError as e:
            raise BrowserError("text", str(e)) from e


class PlaywrightBrowser(ControlledBrowser):
    """
    Chromium tab launched with automation markers hidden.

    Use as an async context manager so the browser is released on every exit path::

        async with PlaywrightBrowser(headless=True) as browser:
            await browser.navigate(url)
    """

    def __init__(
        self,
        headless: bool = True,
        navigation_timeout: int = Timeouts.NAVIGATION,
        storage_state: Optional[StateBlob] = None,
    ):
        self.headless = headless
        self.navigation_timeout = navigation_timeout
        self._initial_state = storage_state
        self.playwright: Optional[Playwright] = None
        self.browser: Optional[Browser] = None
        self.context: Optional[BrowserContext] = None
        self.page: Optional[Page] = None

    async def __aenter__(self) -> "PlaywrightBrowser":
        await self.start()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def start(self) -> None:
        """Launch Chromium and open a stealth context with one page."""
        if self.browser is not None:
            logger.warning("Browser already started")
            return

        try:
            self.playwright = await async_playwright().start()
            self.browser = await self.playwright.chromium.launch(
                headless=self.headless,
                args=list(StealthProfile.LAUNCH_ARGS),
            )
            await self._open_context(self._initial_state)
            logger.info(f"Browser started (headless={self.headless})")
        except Exception:
            # Clean up partial resources on error
            await self.close()
            raise

    async def _open_context(self, storage_state: Optional[StateBlob]) -> None:
        assert self.browser is not None
        context_options: Dict[str, Any] = {
            "viewport": dict(StealthProfile.VIEWPORT),
            "user_agent": StealthProfile.USER_AGENT,
            "locale": StealthProfile.LOCALE,
            "timezone_id": StealthProfile.TIMEZONE,
        }
        if storage_state:
            context_options["storage_state"] = storage_state

        self.context = await self.browser.new_context(**context_options)
        await self.context.add_init_script(StealthProfile.INIT_SCRIPT)
        self.page = await self.context.new_page()
        self.page.set_default_navigation_timeout(self.navigation_timeout)

    def _require_page(self) -> Page:
        if self.page is None:
            raise BrowserError("page", "browser is not started")
        return self.page

    async def navigate(self, url: str, wait_until: str = "domcontentloaded") -> None:
        page = self._require_page()
        try:
            await page.goto(url, wait_until=wait_until)  # type: ignore[arg-type]
        except PlaywrightError as e:
            raise BrowserError("navigate", str(e)) from e

    async def refresh(self) -> None:
        page = self._require_page()
        try:
            await page.reload(wait_until="domcontentloaded")
        except PlaywrightError as e:
            raise BrowserError("refresh", str(e)) from e

    async def current_url(self) -> str:
        return self._require_page().url

    async def content(self) -> str:
        page = self._require_page()
        try:
            return await page.content()
        except PlaywrightError as e:
            raise BrowserError("content", str(e)) from e

    async def find(self, spec: SelectorSpec) -> Optional[ElementHandle]:
        page = self._require_page()
        for selector in spec.selectors:
            locator = page.locator(selector).first
            try:
                if await locator.count() > 0:
                    if selector != spec.primary:
                        logger.debug(f"'{spec.name}' matched fallback selector {selector}")
                    return PlaywrightElement(locator)
            except PlaywrightError as e:
                logger.debug(f"Selector {selector} for '{spec.name}' failed: {e}")
        return None

    async def execute_script(self, script: str, arg: Any = None) -> Any:
        page = self._require_page()
        try:
            return await page.evaluate(script, arg)
        except PlaywrightError as e:
            raise BrowserError("execute_script", str(e)) from e

    async def export_state(self) -> StateBlob:
        if self.context is None:
            raise BrowserError("export_state", "browser is not started")
        try:
            state: StateBlob = dict(await self.context.storage_state())
            return state
        except PlaywrightError as e:
            raise BrowserError("export_state", str(e)) from e

    async def import_state(self, blob: StateBlob) -> None:
        """Replace the browsing context with one seeded from ``blob``."""
        if self.browser is None:
            raise BrowserError("import_state", "browser is not started")
        try:
            if self.context is not None:
                await self.context.close()
            await self._open_context(blob)
            logger.debug(f"Imported browser state ({len(blob.get('cookies', []))} cookies)")
        except PlaywrightError as e:
            raise BrowserError("import_state", str(e)) from e

    async def close(self) -> None:
        """Clean up browser resources."""
        if self.context:
            try:
                await self.context.close()
            except PlaywrightError as e:
                logger.debug(f"Context close failed: {e}")
            self.context = None
            self.page = None

        if self.browser:
            try:
                await self.browser.close()
            except PlaywrightError as e:
                logger.debug(f"Browser close failed: {e}")
            self.browser = None
            logger.debug("Browser closed")

        if self.playwright:
            await self.playwright.stop()
            self.playwright = None
            logger.info("Browser resources cleaned up")
