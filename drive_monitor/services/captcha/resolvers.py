"""CAPTCHA resolution strategies: manual, automated, and automated-then-manual."""

import asyncio
from abc import ABC, abstractmethod
from typing import Optional

from loguru import logger

from drive_monitor.constants import Delays, Intervals
from drive_monitor.core.config.config_models import CaptchaSolverConfig
from drive_monitor.core.exceptions import (
    BrowserError,
    CaptchaError,
    CaptchaServiceError,
    CaptchaUnresolvedError,
)
from drive_monitor.services.browser.controlled_browser import ControlledBrowser
from drive_monitor.utils.polling import Clock, poll_until

from .detector import CaptchaChallenge, detect_challenge
from .solver_service import CaptchaSolvingService, TwoCaptchaService

# Fill every response field, notify the widget, then submit the enclosing form.
INJECT_TOKEN_JS = """(token) => {
    const names = ['h-captcha-response', 'g-recaptcha-response'];
    for (const name of names) {
        document.querySelectorAll(`[name="${name}"]`).forEach((el) => {
            el.value = token;
            el.innerHTML = token;
        });
    }
    if (typeof hcaptcha !== 'undefined' && typeof hcaptcha.setResponse === 'function') {
        try { hcaptcha.setResponse(token); } catch (e) {}
    }
    const field = document.querySelector(names.map((n) => `[name="${n}"]`).join(','));
    const form = field ? field.closest('form') : null;
    if (form) {
        if (typeof form.requestSubmit === 'function') form.requestSubmit();
        else form.submit();
        return true;
    }
    return false;
}"""


class CaptchaResolver(ABC):
    """Clears a detected challenge from the current page."""

    name: str = "resolver"

    @abstractmethod
    async def resolve(
        self, browser: ControlledBrowser, challenge: CaptchaChallenge, timeout: float
    ) -> None:
        """
        Resolve ``challenge`` within ``timeout`` seconds.

        Raises:
            CaptchaError: If the challenge is still present when the attempt ends
        """
        pass


class ManualResolver(CaptchaResolver):
    """Wait for a human to solve the challenge in the visible browser window."""

    name = "manual"

    def __init__(self, interval: float = Intervals.CAPTCHA_POLL, clock: Optional[Clock] = None):
        self.interval = interval
        self.clock = clock or Clock()

    async def resolve(
        self, browser: ControlledBrowser, challenge: CaptchaChallenge, timeout: float
    ) -> None:
        logger.warning("=" * 60)
        logger.warning("🔐 CAPTCHA detected - please solve it in the browser window")
        logger.warning(f"   Page: {challenge.page_url}")
        logger.warning(f"   Waiting up to {timeout:.0f}s")
        logger.warning("=" * 60)

        async def challenge_gone() -> bool:
            try:
                return await detect_challenge(browser) is None
            except BrowserError as e:
                # Page is mid-navigation; try again next poll
                logger.debug(f"Challenge probe failed: {e}")
                return False

        if not await poll_until(challenge_gone, timeout, self.interval, self.clock):
            raise CaptchaUnresolvedError("Captcha was not solved manually in time", timeout=timeout)

        logger.info("✅ CAPTCHA solved manually")


class AutomatedResolver(CaptchaResolver):
    """Solve through a solving service and inject the returned token."""

    name = "automated"

    def __init__(
        self,
        service: CaptchaSolvingService,
        settle_delay: float = Delays.AFTER_TOKEN_INJECTION,
        clock: Optional[Clock] = None,
    ):
        self.service = service
        self.settle_delay = settle_delay
        self.clock = clock or Clock()

    async def resolve(
        self, browser: ControlledBrowser, challenge: CaptchaChallenge, timeout: float
    ) -> None:
        if not challenge.site_key:
            raise CaptchaServiceError("Challenge site key not found on page")

        try:
            token = await asyncio.wait_for(
                self.service.solve(challenge.site_key, challenge.page_url), timeout=timeout
            )
        except asyncio.TimeoutError as e:
            raise CaptchaUnresolvedError(
                "Solving service did not answer in time", timeout=timeout
            ) from e

        try:
            submitted = await browser.execute_script(INJECT_TOKEN_JS, token)
        except BrowserError as e:
            raise CaptchaServiceError(f"Token injection failed: {e}") from e
        logger.debug(f"Captcha token injected (form submitted={bool(submitted)})")

        await self.clock.sleep(self.settle_delay)

        try:
            still_present = await detect_challenge(browser)
        except BrowserError as e:
            raise CaptchaServiceError(f"Could not verify captcha resolution: {e}") from e
        if still_present is not None:
            raise CaptchaUnresolvedError("Captcha still present after token injection")

        logger.info("✅ CAPTCHA solved automatically")


class FallbackResolver(CaptchaResolver):
    """Try ``primary`` and hand any failure over to ``fallback`` with the remaining time."""

    name = "fallback"

    def __init__(
        self,
        primary: CaptchaResolver,
        fallback: CaptchaResolver,
        clock: Optional[Clock] = None,
    ):
        self.primary = primary
        self.fallback = fallback
        self.clock = clock or Clock()

    async def resolve(
        self, browser: ControlledBrowser, challenge: CaptchaChallenge, timeout: float
    ) -> None:
        started = self.clock.now()
        try:
            await self.primary.resolve(browser, challenge, timeout)
            return
        except CaptchaError as e:
            logger.warning(f"{self.primary.name} captcha resolution failed: {e.message}")

        remaining = timeout - (self.clock.now() - started)
        if remaining <= 0:
            raise CaptchaUnresolvedError(
                "No time left for manual captcha fallback", timeout=timeout
            )

        logger.info(f"Falling back to {self.fallback.name} captcha resolution")
        await self.fallback.resolve(browser, challenge, remaining)


def build_resolver(
    settings: Optional[CaptchaSolverConfig] = None, clock: Optional[Clock] = None
) -> CaptchaResolver:
    """
    Build the resolver for the configured solver.

    With an API key the automated resolver runs first and falls back to manual
    solving; without one only manual solving is available.
    """
    settings = settings or CaptchaSolverConfig()
    manual = ManualResolver(clock=clock)
    if not settings.automated:
        logger.info("No captcha API key configured - captcha challenges need manual solving")
        return manual

    service = TwoCaptchaService(settings.api_key.get_secret_value())
    logger.info(f"Captcha solving via {settings.service} with manual fallback")
    return FallbackResolver(AutomatedResolver(service, clock=clock), manual, clock=clock)
