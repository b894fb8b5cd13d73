"""Availability checks against the reservation listing."""

from datetime import datetime, timezone
from typing import Mapping, Optional, Sequence
from urllib.parse import urlparse

from loguru import logger

from drive_monitor.constants import Delays
from drive_monitor.core.exceptions import (
    BrowserError,
    ContentUnavailableError,
    NavigationFailedError,
    SessionExpiredError,
)
from drive_monitor.models.programs import CheckResult
from drive_monitor.services.session.session_manager import ProbeResult, SessionManager
from drive_monitor.utils.polling import Clock

from .listing_parser import parse_availability


class AvailabilityChecker:
    """Read per-program availability from the listing page of the current session."""

    def __init__(
        self,
        session: SessionManager,
        keywords: Optional[Mapping[str, Sequence[str]]] = None,
        clock: Optional[Clock] = None,
    ):
        self.session = session
        self.keywords = dict(keywords or {})
        self.clock = clock or session.clock

    def _on_listing(self, url: str) -> bool:
        parsed = urlparse(url)
        site = self.session.site
        return (
            self.session.classify_url(url) is ProbeResult.PROTECTED
            and parsed.path.rstrip("/") == site.reservation_path.rstrip("/")
        )

    async def check(self, programs: Sequence[str]) -> CheckResult:
        """
        Load (or refresh) the listing once and report on ``programs``.

        Raises:
            NavigationFailedError: Loading the listing failed
            ContentUnavailableError: The page content could not be read
            SessionExpiredError: The listing redirected to the identity provider;
                the session has been invalidated
        """
        browser = self.session.browser
        listing_url = self.session.site.reservation_url

        try:
            if self._on_listing(await browser.current_url()):
                await browser.refresh()
                settle = Delays.AFTER_REFRESH
            else:
                await browser.navigate(listing_url)
                settle = Delays.AFTER_NAVIGATION
        except BrowserError as e:
            raise NavigationFailedError(listing_url, e.message) from e

        await self.clock.sleep(settle)

        try:
            resolved_url = await browser.current_url()
            html = await browser.content()
        except BrowserError as e:
            raise ContentUnavailableError(f"Could not read listing content: {e.message}") from e

        if self.session.classify_url(resolved_url) is ProbeResult.IDENTITY_PROVIDER:
            self.session.invalidate()
            raise SessionExpiredError(resolved_url)
        if not html:
            raise ContentUnavailableError("Listing page returned no content")

        availability = parse_availability(html, programs, self.keywords)
        logger.debug(f"Parsed availability for {len(availability)} program(s)")
        return CheckResult(
            availability=availability,
            captcha_seen=False,
            checked_at=datetime.now(timezone.utc),
            url=resolved_url,
        )
