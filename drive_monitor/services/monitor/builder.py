"""Wire configuration into a ready-to-start poll loop driver."""

from datetime import datetime, timezone
from typing import AsyncContextManager, Optional

from loguru import logger

from drive_monitor.core.config.config_models import AppConfig
from drive_monitor.core.exceptions import ConfigurationError
from drive_monitor.models.credentials import Credentials
from drive_monitor.models.programs import is_known_program
from drive_monitor.services.availability.checker import AvailabilityChecker
from drive_monitor.services.browser.controlled_browser import ControlledBrowser
from drive_monitor.services.browser.playwright_browser import PlaywrightBrowser
from drive_monitor.services.captcha.detector import CaptchaChallenge
from drive_monitor.services.captcha.resolvers import build_resolver
from drive_monitor.services.notification.base import EmailConfig, NotificationSink
from drive_monitor.services.notification.channels.email import EmailChannel
from drive_monitor.services.notification.coordinator import NotificationCoordinator
from drive_monitor.services.session.session_manager import SessionManager
from drive_monitor.services.session.session_store import SessionStore

from .poll_loop import BrowserFactory, PollLoopDriver


def playwright_factory(headless: bool) -> AsyncContextManager[ControlledBrowser]:
    return PlaywrightBrowser(headless=headless)


def build_sink(settings: AppConfig) -> EmailChannel:
    return EmailChannel(EmailConfig.from_settings(settings.email), settings.monitor.reservation_url)


def build_driver(
    settings: AppConfig,
    browser_factory: BrowserFactory = playwright_factory,
    sink: Optional[NotificationSink] = None,
    require_programs: bool = True,
) -> PollLoopDriver:
    """
    Build a :class:`PollLoopDriver` and its collaborators from settings.

    Raises:
        ConfigurationError: If credentials or programs are missing
    """
    if not settings.auth.is_complete:
        raise ConfigurationError("auth.username and auth.password are required")
    if require_programs and not settings.programs:
        raise ConfigurationError("At least one program must be configured under 'programs'")

    for name in settings.program_names:
        if not is_known_program(name):
            logger.warning(f"Program '{name}' is not in the catalog; matching its label as given")

    credentials = Credentials(settings.auth.username, settings.auth.password.get_secret_value())
    coordinator = NotificationCoordinator(sink or build_sink(settings))

    async def alert_on_challenge(challenge: CaptchaChallenge) -> None:
        await coordinator.alert_captcha(datetime.now(timezone.utc), challenge.page_url)

    session = SessionManager(
        credentials,
        site=settings.monitor,
        resolver=build_resolver(settings.captcha_solver),
        store=SessionStore(settings.monitor.state_dir),
        on_challenge=alert_on_challenge,
        interactive_captcha_timeout=settings.captcha_solver.manual_timeout,
        post_login_captcha_timeout=settings.captcha_solver.post_login_timeout,
    )
    keywords = {p.name: p.keywords for p in settings.programs if p.keywords}
    checker = AvailabilityChecker(session, keywords=keywords)

    return PollLoopDriver(
        session,
        checker,
        coordinator,
        browser_factory,
        settings.program_names,
        interval=settings.monitor.interval,
    )
