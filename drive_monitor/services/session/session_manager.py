"""Authenticated session lifecycle and the login state machine."""

import asyncio
from enum import Enum
from typing import Awaitable, Callable, Dict, Optional
from urllib.parse import urlparse

from loguru import logger

from drive_monitor.constants import Delays, Intervals, LoginBudget, Selectors, Timeouts
from drive_monitor.core.config.config_models import MonitorConfig
from drive_monitor.core.exceptions import (
    AuthError,
    BrowserError,
    CaptchaError,
    CaptchaUnresolvedError,
    CredentialsRejectedError,
    FieldNotFoundError,
    LoginTimeoutError,
)
from drive_monitor.models.credentials import Credentials
from drive_monitor.models.selector import SelectorSpec
from drive_monitor.services.browser.controlled_browser import ControlledBrowser, ElementHandle
from drive_monitor.services.captcha.detector import CaptchaChallenge, detect_challenge
from drive_monitor.services.captcha.resolvers import CaptchaResolver, ManualResolver
from drive_monitor.utils.polling import Clock, poll_attempts, poll_until

from .session_store import SessionStore

ChallengeHook = Callable[[CaptchaChallenge], Awaitable[None]]


class LoginState(str, Enum):
    """Login state machine states."""

    CHECKING_STATUS = "checking_status"
    EMAIL_ENTRY = "email_entry"
    PASSWORD_ENTRY = "password_entry"
    SUBMITTING = "submitting"
    DONE = "done"


class ProbeResult(str, Enum):
    """Where a resolved URL points."""

    PROTECTED = "protected"
    IDENTITY_PROVIDER = "identity_provider"
    UNKNOWN = "unknown"


def _host_matches(host: str, domain: str) -> bool:
    return host == domain or host.endswith("." + domain)


class SessionManager:
    """
    Keep the controlled browser logged in to the driving center.

    The manager owns the attached browser and the session flags derived from
    it. ``login()`` runs the multi-step identity-provider flow as an explicit
    state machine; every wait in it is bounded and goes through the injected
    clock.
    """

    def __init__(
        self,
        credentials: Credentials,
        site: Optional[MonitorConfig] = None,
        resolver: Optional[CaptchaResolver] = None,
        store: Optional[SessionStore] = None,
        clock: Optional[Clock] = None,
        on_challenge: Optional[ChallengeHook] = None,
        interactive_captcha_timeout: float = Timeouts.CAPTCHA_INTERACTIVE_SECONDS,
        post_login_captcha_timeout: float = Timeouts.CAPTCHA_POST_LOGIN_SECONDS,
    ):
        self._credentials = credentials
        self.site = site or MonitorConfig()
        self.clock = clock or Clock()
        self.resolver = resolver or ManualResolver(clock=self.clock)
        self.store = store
        self.on_challenge = on_challenge
        self.interactive_captcha_timeout = interactive_captcha_timeout
        self.post_login_captcha_timeout = post_login_captcha_timeout

        self._browser: Optional[ControlledBrowser] = None
        self._authenticated = False
        self._requires_captcha = False
        self._submitted = False
        self._login_lock = asyncio.Lock()
        self.state = LoginState.CHECKING_STATUS
        self.last_probe: Optional[ProbeResult] = None

        self._handlers: Dict[LoginState, Callable[[Credentials], Awaitable[LoginState]]] = {
            LoginState.CHECKING_STATUS: self._check_status,
            LoginState.EMAIL_ENTRY: self._enter_email,
            LoginState.PASSWORD_ENTRY: self._enter_password,
            LoginState.SUBMITTING: self._await_submission,
        }

    # -- browser ownership ------------------------------------------------

    def attach(self, browser: ControlledBrowser) -> None:
        """Take ownership of a freshly opened browser; session starts unauthenticated."""
        self._browser = browser
        self._authenticated = False
        self._requires_captcha = False

    def detach(self) -> None:
        self._browser = None
        self._authenticated = False

    @property
    def browser(self) -> ControlledBrowser:
        if self._browser is None:
            raise RuntimeError("No browser attached to the session manager")
        return self._browser

    @property
    def authenticated(self) -> bool:
        return self._authenticated

    @property
    def requires_captcha(self) -> bool:
        return self._requires_captcha

    # -- status -----------------------------------------------------------

    def classify_url(self, url: str) -> ProbeResult:
        """Map a resolved URL onto the protected or identity-provider domain."""
        host = (urlparse(url).hostname or "").lower()
        if host and _host_matches(host, self.site.protected_host.lower()):
            return ProbeResult.PROTECTED
        if host and _host_matches(host, self.site.identity_provider_host.lower()):
            return ProbeResult.IDENTITY_PROVIDER
        return ProbeResult.UNKNOWN

    async def is_authenticated(self) -> bool:
        """
        Probe the protected resource and report whether the session is valid.

        Never raises: navigation failures and ambiguous destinations report False.
        """
        try:
            await self.browser.navigate(self.site.reservation_url)
            await self.clock.sleep(Delays.AFTER_STATUS_PROBE)
            url = await self.browser.current_url()
        except BrowserError as e:
            logger.warning(f"Session probe failed: {e.message}")
            self._authenticated = False
            return False

        self.last_probe = self.classify_url(url)
        if self.last_probe is ProbeResult.PROTECTED:
            self._authenticated = True
            return True

        self._authenticated = False
        if self.last_probe is ProbeResult.UNKNOWN:
            logger.warning(f"⚠️ Ambiguous session state: protected resource resolved to {url}")
        else:
            logger.debug("Session probe redirected to identity provider")
        return False

    def invalidate(self) -> None:
        """Mark the session as lost (the site redirected us back to the identity provider)."""
        if self._authenticated:
            logger.info("Session invalidated - login required")
        self._authenticated = False

    async def restore_session(self) -> bool:
        """
        Seed the browser with the persisted session blob, if one exists.

        Returns:
            True if a saved session was imported
        """
        if self.store is None:
            return False
        blob = self.store.load()
        if not blob:
            return False
        try:
            await self.browser.import_state(blob)
        except BrowserError as e:
            logger.warning(f"Could not restore saved session: {e.message}")
            return False
        logger.info("Restored saved browser session")
        return True

    # -- login state machine ----------------------------------------------

    async def login(self, credentials: Optional[Credentials] = None) -> None:
        """
        Run the login state machine until the session is authenticated.

        Returns immediately when already authenticated. Failures are raised,
        never retried here.

        Raises:
            CredentialsRejectedError: The identity provider showed an error
            FieldNotFoundError: A form field matched none of its selectors
            LoginTimeoutError: A bounded wait elapsed
            CaptchaUnresolvedError: A challenge could not be cleared
            AuthError: The browser failed during the flow
        """
        if self._authenticated:
            logger.debug("Already authenticated, skipping login")
            return

        creds = credentials or self._credentials
        async with self._login_lock:
            if self._authenticated:
                return

            self._submitted = False
            state = LoginState.CHECKING_STATUS
            try:
                while state is not LoginState.DONE:
                    self.state = state
                    logger.debug(f"Login state: {state.value}")
                    state = await self._handlers[state](creds)
                self.state = LoginState.DONE
                await self._complete()
            except AuthError:
                self._authenticated = False
                raise
            except BrowserError as e:
                self._authenticated = False
                raise AuthError(f"Browser failure during {self.state.value}: {e.message}") from e

        logger.info(f"✅ Logged in as {creds.masked_username}")

    async def _check_status(self, credentials: Credentials) -> LoginState:
        if await self.is_authenticated():
            return LoginState.DONE

        logger.info(f"Starting login for {credentials.masked_username}")
        await self.browser.navigate(self.site.login_url)

        async def redirected() -> Optional[ProbeResult]:
            probe = self.classify_url(await self.browser.current_url())
            return probe if probe is not ProbeResult.UNKNOWN else None

        probe = await poll_until(
            redirected, Timeouts.IDP_REDIRECT_SECONDS, Intervals.URL_POLL, self.clock
        )
        if probe is None:
            raise LoginTimeoutError("identity provider redirect", Timeouts.IDP_REDIRECT_SECONDS)
        if probe is ProbeResult.PROTECTED:
            # Single sign-on cookie sent us straight back
            return LoginState.DONE
        return LoginState.EMAIL_ENTRY

    async def _enter_email(self, credentials: Credentials) -> LoginState:
        email_field = await self._require(Selectors.EMAIL)
        await email_field.click()
        await email_field.type(credentials.username)
        await self.clock.sleep(Delays.AFTER_TYPING)

        continue_button = await self._require(Selectors.CONTINUE)
        await self._wait_enabled(continue_button, Selectors.CONTINUE)
        await continue_button.click()
        await self.clock.sleep(Delays.AFTER_CONTINUE_CLICK)
        return LoginState.PASSWORD_ENTRY

    async def _enter_password(self, credentials: Credentials) -> LoginState:
        visible_timeout = Timeouts.PASSWORD_VISIBLE / 1000
        password_field = await self._locate(Selectors.PASSWORD)
        if password_field is None or not await password_field.wait_visible(visible_timeout):
            raise LoginTimeoutError("password field", visible_timeout)

        await password_field.click()
        await password_field.type(credentials.password)
        await self.clock.sleep(Delays.AFTER_TYPING)

        submit_button = await self._require(Selectors.SUBMIT)
        await self._wait_enabled(submit_button, Selectors.SUBMIT)
        await submit_button.click()
        self._submitted = True
        return LoginState.SUBMITTING

    async def _await_submission(self, credentials: Credentials) -> LoginState:
        # Counted in polls, not wall time; time spent resolving a challenge is not charged
        for second in range(1, LoginBudget.SUBMIT_POLLS + 1):
            await self.clock.sleep(LoginBudget.SUBMIT_POLL_INTERVAL)

            if self.classify_url(await self.browser.current_url()) is ProbeResult.PROTECTED:
                return LoginState.DONE

            await self._raise_if_rejected()

            if second in LoginBudget.CAPTCHA_CHECKPOINTS:
                challenge = await self._detect()
                if challenge is not None:
                    signals = ", ".join(challenge.signals)
                    logger.info(f"Challenge during login submission ({signals})")
                    await self._resolve(challenge, self.interactive_captcha_timeout)

        raise LoginTimeoutError(
            "submission", LoginBudget.SUBMIT_POLLS * LoginBudget.SUBMIT_POLL_INTERVAL
        )

    async def _complete(self) -> None:
        if self._submitted:
            await self.clock.sleep(Delays.AFTER_LOGIN)
            challenge = await self._detect()
            if challenge is not None:
                logger.info("Challenge shown after login")
                await self._resolve(challenge, self.post_login_captcha_timeout)

        self._authenticated = True
        await self._persist()

    # -- helpers ------------------------------------------------------------

    async def _locate(self, spec: SelectorSpec) -> Optional[ElementHandle]:
        return await poll_attempts(
            lambda: self.browser.find(spec),
            LoginBudget.CONTROL_ENABLE_POLLS,
            LoginBudget.CONTROL_ENABLE_INTERVAL,
            self.clock,
        )

    async def _require(self, spec: SelectorSpec) -> ElementHandle:
        element = await self._locate(spec)
        if element is None:
            raise FieldNotFoundError(spec.name, list(spec.selectors))
        return element

    async def _wait_enabled(self, element: ElementHandle, spec: SelectorSpec) -> None:
        # Client-side validation enables the button asynchronously
        enabled = await poll_attempts(
            element.is_enabled,
            LoginBudget.CONTROL_ENABLE_POLLS,
            LoginBudget.CONTROL_ENABLE_INTERVAL,
            self.clock,
        )
        if not enabled:
            raise LoginTimeoutError(
                f"{spec.name} activation",
                LoginBudget.CONTROL_ENABLE_POLLS * LoginBudget.CONTROL_ENABLE_INTERVAL,
            )

    async def _raise_if_rejected(self) -> None:
        try:
            error_element = await self.browser.find(Selectors.LOGIN_ERROR)
            if error_element is None or not await error_element.is_visible():
                return
            message = await error_element.text()
        except BrowserError as e:
            # The banner vanishes with the page when the submit navigates away
            logger.debug(f"Login error banner unreadable this poll: {e.message}")
            return
        if message:
            raise CredentialsRejectedError(message)

    async def _detect(self) -> Optional[CaptchaChallenge]:
        try:
            return await detect_challenge(self.browser)
        except BrowserError as e:
            logger.debug(f"Challenge detection skipped: {e.message}")
            return None

    async def _resolve(self, challenge: CaptchaChallenge, timeout: float) -> None:
        self._requires_captcha = True
        if self.on_challenge is not None:
            try:
                await self.on_challenge(challenge)
            except Exception as e:
                logger.error(f"Challenge hook failed: {e}")

        try:
            await self.resolver.resolve(self.browser, challenge, timeout)
        except CaptchaUnresolvedError:
            raise
        except CaptchaError as e:
            raise CaptchaUnresolvedError(e.message, timeout=timeout) from e

        self._requires_captcha = False

    async def _persist(self) -> None:
        if self.store is None:
            return
        try:
            blob = await self.browser.export_state()
            self.store.save(blob)
        except (BrowserError, OSError) as e:
            logger.error(f"Failed to persist session state: {e}")
