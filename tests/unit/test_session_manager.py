"""Tests for the login state machine and session probing."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fakes import CAPTCHA_HTML, IDP_URL, LOGIN_URL, PROTECTED_URL, FakeElement

from drive_monitor.constants import LoginBudget, Selectors, Timeouts
from drive_monitor.core.exceptions import (
    AuthError,
    BrowserError,
    CaptchaServiceError,
    CaptchaUnresolvedError,
    CredentialsRejectedError,
    FieldNotFoundError,
    LoginTimeoutError,
)
from drive_monitor.services.session.session_manager import (
    LoginState,
    ProbeResult,
    SessionManager,
)
from drive_monitor.services.session.session_store import SessionStore


def make_resolver(side_effect=None):
    resolver = MagicMock()
    resolver.resolve = AsyncMock(side_effect=side_effect)
    return resolver


def stall_submission(browser):
    """Submit click no longer redirects to the protected site."""
    browser.elements[Selectors.SUBMIT.name] = FakeElement()


class TestClassifyUrl:
    """URL classification against the two known domains."""

    def test_protected_host(self, session_manager):
        assert session_manager.classify_url(PROTECTED_URL) is ProbeResult.PROTECTED

    def test_identity_provider(self, session_manager):
        assert session_manager.classify_url(IDP_URL) is ProbeResult.IDENTITY_PROVIDER

    def test_identity_provider_subdomain(self, session_manager):
        url = "https://login.customer.bmwgroup.com/oneid"
        assert session_manager.classify_url(url) is ProbeResult.IDENTITY_PROVIDER

    def test_lookalike_host_is_unknown(self, session_manager):
        url = "https://customer.bmwgroup.com.attacker.example/login"
        assert session_manager.classify_url(url) is ProbeResult.UNKNOWN

    def test_blank_page_is_unknown(self, session_manager):
        assert session_manager.classify_url("about:blank") is ProbeResult.UNKNOWN


@pytest.mark.asyncio
class TestIsAuthenticated:
    """Probing the protected resource."""

    async def test_protected_destination(self, session_manager, login_browser):
        login_browser.routes = {}

        assert await session_manager.is_authenticated() is True
        assert session_manager.authenticated is True
        assert login_browser.navigations == [PROTECTED_URL]

    async def test_redirect_to_identity_provider(self, session_manager):
        assert await session_manager.is_authenticated() is False
        assert session_manager.last_probe is ProbeResult.IDENTITY_PROVIDER

    async def test_unknown_destination_is_logged(
        self, session_manager, login_browser, captured_logs
    ):
        login_browser.routes = {PROTECTED_URL: "https://maintenance.example.com/"}

        assert await session_manager.is_authenticated() is False
        assert session_manager.last_probe is ProbeResult.UNKNOWN
        assert any("Ambiguous session state" in m for m in captured_logs)

    async def test_navigation_failure_reports_false(self, session_manager, login_browser):
        login_browser.fail_navigation = True

        assert await session_manager.is_authenticated() is False
        assert session_manager.authenticated is False

    async def test_invalidate(self, session_manager, login_browser):
        login_browser.routes = {}
        await session_manager.is_authenticated()

        session_manager.invalidate()

        assert session_manager.authenticated is False


@pytest.mark.asyncio
class TestLogin:
    """Login state machine."""

    async def test_full_login(self, session_manager, login_browser, credentials):
        await session_manager.login()

        elements = login_browser.elements
        assert session_manager.authenticated is True
        assert session_manager.state is LoginState.DONE
        assert elements[Selectors.EMAIL.name].typed == [credentials.username]
        assert elements[Selectors.PASSWORD.name].typed == [credentials.password]
        assert elements[Selectors.CONTINUE.name].clicks == 1
        assert elements[Selectors.SUBMIT.name].clicks == 1
        assert login_browser.navigations == [PROTECTED_URL, LOGIN_URL]

    async def test_login_is_idempotent(self, session_manager, login_browser):
        await session_manager.login()
        navigations = list(login_browser.navigations)

        await session_manager.login()

        assert login_browser.navigations == navigations
        assert login_browser.elements[Selectors.SUBMIT.name].clicks == 1

    async def test_valid_session_skips_form(self, session_manager, login_browser):
        login_browser.routes = {}

        await session_manager.login()

        assert session_manager.authenticated is True
        assert login_browser.navigations == [PROTECTED_URL]
        assert login_browser.elements[Selectors.EMAIL.name].typed == []

    async def test_single_sign_on_redirect(self, session_manager, login_browser):
        login_browser.routes[LOGIN_URL] = PROTECTED_URL

        await session_manager.login()

        assert session_manager.authenticated is True
        assert login_browser.elements[Selectors.EMAIL.name].typed == []
        # no challenge probe without a form submission
        assert login_browser.content_reads == 0

    async def test_explicit_credentials_override(self, session_manager, login_browser):
        from drive_monitor.models.credentials import Credentials

        await session_manager.login(Credentials(username="other@example.com", password="pw"))

        assert login_browser.elements[Selectors.EMAIL.name].typed == ["other@example.com"]

    async def test_identity_provider_redirect_timeout(self, session_manager, login_browser, clock):
        login_browser.routes[LOGIN_URL] = "https://maintenance.example.com/"

        with pytest.raises(LoginTimeoutError) as exc_info:
            await session_manager.login()

        assert exc_info.value.step == "identity provider redirect"
        assert clock.current >= Timeouts.IDP_REDIRECT_SECONDS
        assert session_manager.authenticated is False

    async def test_missing_email_field(self, session_manager, login_browser):
        del login_browser.elements[Selectors.EMAIL.name]

        with pytest.raises(FieldNotFoundError) as exc_info:
            await session_manager.login()

        assert exc_info.value.selector_name == Selectors.EMAIL.name
        assert exc_info.value.tried_selectors == list(Selectors.EMAIL.selectors)

    async def test_continue_never_enabled(self, session_manager, login_browser, clock):
        button = FakeElement(enabled_after=None)
        login_browser.elements[Selectors.CONTINUE.name] = button

        with pytest.raises(LoginTimeoutError) as exc_info:
            await session_manager.login()

        assert "continue_button" in exc_info.value.step
        assert button.enabled_checks == LoginBudget.CONTROL_ENABLE_POLLS
        assert button.clicks == 0

    async def test_continue_enabled_after_polls(self, session_manager, login_browser):
        button = FakeElement(enabled_after=3)
        login_browser.elements[Selectors.CONTINUE.name] = button

        await session_manager.login()

        assert button.enabled_checks == 4
        assert button.clicks == 1
        assert session_manager.authenticated is True

    async def test_submit_never_enabled(self, session_manager, login_browser):
        login_browser.elements[Selectors.SUBMIT.name] = FakeElement(enabled_after=None)

        with pytest.raises(LoginTimeoutError) as exc_info:
            await session_manager.login()

        assert "login_button" in exc_info.value.step

    async def test_password_field_not_visible(self, session_manager, login_browser):
        login_browser.elements[Selectors.PASSWORD.name] = FakeElement(visible=False)

        with pytest.raises(LoginTimeoutError) as exc_info:
            await session_manager.login()

        assert exc_info.value.step == "password field"

    async def test_submission_timeout_is_bounded(self, session_manager, login_browser, clock):
        stall_submission(login_browser)

        with pytest.raises(LoginTimeoutError) as exc_info:
            await session_manager.login()

        assert exc_info.value.step == "submission"
        assert clock.sleeps.count(LoginBudget.SUBMIT_POLL_INTERVAL) == LoginBudget.SUBMIT_POLLS
        # one challenge probe per checkpoint
        assert login_browser.content_reads == len(LoginBudget.CAPTCHA_CHECKPOINTS)

    async def test_credentials_rejected(self, session_manager, login_browser):
        stall_submission(login_browser)
        login_browser.elements[Selectors.LOGIN_ERROR.name] = FakeElement(
            text="비밀번호가 올바르지 않습니다"
        )

        with pytest.raises(CredentialsRejectedError) as exc_info:
            await session_manager.login()

        assert "비밀번호가 올바르지 않습니다" in exc_info.value.message
        assert exc_info.value.recoverable is False

    async def test_hidden_error_banner_is_ignored(self, session_manager, login_browser):
        login_browser.elements[Selectors.LOGIN_ERROR.name] = FakeElement(
            visible=False, text="stale"
        )

        await session_manager.login()

        assert session_manager.authenticated is True

    async def test_banner_lost_to_navigation_is_not_a_rejection(
        self, session_manager, login_browser
    ):
        stall_submission(login_browser)

        class VanishingBanner(FakeElement):
            """Visible when probed, gone by the time its text is read."""

            async def text(self):
                login_browser.url = PROTECTED_URL
                login_browser.routes = {}
                raise BrowserError("text", "Execution context was destroyed")

        login_browser.elements[Selectors.LOGIN_ERROR.name] = VanishingBanner()

        await session_manager.login()

        assert session_manager.authenticated is True
        assert session_manager.state is LoginState.DONE

    async def test_browser_failure_becomes_auth_error(self, session_manager, login_browser):
        def crash():
            raise BrowserError("click", "Target closed")

        login_browser.elements[Selectors.EMAIL.name] = FakeElement(on_click=crash)

        with pytest.raises(AuthError) as exc_info:
            await session_manager.login()

        assert "email_entry" in exc_info.value.message
        assert session_manager.authenticated is False

    async def test_password_never_logged(self, session_manager, credentials, captured_logs):
        await session_manager.login()

        assert captured_logs
        assert not any(credentials.password in m for m in captured_logs)
        assert not any(credentials.username in m for m in captured_logs)


@pytest.mark.asyncio
class TestLoginChallenges:
    """Challenges shown during and after submission."""

    async def test_challenge_at_checkpoint(self, credentials, site, clock, login_browser):
        stall_submission(login_browser)
        login_browser.html = CAPTCHA_HTML

        async def solve(browser, challenge, timeout):
            browser.html = ""
            browser.url = PROTECTED_URL

        resolver = make_resolver(side_effect=solve)
        hook = AsyncMock()
        manager = SessionManager(
            credentials, site=site, resolver=resolver, clock=clock, on_challenge=hook
        )
        manager.attach(login_browser)

        await manager.login()

        resolver.resolve.assert_awaited_once()
        browser_arg, challenge, timeout = resolver.resolve.await_args.args
        assert browser_arg is login_browser
        assert challenge.site_key == "site-key-123"
        assert timeout == Timeouts.CAPTCHA_INTERACTIVE_SECONDS
        hook.assert_awaited_once_with(challenge)
        assert manager.authenticated is True
        assert manager.requires_captcha is False

    async def test_unresolved_challenge_fails_login(self, credentials, site, clock, login_browser):
        stall_submission(login_browser)
        login_browser.html = CAPTCHA_HTML
        resolver = make_resolver(side_effect=CaptchaServiceError("no site key"))
        manager = SessionManager(credentials, site=site, resolver=resolver, clock=clock)
        manager.attach(login_browser)

        with pytest.raises(CaptchaUnresolvedError):
            await manager.login()

        assert manager.authenticated is False
        assert manager.requires_captcha is True

    async def test_challenge_after_login(self, credentials, site, clock, login_browser):
        login_browser.html = CAPTCHA_HTML

        async def solve(browser, challenge, timeout):
            browser.html = ""

        resolver = make_resolver(side_effect=solve)
        manager = SessionManager(credentials, site=site, resolver=resolver, clock=clock)
        manager.attach(login_browser)

        await manager.login()

        assert resolver.resolve.await_args.args[2] == Timeouts.CAPTCHA_POST_LOGIN_SECONDS
        assert manager.authenticated is True

    async def test_failing_hook_does_not_block_resolution(
        self, credentials, site, clock, login_browser, captured_logs
    ):
        login_browser.html = CAPTCHA_HTML

        async def solve(browser, challenge, timeout):
            browser.html = ""

        manager = SessionManager(
            credentials,
            site=site,
            resolver=make_resolver(side_effect=solve),
            clock=clock,
            on_challenge=AsyncMock(side_effect=RuntimeError("smtp down")),
        )
        manager.attach(login_browser)

        await manager.login()

        assert manager.authenticated is True
        assert any("Challenge hook failed" in m for m in captured_logs)


@pytest.mark.asyncio
class TestSessionPersistence:
    """Saving and restoring the browser session blob."""

    async def test_login_persists_state(
        self, credentials, site, clock, login_browser, tmp_path
    ):
        store = SessionStore(tmp_path)
        manager = SessionManager(credentials, site=site, clock=clock, store=store)
        manager.attach(login_browser)

        await manager.login()

        assert store.load() == login_browser.state

    async def test_restore_session(self, credentials, site, clock, login_browser, tmp_path):
        store = SessionStore(tmp_path)
        blob = {"cookies": [{"name": "JSESSIONID", "value": "xyz"}], "origins": []}
        store.save(blob)
        manager = SessionManager(credentials, site=site, clock=clock, store=store)
        manager.attach(login_browser)

        assert await manager.restore_session() is True
        assert login_browser.imported == [blob]

    async def test_restore_without_saved_state(
        self, credentials, site, clock, login_browser, tmp_path
    ):
        manager = SessionManager(credentials, site=site, clock=clock, store=SessionStore(tmp_path))
        manager.attach(login_browser)

        assert await manager.restore_session() is False
        assert login_browser.imported == []

    async def test_restore_without_store(self, session_manager):
        assert await session_manager.restore_session() is False


class TestBrowserOwnership:
    """Attach and detach semantics."""

    def test_detach_clears_browser(self, session_manager):
        session_manager.detach()

        with pytest.raises(RuntimeError):
            session_manager.browser

    def test_attach_resets_authentication(self, session_manager, login_browser):
        session_manager._authenticated = True

        session_manager.attach(login_browser)

        assert session_manager.authenticated is False
