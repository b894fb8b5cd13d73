"""Shared fixtures for unit tests."""

import pytest
from fakes import (
    IDP_URL,
    LOGIN_URL,
    PROTECTED_URL,
    FakeBrowser,
    FakeClock,
    FakeElement,
    RecordingSink,
)

from drive_monitor.constants import Selectors
from drive_monitor.core.config.config_models import MonitorConfig
from drive_monitor.models.credentials import Credentials
from drive_monitor.services.session.session_manager import SessionManager


@pytest.fixture
def clock():
    """Deterministic clock; sleeps return immediately."""
    return FakeClock()


@pytest.fixture
def site():
    return MonitorConfig()


@pytest.fixture
def credentials():
    return Credentials(username="driver@example.com", password="s3cret-pass")


@pytest.fixture
def browser():
    return FakeBrowser()


@pytest.fixture
def login_browser():
    """Browser scripted through a full unauthenticated login."""
    browser = FakeBrowser(url="about:blank")
    browser.routes = {PROTECTED_URL: IDP_URL, LOGIN_URL: IDP_URL}

    def submit():
        browser.url = PROTECTED_URL
        browser.routes = {}

    browser.elements = {
        Selectors.EMAIL.name: FakeElement(),
        Selectors.CONTINUE.name: FakeElement(),
        Selectors.PASSWORD.name: FakeElement(),
        Selectors.SUBMIT.name: FakeElement(on_click=submit),
    }
    return browser


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def session_manager(credentials, site, clock, login_browser):
    manager = SessionManager(credentials, site=site, clock=clock)
    manager.attach(login_browser)
    return manager
