"""Timing-related constants (timeouts, intervals, delays)."""

from typing import Final


class Timeouts:
    """Timeout values - MILLISECONDS for Playwright, SECONDS noted separately."""

    # Playwright timeouts (milliseconds)
    NAVIGATION: Final[int] = 30_000
    SELECTOR_WAIT: Final[int] = 10_000
    PASSWORD_VISIBLE: Final[int] = 10_000
    ELEMENT_ACTION: Final[int] = 5_000

    # Flow timeouts (seconds)
    IDP_REDIRECT_SECONDS: Final[float] = 10.0
    CAPTCHA_POST_LOGIN_SECONDS: Final[float] = 300.0
    CAPTCHA_INTERACTIVE_SECONDS: Final[float] = 120.0
    SMTP_SECONDS: Final[float] = 30.0
    STOP_GRACE_SECONDS: Final[float] = 30.0


class Intervals:
    """Interval values in SECONDS."""

    CHECK_MIN: Final[int] = 10
    CHECK_DEFAULT: Final[int] = 300
    CHECK_MAX: Final[int] = 3600
    URL_POLL: Final[float] = 0.5
    CAPTCHA_POLL: Final[float] = 2.0


class Delays:
    """Settle delays in SECONDS."""

    AFTER_NAVIGATION: Final[float] = 3.0
    AFTER_REFRESH: Final[float] = 2.0
    AFTER_STATUS_PROBE: Final[float] = 2.0
    AFTER_TYPING: Final[float] = 0.5
    AFTER_CONTINUE_CLICK: Final[float] = 2.0
    AFTER_LOGIN: Final[float] = 2.0
    AFTER_TOKEN_INJECTION: Final[float] = 3.0


class LoginBudget:
    """Bounded retry budgets for the login flow."""

    CONTROL_ENABLE_POLLS: Final[int] = 10
    CONTROL_ENABLE_INTERVAL: Final[float] = 0.5
    SUBMIT_POLLS: Final[int] = 15
    SUBMIT_POLL_INTERVAL: Final[float] = 1.0
    # Poll indices (seconds into the submit wait) at which a challenge is looked for
    CAPTCHA_CHECKPOINTS: Final[tuple[int, ...]] = (5, 10)
