"""Captcha-related constants."""

from typing import Final


class CaptchaConfig:
    """Captcha configuration."""

    SERVICE_2CAPTCHA: Final[str] = "2captcha"
    SOLVE_TIMEOUT: Final[int] = 180
    API_KEY_ENV: Final[str] = "TWOCAPTCHA_API_KEY"


class CaptchaSignals:
    """Thresholds and markers used to recognise an hCaptcha interstitial."""

    SMALL_PAGE_CHARS: Final[int] = 10_000
    SMALL_BODY_CHARS: Final[int] = 5_000
    PROVIDER_MARKERS: Final[tuple[str, ...]] = (
        "hcaptcha.com",
        "h-captcha",
        "hCaptcha",
    )
    BODY_CLASS: Final[str] = "no-selection"
    SCRIPT_MARKER: Final[str] = "hcaptcha.com/1/api.js"
    TITLE_MARKERS: Final[tuple[str, ...]] = ("captcha", "verification", "보안 확인")
    RESPONSE_FIELDS: Final[tuple[str, ...]] = ("h-captcha-response", "g-recaptcha-response")
