"""Target site constants: URLs, domains, selectors and listing markers."""

from typing import Final

from drive_monitor.models.selector import SelectorSpec


class Site:
    """BMW Driving Center endpoints."""

    BASE_URL: Final[str] = "https://driving-center.bmw.co.kr"
    PROTECTED_HOST: Final[str] = "driving-center.bmw.co.kr"
    IDENTITY_PROVIDER_HOST: Final[str] = "customer.bmwgroup.com"
    RESERVATION_PATH: Final[str] = "/orders/programs/products/view"
    LOGIN_PATH: Final[str] = "/oauth2/authorization/gcdm?language=ko"


class Selectors:
    """Login form selectors (primary first, then fallbacks)."""

    EMAIL: Final[SelectorSpec] = SelectorSpec(
        "email_input",
        (
            "input#email:not([type='hidden'])",
            "input[name='email']:not([type='hidden'])",
        ),
    )
    CONTINUE: Final[SelectorSpec] = SelectorSpec(
        "continue_button",
        (
            "button.custom-button.primary",
            "xpath=//button[contains(text(), '계속')]",
            "button[type='submit']",
        ),
    )
    PASSWORD: Final[SelectorSpec] = SelectorSpec(
        "password_input",
        (
            "input#password:not([type='hidden'])",
            "input[name='password']:not([type='hidden'])",
        ),
    )
    SUBMIT: Final[SelectorSpec] = SelectorSpec(
        "login_button",
        (
            "button.custom-button.primary",
            "xpath=//button[contains(text(), '로그인')]",
            "button[type='submit']",
        ),
    )
    LOGIN_ERROR: Final[SelectorSpec] = SelectorSpec(
        "login_error",
        (
            ".error-message",
            ".alert-danger",
            "[role='alert']",
        ),
    )


# Sold-out / closed markers shown next to a program on the reservation listing
SOLD_OUT_MARKERS: Final[tuple[str, ...]] = ("매진", "마감", "sold out")


class StealthProfile:
    """Browser launch and context settings that hide automation."""

    LAUNCH_ARGS: Final[tuple[str, ...]] = (
        "--disable-blink-features=AutomationControlled",
        "--no-first-run",
        "--no-default-browser-check",
        "--window-size=1920,1080",
        "--lang=ko-KR",
    )
    USER_AGENT: Final[str] = (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/139.0.0.0 Safari/537.36"
    )
    LOCALE: Final[str] = "ko-KR"
    TIMEZONE: Final[str] = "Asia/Seoul"
    VIEWPORT: Final[dict] = {"width": 1920, "height": 1080}
    INIT_SCRIPT: Final[str] = """
        Object.defineProperty(navigator, 'webdriver', {
            get: () => undefined
        });
        Object.defineProperty(navigator, 'languages', {
            get: () => ['ko-KR', 'ko', 'en-US', 'en']
        });
    """
