"""hCaptcha challenge detection.

The provider's markup is not stable, so several independent signals are
evaluated against one page snapshot and any single one is enough.
Detection only reads the page; it is safe to call at any point.
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple
from urllib.parse import parse_qs, urlparse

from bs4 import BeautifulSoup
from bs4.element import Tag

from drive_monitor.constants import CaptchaSignals
from drive_monitor.services.browser.controlled_browser import ControlledBrowser


@dataclass(frozen=True)
class CaptchaChallenge:
    """A detected challenge: where it is and which key the widget uses."""

    site_key: Optional[str]
    page_url: str
    signals: Tuple[str, ...] = ()


def _mentions_provider(text: str) -> bool:
    lowered = text.lower()
    return "hcaptcha" in lowered or "h-captcha" in lowered


def _site_key_from_url(src: str) -> Optional[str]:
    # hCaptcha frames carry the key in the query string or in the fragment
    parsed = urlparse(src)
    for part in (parsed.query, parsed.fragment):
        values = parse_qs(part).get("sitekey")
        if values and values[0]:
            return values[0]
    return None


def _extract_site_key(soup: BeautifulSoup) -> Optional[str]:
    widget = soup.select_one(".h-captcha[data-sitekey]") or soup.select_one("[data-sitekey]")
    if isinstance(widget, Tag):
        key = widget.get("data-sitekey")
        if isinstance(key, str) and key:
            return key

    for iframe in soup.find_all("iframe"):
        src = iframe.get("src") or ""
        if _mentions_provider(src):
            key = _site_key_from_url(src)
            if key:
                return key
    return None


def _collect_signals(html: str, soup: BeautifulSoup) -> List[str]:
    signals: List[str] = []
    small_page = len(html) < CaptchaSignals.SMALL_PAGE_CHARS

    if small_page and any(marker in html for marker in CaptchaSignals.PROVIDER_MARKERS):
        signals.append("small_page_marker")

    body = soup.body
    if body is not None:
        if CaptchaSignals.BODY_CLASS in (body.get("class") or []):
            signals.append("body_class")
        body_markup = body.decode_contents()
        if len(body_markup) < CaptchaSignals.SMALL_BODY_CHARS and _mentions_provider(body_markup):
            signals.append("small_body")

    for iframe in soup.find_all("iframe"):
        if _mentions_provider(iframe.get("src") or "") or _mentions_provider(
            iframe.get("title") or ""
        ):
            signals.append("iframe")
            break

    if soup.select_one("div.h-captcha") is not None:
        signals.append("widget")

    for script in soup.find_all("script", src=True):
        if CaptchaSignals.SCRIPT_MARKER in script["src"]:
            signals.append("script")
            break

    title = soup.title.get_text(strip=True).lower() if soup.title else ""
    if (
        small_page
        and any(marker in title for marker in CaptchaSignals.TITLE_MARKERS)
        and _mentions_provider(html)
    ):
        signals.append("title")

    return signals


def find_challenge(html: str, page_url: str) -> Optional[CaptchaChallenge]:
    """
    Inspect one page snapshot for a challenge.

    Args:
        html: Full page markup
        page_url: URL the markup was read from

    Returns:
        The detected challenge, or None if no signal fired
    """
    if not html:
        return None

    soup = BeautifulSoup(html, "html.parser")
    signals = _collect_signals(html, soup)
    if not signals:
        return None

    return CaptchaChallenge(
        site_key=_extract_site_key(soup),
        page_url=page_url,
        signals=tuple(signals),
    )


async def detect_challenge(browser: ControlledBrowser) -> Optional[CaptchaChallenge]:
    """
    Read the current page once and look for a challenge.

    Raises:
        BrowserError: If the page cannot be read
    """
    html = await browser.content()
    url = await browser.current_url()
    return find_challenge(html, url)
