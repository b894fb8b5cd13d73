"""Third-party CAPTCHA solving service clients."""

import asyncio
from abc import ABC, abstractmethod
from typing import Any

from loguru import logger
from twocaptcha import TwoCaptcha

from drive_monitor.constants import CaptchaConfig
from drive_monitor.core.exceptions import CaptchaServiceError


class CaptchaSolvingService(ABC):
    """Turns a challenge site key and page URL into a solution token."""

    @abstractmethod
    async def solve(self, site_key: str, page_url: str) -> str:
        """
        Solve a challenge.

        Raises:
            CaptchaServiceError: If no token could be obtained
        """
        pass


class TwoCaptchaService(CaptchaSolvingService):
    """2Captcha-based hCaptcha solving service."""

    def __init__(self, api_key: str, timeout: int = CaptchaConfig.SOLVE_TIMEOUT):
        """
        Initialize 2Captcha solver.

        Args:
            api_key: 2Captcha API key (required)
            timeout: Solving timeout in seconds

        Raises:
            ValueError: If api_key is empty or missing
        """
        if not api_key:
            raise ValueError("2Captcha API key is required")

        self._api_key = api_key
        self.timeout = timeout
        self._solver = TwoCaptcha(api_key)

    def __repr__(self) -> str:
        """Return repr with masked API key."""
        return f"TwoCaptchaService(api_key='***', timeout={self.timeout})"

    def __str__(self) -> str:
        return self.__repr__()

    async def solve(self, site_key: str, page_url: str) -> str:
        logger.info(f"Solving hCaptcha with 2Captcha for {page_url}")

        # Blocking client, run in thread pool
        loop = asyncio.get_running_loop()
        try:
            result: Any = await asyncio.wait_for(
                loop.run_in_executor(
                    None, lambda: self._solver.hcaptcha(sitekey=site_key, url=page_url)
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise CaptchaServiceError(f"2Captcha timed out after {self.timeout}s") from e
        except Exception as e:
            raise CaptchaServiceError(f"2Captcha error: {e}") from e

        if result and isinstance(result, dict) and result.get("code"):
            logger.info("2Captcha solved successfully")
            return str(result["code"])

        raise CaptchaServiceError("2Captcha returned no solution code")
