"""CAPTCHA detection and resolution."""

from .detector import CaptchaChallenge, detect_challenge, find_challenge
from .resolvers import (
    AutomatedResolver,
    CaptchaResolver,
    FallbackResolver,
    ManualResolver,
    build_resolver,
)
from .solver_service import CaptchaSolvingService, TwoCaptchaService

__all__ = [
    "AutomatedResolver",
    "CaptchaChallenge",
    "CaptchaResolver",
    "CaptchaSolvingService",
    "FallbackResolver",
    "ManualResolver",
    "TwoCaptchaService",
    "build_resolver",
    "detect_challenge",
    "find_challenge",
]
