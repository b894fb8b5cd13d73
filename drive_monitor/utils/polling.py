"""Bounded polling helpers with an injectable clock.

Every wait in the login flow and the CAPTCHA sub-protocol goes through a
:class:`Clock`, so tests can drive "never becomes enabled" and
"becomes enabled after N polls" scenarios without real delays.
"""

import asyncio
import time
from typing import Awaitable, Callable, Optional, TypeVar

T = TypeVar("T")


class Clock:
    """Monotonic time source with an async sleep."""

    def now(self) -> float:
        return time.monotonic()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)


async def poll_attempts(
    probe: Callable[[], Awaitable[Optional[T]]],
    attempts: int,
    interval: float,
    clock: Clock,
) -> Optional[T]:
    """
    Call ``probe`` up to ``attempts`` times, sleeping ``interval`` between calls.

    Returns:
        The first truthy probe result, or None if every attempt came back falsy
    """
    for attempt in range(attempts):
        result = await probe()
        if result:
            return result
        if attempt < attempts - 1:
            await clock.sleep(interval)
    return None


async def poll_until(
    probe: Callable[[], Awaitable[Optional[T]]],
    timeout: float,
    interval: float,
    clock: Clock,
) -> Optional[T]:
    """
    Call ``probe`` every ``interval`` seconds until it returns a truthy value.

    The probe always runs at least once. Elapsed time is measured with the
    clock, so time spent inside the probe counts against ``timeout``.

    Returns:
        The first truthy probe result, or None once ``timeout`` has elapsed
    """
    deadline = clock.now() + timeout
    while True:
        result = await probe()
        if result:
            return result
        remaining = deadline - clock.now()
        if remaining <= 0:
            return None
        await clock.sleep(min(interval, remaining))
