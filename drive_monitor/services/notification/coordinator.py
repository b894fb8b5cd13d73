"""Turns availability results into deduplicated notifications."""

import asyncio
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from loguru import logger

from drive_monitor.core.exceptions import NotificationError
from drive_monitor.models.programs import AvailabilityResult

from .base import NotificationSink

# Minimum time between two alerts for the same program
COOLDOWN = timedelta(hours=1)


class NotificationCoordinator:
    """
    Decide which open programs deserve an alert and send one aggregate notification per cycle.

    A program is alerted when it is available and its last alert is more than
    the cooldown ago (or it was never alerted). The cooldown table is updated
    as soon as an alert is attempted and is never rolled back, so a failed send
    is not repeated on the next cycle.
    """

    def __init__(self, sink: NotificationSink, cooldown: timedelta = COOLDOWN):
        self._sink = sink
        self._cooldown = cooldown
        self._last_notified: Dict[str, datetime] = {}
        self._lock = asyncio.Lock()

    @property
    def sink(self) -> NotificationSink:
        return self._sink

    def last_notified(self, program: str) -> Optional[datetime]:
        return self._last_notified.get(program)

    async def process(self, result: AvailabilityResult, now: datetime) -> List[str]:
        """
        Record and dispatch alerts for newly eligible programs.

        Args:
            result: Program name -> available
            now: Check time, used both for the cooldown and in the alert

        Returns:
            Programs included in this cycle's alert
        """
        async with self._lock:
            notified: List[str] = []
            for program, is_open in result.items():
                if not is_open:
                    continue
                last = self._last_notified.get(program)
                if last is None or now - last > self._cooldown:
                    notified.append(program)
                    self._last_notified[program] = now
                else:
                    logger.debug(f"{program} still open, alerted at {last.isoformat()} (cooldown)")

            if notified:
                logger.info(f"🎉 Newly open: {', '.join(notified)}")
                try:
                    await self._sink.send_availability(notified, now)
                except NotificationError as e:
                    logger.error(f"Availability alert failed: {e.message}")
                except Exception as e:
                    logger.error(f"Unexpected error sending availability alert: {e}")

        return notified

    async def alert_captcha(self, detected_at: datetime, page_url: str = "") -> None:
        """Forward a challenge alert to the sink; failures are logged."""
        try:
            await self._sink.send_captcha_alert(detected_at, page_url)
        except NotificationError as e:
            logger.error(f"CAPTCHA alert failed: {e.message}")
        except Exception as e:
            logger.error(f"Unexpected error sending CAPTCHA alert: {e}")
