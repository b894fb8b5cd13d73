"""Fixed-interval availability polling with graceful shutdown."""

import asyncio
from contextlib import AsyncExitStack
from datetime import datetime, timezone
from enum import Enum
from typing import AsyncContextManager, Callable, List, Optional, Sequence

from loguru import logger

from drive_monitor.constants import Intervals, Timeouts
from drive_monitor.core.exceptions import AuthError, CheckError, SessionExpiredError
from drive_monitor.models.programs import AvailabilityResult, CheckResult
from drive_monitor.services.availability.checker import AvailabilityChecker
from drive_monitor.services.browser.controlled_browser import ControlledBrowser
from drive_monitor.services.notification.coordinator import NotificationCoordinator
from drive_monitor.services.session.session_manager import SessionManager

BrowserFactory = Callable[[bool], AsyncContextManager[ControlledBrowser]]


class LoopState(str, Enum):
    """Poll loop lifecycle states."""

    IDLE = "idle"
    RUNNING = "running"
    STOPPING = "stopping"


class PollLoopDriver:
    """
    Run check cycles on a fixed interval until stopped.

    One cycle: make sure the session is logged in, check the listing, hand the
    result to the notification coordinator. Login and check failures skip the
    cycle and never end the loop. The browser is opened by ``start()`` and
    closed exactly once when the loop task ends, whatever the exit path.

    ``start()``/``stop()`` may be called from a presentation layer while the
    loop runs; both are linearized on an internal lock.
    """

    def __init__(
        self,
        session: SessionManager,
        checker: AvailabilityChecker,
        coordinator: NotificationCoordinator,
        browser_factory: BrowserFactory,
        programs: Sequence[str],
        interval: float = Intervals.CHECK_DEFAULT,
        stop_grace: float = Timeouts.STOP_GRACE_SECONDS,
    ):
        self.session = session
        self.checker = checker
        self.coordinator = coordinator
        self.programs: List[str] = list(programs)
        self.interval = interval
        self.stop_grace = stop_grace
        self._browser_factory = browser_factory

        self._state = LoopState.IDLE
        self._state_lock = asyncio.Lock()
        self._cycle_lock = asyncio.Lock()
        self._stop_event: Optional[asyncio.Event] = None
        self._task: Optional[asyncio.Task] = None
        self._release_task: Optional[asyncio.Task] = None
        self._exit_stack: Optional[AsyncExitStack] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

        self.last_checked_at: Optional[datetime] = None
        self.last_result: Optional[CheckResult] = None
        self.last_error: Optional[str] = None
        self.check_count = 0

    @property
    def browser_factory(self) -> BrowserFactory:
        return self._browser_factory

    @property
    def state(self) -> LoopState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is LoopState.RUNNING

    # -- control ----------------------------------------------------------

    async def start(self, headless: bool = True) -> None:
        """
        Open the browser and start polling.

        Raises:
            RuntimeError: If the loop is not idle
            Exception: Whatever the browser factory raised while launching
        """
        async with self._state_lock:
            if self._state is not LoopState.IDLE:
                raise RuntimeError(f"Monitor is already {self._state.value}")

            stack = AsyncExitStack()
            try:
                browser = await stack.enter_async_context(self._browser_factory(headless))
                self.session.attach(browser)
                stack.callback(self.session.detach)
                await self.session.restore_session()
            except BaseException:
                await stack.aclose()
                raise

            self._exit_stack = stack
            self._stop_event = asyncio.Event()
            self._loop = asyncio.get_running_loop()
            self._state = LoopState.RUNNING
            self._task = asyncio.create_task(self._run(), name="drive_monitor_poll_loop")

        logger.info(
            f"🚀 Monitoring {len(self.programs)} program(s) every {self.interval:g}s "
            f"(headless={headless})"
        )

    async def stop(self, timeout: Optional[float] = None) -> None:
        """
        Ask the loop to stop and wait for it.

        The in-flight cycle finishes first. If the loop is still busy after
        ``timeout`` (default: one interval plus a grace period) it is cancelled.
        """
        async with self._state_lock:
            if self._state is not LoopState.RUNNING:
                logger.debug(f"Stop requested while {self._state.value}, nothing to do")
                return
            self._state = LoopState.STOPPING
            task = self._task
            assert self._stop_event is not None
            self._stop_event.set()

        logger.info("Stopping monitor...")
        if task is None:
            return

        bound = timeout if timeout is not None else self.interval + self.stop_grace
        done, _ = await asyncio.wait({task}, timeout=bound)
        if not done:
            logger.warning(f"Poll loop did not stop within {bound:g}s, cancelling")
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            if self._release_task is not None:
                logger.info("Browser will be released once the in-flight check finishes")
                return
        elif not task.cancelled() and task.exception() is not None:
            logger.error(f"Poll loop ended with error: {task.exception()}")

        logger.info("Monitor stopped")

    def request_stop_threadsafe(self) -> None:
        """Schedule ``stop()`` from another thread (signal handler, GUI thread)."""
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        asyncio.run_coroutine_threadsafe(self.stop(), loop)

    async def check_once(self, headless: bool = True) -> AvailabilityResult:
        """
        Run a single cycle and return its availability.

        Reuses the running loop's browser (serialized with the loop's own
        cycles); when idle, opens and closes a browser just for this check.

        Raises:
            AuthError: Login failed
            CheckError: The listing could not be read
            RuntimeError: The monitor is stopping
        """
        async with self._state_lock:
            if self._state is LoopState.STOPPING:
                raise RuntimeError("Monitor is stopping")
            if self._state is LoopState.IDLE:
                async with self._browser_factory(headless) as browser:
                    self.session.attach(browser)
                    try:
                        await self.session.restore_session()
                        result = await self._run_cycle()
                    finally:
                        self.session.detach()
                return result.availability

        return (await self._run_cycle()).availability

    # -- loop ---------------------------------------------------------------

    async def _run(self) -> None:
        assert self._stop_event is not None
        try:
            while not self._stop_event.is_set():
                await self._loop_cycle()
                if await self._wait_or_stop(self.interval):
                    break
        except asyncio.CancelledError:
            logger.warning("Poll loop cancelled")
            raise
        finally:
            await self._teardown()

    async def _teardown(self) -> None:
        stack, self._exit_stack = self._exit_stack, None
        self._release_task = asyncio.create_task(
            self._release(stack), name="drive_monitor_browser_release"
        )
        # Cancelling the loop task must not skip the close
        await asyncio.shield(self._release_task)

    async def _release(self, stack: Optional[AsyncExitStack]) -> None:
        """Close the browser once no cycle holds it, then go idle."""
        try:
            if stack is not None:
                async with self._cycle_lock:
                    await stack.aclose()
        except Exception as e:
            logger.error(f"Error releasing browser: {e}")
        finally:
            self._task = None
            self._release_task = None
            self._state = LoopState.IDLE

    async def _wait_or_stop(self, seconds: float) -> bool:
        """
        Wait for the interval or until stop is requested.

        Returns:
            True if stop was requested during the wait
        """
        assert self._stop_event is not None
        if self._stop_event.is_set():
            return True
        stop_task = asyncio.create_task(self._stop_event.wait())
        try:
            done, _ = await asyncio.wait({stop_task}, timeout=seconds)
            return stop_task in done
        finally:
            if not stop_task.done():
                stop_task.cancel()
                try:
                    await stop_task
                except asyncio.CancelledError:
                    pass

    async def _loop_cycle(self) -> None:
        try:
            await self._run_cycle()
            self.last_error = None
        except AuthError as e:
            self.last_error = e.message
            logger.error(f"❌ Login failed, skipping this check: {e.message}")
        except SessionExpiredError as e:
            self.last_error = e.message
            logger.warning("Session expired during check, will log in again next cycle")
        except CheckError as e:
            self.last_error = e.message
            logger.error(f"❌ Availability check failed: {e.message}")
        except Exception as e:
            self.last_error = str(e)
            logger.exception(f"Unexpected error in check cycle: {e}")

    async def _run_cycle(self) -> CheckResult:
        async with self._cycle_lock:
            if not await self.session.is_authenticated():
                await self.session.login()

            result = await self.checker.check(self.programs)
            self.check_count += 1
            self.last_checked_at = result.checked_at
            self.last_result = result
            self._log_status(result)

            checked_at = result.checked_at or datetime.now(timezone.utc)
            await self.coordinator.process(result.availability, checked_at)
            return result

    def _log_status(self, result: CheckResult) -> None:
        for program, is_open in result.availability.items():
            if is_open:
                logger.info(f"✅ {program}: 예약 가능 (open)")
            else:
                logger.info(f"❌ {program}: 예약 불가 (closed)")
