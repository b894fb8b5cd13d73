#!/usr/bin/env python3
"""
drive-monitor - BMW Driving Center reservation availability monitor.

Main entry point for the application.
"""

import argparse
import asyncio
import signal
import sys
from typing import Optional

from loguru import logger

from drive_monitor.constants import Intervals
from drive_monitor.core.config import AppConfig, load_settings
from drive_monitor.core.exceptions import AuthError, CheckError, ConfigurationError, MonitorError
from drive_monitor.core.logger import setup_logging
from drive_monitor.models.programs import ALL_PROGRAMS, KOREAN_PROGRAM_NAMES
from drive_monitor.services.monitor import PollLoopDriver, build_driver
from drive_monitor.services.monitor.builder import build_sink


def print_programs() -> None:
    """Print the program catalog."""
    print("BMW 드라이빙 센터 프로그램 목록 (Available Programs)")
    print("=" * 50)
    for category in ALL_PROGRAMS:
        print(f"\n{category.name}:")
        for program in category.programs:
            print(f"  - {program} ({KOREAN_PROGRAM_NAMES.get(program, program)})")
    print("\nAdd the programs you want to monitor under 'programs' in config.yaml")


def setup_signal_handlers(
    loop: asyncio.AbstractEventLoop, shutdown_event: asyncio.Event
) -> None:
    """
    Setup graceful shutdown handlers.

    Signals the shutdown event so the monitor can finish its current check.
    """

    def handle_signal(signame: str) -> None:
        if shutdown_event.is_set():
            logger.warning(f"Received {signame} again, shutdown already in progress")
            return
        logger.info(f"Received {signame}, initiating graceful shutdown...")
        shutdown_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, handle_signal, sig.name)
        except NotImplementedError:
            # Windows event loops have no add_signal_handler
            signal.signal(
                sig, lambda signum, frame: loop.call_soon_threadsafe(handle_signal, str(signum))
            )


async def run_monitor(driver: PollLoopDriver, headless: bool) -> None:
    """Run the poll loop until SIGINT/SIGTERM."""
    shutdown_event = asyncio.Event()
    setup_signal_handlers(asyncio.get_running_loop(), shutdown_event)

    await driver.start(headless)
    try:
        await shutdown_event.wait()
    finally:
        await driver.stop()


async def run_check_once(driver: PollLoopDriver, headless: bool) -> int:
    """Run a single check and print the result."""
    try:
        availability = await driver.check_once(headless)
    except (AuthError, CheckError) as e:
        logger.error(f"Check failed: {e.message}")
        return 1

    for program, is_open in availability.items():
        print(f"{'✅' if is_open else '❌'} {program}: {'open' if is_open else 'closed'}")
    return 0


async def run_test_login(driver: PollLoopDriver, headless: bool) -> int:
    """Log in once and report, without monitoring."""
    session = driver.session
    async with driver.browser_factory(headless) as browser:
        session.attach(browser)
        try:
            await session.restore_session()
            if await session.is_authenticated():
                logger.info("✅ Saved session is still valid")
                return 0
            await session.login()
        except AuthError as e:
            logger.error(f"❌ Login test failed: {e.message}")
            return 1
        finally:
            session.detach()
    logger.info("✅ Login test succeeded")
    return 0


async def run_test_email(settings: AppConfig) -> int:
    """Send a test email with the configured SMTP settings."""
    channel = build_sink(settings)
    if not channel.enabled:
        logger.error("Email notifications are disabled in config")
        return 1
    try:
        await channel.send_test()
    except MonitorError as e:
        logger.error(f"❌ Test email failed: {e.message}")
        return 1
    return 0


def parse_args(argv: Optional[list] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="BMW Driving Center reservation availability monitor"
    )
    parser.add_argument("--config", default=None, help="Path to configuration file")
    parser.add_argument(
        "--headless",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Run the browser headless (overrides config)",
    )
    parser.add_argument("--interval", type=int, default=None, help="Check interval in seconds")
    parser.add_argument(
        "--list-programs", action="store_true", help="List available programs and exit"
    )
    parser.add_argument("--test-login", action="store_true", help="Test login and exit")
    parser.add_argument("--check-once", action="store_true", help="Run a single check and exit")
    parser.add_argument("--test-email", action="store_true", help="Send a test email and exit")
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (overrides config)",
    )
    return parser.parse_args(argv)


def main(argv: Optional[list] = None) -> None:
    """Main entry point."""
    args = parse_args(argv)

    if args.list_programs:
        print_programs()
        return

    try:
        settings = load_settings(args.config)
        if args.interval is not None:
            if not Intervals.CHECK_MIN <= args.interval <= Intervals.CHECK_MAX:
                raise ConfigurationError(
                    f"--interval must be between {Intervals.CHECK_MIN} and {Intervals.CHECK_MAX}"
                )
            settings.monitor.interval = args.interval
        if args.headless is not None:
            settings.monitor.headless = args.headless
        if args.log_level:
            settings.logging.level = args.log_level

        setup_logging(
            settings.logging.level,
            json_format=settings.logging.json_format,
            log_dir=settings.logging.directory,
        )

        if args.test_email:
            sys.exit(asyncio.run(run_test_email(settings)))

        driver = build_driver(settings, require_programs=not args.test_login)
        headless = settings.monitor.headless

        if args.test_login:
            sys.exit(asyncio.run(run_test_login(driver, headless)))
        if args.check_once:
            sys.exit(asyncio.run(run_check_once(driver, headless)))

        asyncio.run(run_monitor(driver, headless))

    except ConfigurationError as e:
        logger.error(f"Configuration error: {e.message}")
        logger.info("Copy config/config.example.yaml to config/config.yaml and fill it in")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Interrupted")
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
