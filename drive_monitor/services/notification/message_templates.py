"""Bilingual (Korean/English) notification message bodies."""

from datetime import datetime
from typing import Sequence

from drive_monitor.models.programs import KOREAN_PROGRAM_NAMES

DIVIDER = "━" * 28
TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def _local(ts: datetime) -> str:
    return ts.astimezone().strftime(TIME_FORMAT)


def availability_body(programs: Sequence[str], checked_at: datetime, reservation_url: str) -> str:
    """Body announcing newly opened programs."""
    lines = [
        "BMW 드라이빙 센터 예약이 오픈되었습니다!",
        "BMW Driving Center reservations are now open!",
        "",
        DIVIDER,
        "",
        "🚗 예약 가능한 프로그램 (Available Programs):",
        "",
    ]
    for program in programs:
        korean = KOREAN_PROGRAM_NAMES.get(program)
        lines.append(f"  ✅ {program} ({korean})" if korean else f"  ✅ {program}")
    lines += [
        "",
        DIVIDER,
        "",
        "📅 예약 페이지 (Reservation Page):",
        f"   {reservation_url}",
        "",
        f"🕐 확인 시간 (Checked at): {_local(checked_at)}",
        "",
        DIVIDER,
        "⚡ 빠른 예약을 권장합니다! (Book quickly before it fills up!)",
    ]
    return "\n".join(lines)


def captcha_alert_body(detected_at: datetime, page_url: str = "") -> str:
    """Body asking the operator to solve a challenge."""
    lines = [
        "BMW 드라이빙 센터 로그인 중 CAPTCHA가 감지되었습니다.",
        "A CAPTCHA challenge was detected while logging in to BMW Driving Center.",
        "",
        "브라우저 창에서 직접 해결해 주세요.",
        "Please solve it in the monitor's browser window.",
        "",
        f"🕐 감지 시간 (Detected at): {_local(detected_at)}",
    ]
    if page_url:
        lines.append(f"🔗 페이지 (Page): {page_url}")
    return "\n".join(lines)


def connection_test_body(sent_at: datetime) -> str:
    """Body of the configuration test email."""
    return "\n".join(
        [
            "BMW 드라이빙 센터 모니터 테스트 이메일입니다.",
            "This is a test email from BMW Driving Center Monitor.",
            f"Time: {_local(sent_at)}",
        ]
    )
