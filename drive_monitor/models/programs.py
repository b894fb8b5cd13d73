"""Program catalog and per-cycle availability result types."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Tuple

# Program name -> currently reservable
AvailabilityResult = Dict[str, bool]


@dataclass(frozen=True)
class ProgramCategory:
    """A group of programs as shown on the driving center site."""

    name: str
    programs: Tuple[str, ...]


ALL_PROGRAMS: Tuple[ProgramCategory, ...] = (
    ProgramCategory(
        "Experience Programs",
        (
            "Test Drive",
            "Off-Road",
            "Taxi",
            "i Drive",
            "Night Drive",
            "Scenic Drive",
            "On-Road",
            "X-Bus",
        ),
    ),
    ProgramCategory(
        "Training Programs",
        (
            "Starter Pack",
            "i Starter Pack",
            "MINI Starter Pack",
            "M Core",
            "BEV Core",
            "Intensive",
            "M Intensive",
            "JCW Intensive",
            "M Drift I",
            "M Drift II",
            "M Drift III",
        ),
    ),
    ProgramCategory("Owner Programs", ("Owners Track Day", "Owners Drift Day")),
    ProgramCategory("Junior Campus Programs", ("Laboratory", "Workshop")),
)

KOREAN_PROGRAM_NAMES: Dict[str, str] = {
    "Test Drive": "테스트 드라이브",
    "Off-Road": "오프로드",
    "Taxi": "택시",
    "i Drive": "i 드라이브",
    "Night Drive": "나이트 드라이브",
    "Scenic Drive": "시닉 드라이브",
    "On-Road": "온로드",
    "X-Bus": "X-버스",
    "Starter Pack": "스타터 팩",
    "i Starter Pack": "i 스타터 팩",
    "MINI Starter Pack": "MINI 스타터 팩",
    "M Core": "M 코어",
    "BEV Core": "BEV 코어",
    "Intensive": "인텐시브",
    "M Intensive": "M 인텐시브",
    "JCW Intensive": "JCW 인텐시브",
    "M Drift I": "M 드리프트 I",
    "M Drift II": "M 드리프트 II",
    "M Drift III": "M 드리프트 III",
    "Owners Track Day": "오너스 트랙 데이",
    "Owners Drift Day": "오너스 드리프트 데이",
    "Laboratory": "연구실",
    "Workshop": "워크샵",
}


def all_program_names() -> List[str]:
    """Return a flat list of every catalogued program name."""
    return [name for category in ALL_PROGRAMS for name in category.programs]


def is_known_program(name: str) -> bool:
    return name in all_program_names()


@dataclass
class CheckResult:
    """
    Outcome of one availability check.

    Attributes:
        availability: Program name -> reservable
        captcha_seen: Whether a challenge interrupted the check (always False in steady state)
        checked_at: When the listing content was read
        url: Resolved URL of the listing page
    """

    availability: AvailabilityResult = field(default_factory=dict)
    captcha_seen: bool = False
    checked_at: Optional[datetime] = None
    url: str = ""

    @property
    def available_programs(self) -> List[str]:
        return [name for name, is_open in self.availability.items() if is_open]
