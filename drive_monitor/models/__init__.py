"""Domain models."""

from .credentials import Credentials
from .programs import (
    ALL_PROGRAMS,
    KOREAN_PROGRAM_NAMES,
    AvailabilityResult,
    CheckResult,
    ProgramCategory,
    all_program_names,
    is_known_program,
)
from .selector import SelectorSpec

__all__ = [
    "ALL_PROGRAMS",
    "KOREAN_PROGRAM_NAMES",
    "AvailabilityResult",
    "CheckResult",
    "Credentials",
    "ProgramCategory",
    "SelectorSpec",
    "all_program_names",
    "is_known_program",
]
