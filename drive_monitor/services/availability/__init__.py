"""Reservation listing availability checks."""

from .checker import AvailabilityChecker
from .listing_parser import parse_availability

__all__ = ["AvailabilityChecker", "parse_availability"]
