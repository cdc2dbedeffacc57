# barbershop/core/__init__.py

from .availability import available_slots, candidate_starts
from .conflicts import find_conflicts, is_occupied
from .intervals import add_minutes, compare_times, format_hhmm, overlaps, parse_hhmm
from .schedule import DuplicateWindowError, day_of_week, resolve_window, validate_windows

__all__ = [
    "add_minutes",
    "available_slots",
    "candidate_starts",
    "compare_times",
    "day_of_week",
    "DuplicateWindowError",
    "find_conflicts",
    "format_hhmm",
    "is_occupied",
    "overlaps",
    "parse_hhmm",
    "resolve_window",
    "validate_windows",
]
