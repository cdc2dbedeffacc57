# barbershop/core/intervals.py
"""
Wall-clock time helpers.

Times here are date-less and zone-less: every value is already local to the
shop's single operating zone. Intervals are half-open, [start, end).
"""

from datetime import time

MINUTES_PER_DAY = 24 * 60


def to_minutes(t: time) -> int:
    """Minutes since midnight, seconds dropped."""
    return t.hour * 60 + t.minute


def from_minutes(minutes: int) -> time:
    if not 0 <= minutes < MINUTES_PER_DAY:
        raise ValueError(f"{minutes} minutes is outside a single day")
    return time(minutes // 60, minutes % 60)


def add_minutes(t: time, n: int) -> time:
    """Shift a wall-clock time by n minutes; raises ValueError when the result leaves the day."""
    return from_minutes(to_minutes(t) + n)


def compare_times(a: time, b: time) -> int:
    if a < b:
        return -1
    if a > b:
        return 1
    return 0


def format_hhmm(t: time) -> str:
    return t.strftime("%H:%M")


def parse_hhmm(value: str) -> time:
    """Parse "HH:MM" or "HH:MM:SS" (how the schedule rows come back from storage)."""
    parts = value.strip().split(":")
    if len(parts) not in (2, 3) or not all(p.isdigit() and len(p) == 2 for p in parts):
        raise ValueError(f"Invalid time {value!r}, expected HH:MM")
    return time(*(int(p) for p in parts))


def overlaps(start_a, end_a, start_b, end_b) -> bool:
    # empty intervals never overlap anything
    if not (start_a < end_a and start_b < end_b):
        return False
    return start_a < end_b and start_b < end_a
