# barbershop/core/schedule.py
"""Weekly working hours: which window applies on a given date."""

from collections import Counter
from datetime import date, time
from typing import Iterable, Optional, Protocol

DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]


class Window(Protocol):
    day_of_week: int
    start_time: time
    end_time: time


class DuplicateWindowError(ValueError):
    """More than one working window for the same weekday."""


def day_of_week(on_date: date) -> int:
    """0=Sunday ... 6=Saturday."""
    return on_date.isoweekday() % 7


def resolve_window(windows: Iterable[Window], on_date: date) -> Optional[Window]:
    """
    Return the provider's window for the date's weekday, or None when closed.

    Raises DuplicateWindowError if the schedule has two windows for that weekday.
    """
    dow = day_of_week(on_date)
    matches = [w for w in windows if w.day_of_week == dow]
    if len(matches) > 1:
        raise DuplicateWindowError(f"Multiple working windows for {DAY_NAMES[dow]}")
    return matches[0] if matches else None


def validate_windows(windows: Iterable[Window]) -> None:
    """Reject out-of-range days, empty/inverted windows and duplicate weekdays."""
    windows = list(windows)
    for w in windows:
        if not 0 <= w.day_of_week <= 6:
            raise ValueError("day_of_week must be between 0 (Sunday) and 6 (Saturday)")
        if w.start_time >= w.end_time:
            raise ValueError(
                f"{DAY_NAMES[w.day_of_week]}: start_time must be before end_time"
            )

    counts = Counter(w.day_of_week for w in windows)
    duplicates = sorted(day for day, n in counts.items() if n > 1)
    if duplicates:
        names = ", ".join(DAY_NAMES[d] for d in duplicates)
        raise DuplicateWindowError(f"Only one working window per weekday allowed ({names})")
