# barbershop/core/availability.py
"""
Availability engine.

Enumerates bookable start times for one provider, one service duration and
one date. Pure: everything it needs (schedule, reservations, "now") is passed
in, so the same inputs always give the same list.
"""

from datetime import date, datetime, time
from typing import Iterable, List

from .conflicts import Booked, is_occupied
from .intervals import add_minutes, format_hhmm, from_minutes, to_minutes
from .schedule import Window, resolve_window

DEFAULT_STEP_MINUTES = 30


def candidate_starts(window: Window, duration_minutes: int, step_minutes: int) -> List[time]:
    """
    Grid of starts from window.start in step_minutes increments.

    A slot is kept while start + duration <= window.end, so the last slot may
    end exactly at closing time.
    """
    if duration_minutes <= 0 or step_minutes <= 0:
        raise ValueError("duration_minutes and step_minutes must be positive")

    open_at = to_minutes(window.start_time)
    close_at = to_minutes(window.end_time)

    starts = []
    current = open_at
    while current + duration_minutes <= close_at:
        starts.append(from_minutes(current))
        current += step_minutes
    return starts


def available_slots(
    provider_id: int,
    windows: Iterable[Window],
    duration_minutes: int,
    on_date: date,
    now: datetime,
    reservations: Iterable[Booked],
    step_minutes: int = DEFAULT_STEP_MINUTES,
) -> List[str]:
    """
    Ascending "HH:MM" starts that are inside working hours, strictly in the
    future relative to `now`, and free of overlap with active reservations.

    `now` is naive local wall-clock time. A closed day, a service longer than
    the window, or a date before today gives an empty list.
    """
    window = resolve_window(windows, on_date)
    if window is None:
        return []

    today = now.date()
    if on_date < today:
        return []

    reservations = list(reservations)
    slots = []
    for start in candidate_starts(window, duration_minutes, step_minutes):
        if on_date == today and datetime.combine(on_date, start) <= now:
            continue
        end = add_minutes(start, duration_minutes)
        if is_occupied(provider_id, on_date, start, end, reservations):
            continue
        slots.append(format_hhmm(start))

    return slots
