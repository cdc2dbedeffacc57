# barbershop/core/conflicts.py
"""Occupancy checks for a provider's day."""

from datetime import date, time
from typing import Iterable, List, Protocol

from ..schemas import ACTIVE_STATUSES
from .intervals import overlaps


class Booked(Protocol):
    provider_id: int
    date: date
    start_time: time
    end_time: time
    status: str


def find_conflicts(
    provider_id: int,
    on_date: date,
    start: time,
    end: time,
    reservations: Iterable[Booked],
) -> List[Booked]:
    """
    Reservations that overlap [start, end) for this provider and date.

    Cancelled reservations and rows for other providers or dates are ignored,
    so callers may pass a wider list than strictly needed.
    """
    return [
        r
        for r in reservations
        if r.provider_id == provider_id
        and r.date == on_date
        and r.status in ACTIVE_STATUSES
        and overlaps(start, end, r.start_time, r.end_time)
    ]


def is_occupied(
    provider_id: int,
    on_date: date,
    start: time,
    end: time,
    reservations: Iterable[Booked],
) -> bool:
    return bool(find_conflicts(provider_id, on_date, start, end, reservations))
