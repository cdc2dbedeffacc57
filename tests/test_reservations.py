"""Tests for the reservation lifecycle against a real (SQLite) database."""

import threading
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlmodel import Session, select

from barbershop import catalog
from barbershop.auth import actor_from_user
from barbershop.config import get_settings
from barbershop.db import build_engine
from barbershop.errors import (
    AlreadyCancelled,
    AlreadyPast,
    Forbidden,
    InvalidRequest,
    NotFound,
    ProviderInactive,
    ReservationNotFound,
    ServiceInactive,
    SlotUnavailable,
)
from barbershop.models import ProviderDay, Reservation
from barbershop.reservations import (
    can_cancel,
    cancel_reservation,
    count_active_on,
    count_all,
    create_reservation,
    describe,
    list_available_slots,
    list_customer_reservations,
    list_provider_day,
    list_recent_reservations,
)
from barbershop.schemas import ReservationScope, ServiceUpdate
from tests.conftest import DEFAULT_NOW, MONDAY, SUNDAY, TUESDAY


def book(session, customer, service, provider, start, on_date=MONDAY, now=DEFAULT_NOW):
    return create_reservation(
        session,
        customer_id=customer.id,
        service_id=service.id,
        provider_id=provider.id,
        on_date=on_date,
        start_time=start,
        now=now,
    )


class TestCreateReservation:
    def test_creates_confirmed_with_derived_end(self, session, customer, full_cut, provider):
        reservation = book(session, customer, full_cut, provider, time(10, 0))

        assert reservation.id is not None
        assert reservation.status == "confirmed"
        assert reservation.start_time == time(10, 0)
        assert reservation.end_time == time(11, 0)
        assert reservation.customer_id == customer.id

    def test_booked_interval_disappears_from_availability(self, session, customer, haircut, full_cut, provider):
        book(session, customer, full_cut, provider, time(10, 0))

        available = list_available_slots(session, provider.id, haircut.id, MONDAY, DEFAULT_NOW)
        assert "09:30" in available
        assert "10:00" not in available
        assert "10:30" not in available
        assert "11:00" in available

    def test_same_start_twice_is_unavailable(self, session, customer, other_customer, haircut, provider):
        book(session, customer, haircut, provider, time(9, 0))
        with pytest.raises(SlotUnavailable):
            book(session, other_customer, haircut, provider, time(9, 0))

    def test_overlapping_different_start_is_unavailable(self, session, customer, haircut, full_cut, provider):
        book(session, customer, full_cut, provider, time(9, 0))
        with pytest.raises(SlotUnavailable):
            book(session, customer, haircut, provider, time(9, 30))

    def test_adjacent_booking_is_allowed(self, session, customer, haircut, full_cut, provider):
        book(session, customer, full_cut, provider, time(9, 0))
        reservation = book(session, customer, haircut, provider, time(10, 0))
        assert reservation.start_time == time(10, 0)

    def test_off_grid_start_is_unavailable(self, session, customer, haircut, provider):
        with pytest.raises(SlotUnavailable):
            book(session, customer, haircut, provider, time(9, 15))

    def test_start_outside_hours_is_unavailable(self, session, customer, haircut, provider):
        with pytest.raises(SlotUnavailable):
            book(session, customer, haircut, provider, time(17, 0))

    def test_closed_day_is_unavailable(self, session, customer, haircut, provider):
        with pytest.raises(SlotUnavailable):
            book(session, customer, haircut, provider, time(10, 0), on_date=SUNDAY + timedelta(days=7))

    def test_elapsed_slot_today_is_unavailable(self, session, customer, haircut, provider):
        now = datetime.combine(MONDAY, time(10, 15))
        with pytest.raises(SlotUnavailable):
            book(session, customer, haircut, provider, time(10, 0), now=now)

    def test_past_date_is_invalid(self, session, customer, haircut, provider):
        with pytest.raises(InvalidRequest):
            book(session, customer, haircut, provider, time(10, 0), on_date=date(2029, 12, 31))

    def test_seconds_in_start_are_invalid(self, session, customer, haircut, provider):
        with pytest.raises(InvalidRequest):
            book(session, customer, haircut, provider, time(10, 0, 30))

    def test_unknown_service_or_provider(self, session, customer, haircut, provider):
        with pytest.raises(NotFound):
            create_reservation(session, customer.id, 999, provider.id, MONDAY, time(10), DEFAULT_NOW)
        with pytest.raises(NotFound):
            create_reservation(session, customer.id, haircut.id, 999, MONDAY, time(10), DEFAULT_NOW)

    def test_inactive_service(self, session, customer, haircut, provider):
        catalog.deactivate_service(session, haircut.id)
        with pytest.raises(ServiceInactive):
            book(session, customer, haircut, provider, time(10, 0))

    def test_inactive_provider(self, session, customer, haircut, provider):
        catalog.deactivate_provider(session, provider.id)
        with pytest.raises(ProviderInactive):
            book(session, customer, haircut, provider, time(10, 0))

    def test_deactivation_from_another_session_is_seen(self, engine, session, customer, haircut, provider):
        # `session` has the service cached as active
        assert catalog.get_service(session, haircut.id).is_active
        with Session(engine) as admin_session:
            catalog.deactivate_service(admin_session, haircut.id)
        with pytest.raises(ServiceInactive):
            book(session, customer, haircut, provider, time(10, 0))

    def test_duration_edit_keeps_existing_end_time(self, session, customer, haircut, provider):
        reservation = book(session, customer, haircut, provider, time(10, 0))
        catalog.update_service(session, haircut.id, ServiceUpdate(duration_minutes=90, price=Decimal("999")))

        session.refresh(reservation)
        assert reservation.end_time == time(10, 30)

    def test_database_rejects_second_live_row_at_same_start(self, session, customer, haircut, provider):
        book(session, customer, haircut, provider, time(9, 0))
        session.add(
            Reservation(
                customer_id=customer.id,
                service_id=haircut.id,
                provider_id=provider.id,
                date=MONDAY,
                start_time=time(9, 0),
                end_time=time(9, 30),
            )
        )
        with pytest.raises(IntegrityError):
            session.commit()
        session.rollback()

    def test_offset_start_is_invalid(self, session, customer, haircut, provider):
        with pytest.raises(InvalidRequest):
            book(session, customer, haircut, provider, time(10, 0, tzinfo=timezone(timedelta(hours=5))))
        assert session.exec(select(Reservation)).all() == []

    def test_new_row_gets_aware_created_at(self, session, customer, haircut, provider):
        reservation = Reservation(
            customer_id=customer.id,
            service_id=haircut.id,
            provider_id=provider.id,
            date=MONDAY,
            start_time=time(9, 0),
            end_time=time(9, 30),
        )
        assert reservation.created_at.tzinfo is not None

        session.add(reservation)
        session.commit()
        session.refresh(reservation)
        assert reservation.created_at is not None


class TestLockContention:
    @pytest.fixture
    def impatient_engine(self, engine, monkeypatch):
        """Second engine on the same database that gives up on the write lock almost at once."""
        monkeypatch.setenv("SQLITE_BUSY_TIMEOUT_SECONDS", "0.1")
        get_settings.cache_clear()
        impatient = build_engine(engine.url.render_as_string(hide_password=False))
        yield impatient
        impatient.dispose()
        get_settings.cache_clear()

    def test_lock_wait_timeout_is_slot_unavailable(self, engine, impatient_engine, customer, haircut, provider):
        with Session(engine) as holder:
            # an uncommitted write keeps the SQLite write lock
            holder.add(ProviderDay(provider_id=provider.id, date=TUESDAY, version=1))
            holder.flush()

            with Session(impatient_engine) as session:
                with pytest.raises(SlotUnavailable):
                    book(session, customer, haircut, provider, time(10, 0))
            holder.rollback()

        with Session(engine) as check:
            assert check.exec(select(Reservation)).all() == []
            assert check.exec(select(ProviderDay)).all() == []

    def test_busy_commit_is_slot_unavailable(self, engine, session, monkeypatch, customer, haircut, provider):
        def busy_commit():
            raise OperationalError("COMMIT", {}, Exception("database is locked"))

        monkeypatch.setattr(session, "commit", busy_commit)
        with pytest.raises(SlotUnavailable):
            book(session, customer, haircut, provider, time(10, 0))

        with Session(engine) as check:
            assert check.exec(select(Reservation)).all() == []


class TestConcurrentCreate:
    def _race(self, engine, attempts):
        """Run create_reservation calls at the same moment, each on its own session."""
        barrier = threading.Barrier(len(attempts))
        outcomes = [None] * len(attempts)

        def worker(index, kwargs):
            with Session(engine) as own_session:
                barrier.wait()
                try:
                    outcomes[index] = create_reservation(own_session, now=DEFAULT_NOW, **kwargs).id
                except SlotUnavailable as exc:
                    outcomes[index] = exc

        threads = [
            threading.Thread(target=worker, args=(i, kwargs)) for i, kwargs in enumerate(attempts)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=30)
        return outcomes

    def _live_rows(self, engine, provider_id):
        with Session(engine) as check:
            return check.exec(
                select(Reservation)
                .where(Reservation.provider_id == provider_id)
                .where(Reservation.status != "cancelled")
            ).all()

    def test_same_interval_exactly_one_wins(self, engine, customer, other_customer, haircut, provider):
        attempt = dict(service_id=haircut.id, provider_id=provider.id, on_date=MONDAY, start_time=time(10, 0))
        outcomes = self._race(
            engine,
            [dict(attempt, customer_id=customer.id), dict(attempt, customer_id=other_customer.id)],
        )

        winners = [o for o in outcomes if isinstance(o, int)]
        losers = [o for o in outcomes if isinstance(o, SlotUnavailable)]
        assert len(winners) == 1
        assert len(losers) == 1
        assert len(self._live_rows(engine, provider.id)) == 1

    def test_overlapping_intervals_with_different_starts(self, engine, customer, other_customer, haircut, full_cut, provider):
        outcomes = self._race(
            engine,
            [
                dict(customer_id=customer.id, service_id=full_cut.id, provider_id=provider.id,
                     on_date=MONDAY, start_time=time(10, 0)),
                dict(customer_id=other_customer.id, service_id=haircut.id, provider_id=provider.id,
                     on_date=MONDAY, start_time=time(10, 30)),
            ],
        )

        assert sum(isinstance(o, int) for o in outcomes) == 1
        assert sum(isinstance(o, SlotUnavailable) for o in outcomes) == 1

        rows = self._live_rows(engine, provider.id)
        assert len(rows) == 1

    def test_different_days_do_not_block_each_other(self, engine, customer, other_customer, haircut, provider):
        outcomes = self._race(
            engine,
            [
                dict(customer_id=customer.id, service_id=haircut.id, provider_id=provider.id,
                     on_date=MONDAY, start_time=time(10, 0)),
                dict(customer_id=other_customer.id, service_id=haircut.id, provider_id=provider.id,
                     on_date=TUESDAY, start_time=time(10, 0)),
            ],
        )
        assert all(isinstance(o, int) for o in outcomes)


class TestCancelReservation:
    def test_owner_cancels_future_reservation_and_slot_reappears(self, session, customer, haircut, provider):
        now = datetime.combine(MONDAY, time(8, 0))
        reservation = book(session, customer, haircut, provider, time(10, 0), now=now)
        assert "10:00" not in list_available_slots(session, provider.id, haircut.id, MONDAY, now)

        cancelled = cancel_reservation(session, actor_from_user(customer), reservation.id, now)

        assert cancelled.status == "cancelled"
        assert "10:00" in list_available_slots(session, provider.id, haircut.id, MONDAY, now)

    def test_cancelled_slot_can_be_booked_again(self, session, customer, other_customer, haircut, provider):
        reservation = book(session, customer, haircut, provider, time(10, 0))
        cancel_reservation(session, actor_from_user(customer), reservation.id, DEFAULT_NOW)

        rebooked = book(session, other_customer, haircut, provider, time(10, 0))
        assert rebooked.status == "confirmed"

    def test_elapsed_reservation_is_already_past(self, session, customer, haircut, provider):
        reservation = book(session, customer, haircut, provider, time(10, 0))
        later = datetime.combine(MONDAY, time(10, 5))
        with pytest.raises(AlreadyPast):
            cancel_reservation(session, actor_from_user(customer), reservation.id, later)

    def test_start_exactly_now_is_already_past(self, session, customer, haircut, provider):
        reservation = book(session, customer, haircut, provider, time(10, 0))
        with pytest.raises(AlreadyPast):
            cancel_reservation(
                session, actor_from_user(customer), reservation.id, datetime.combine(MONDAY, time(10, 0))
            )

    def test_pending_reservation_can_be_cancelled(self, session, customer, haircut, provider):
        reservation = book(session, customer, haircut, provider, time(10, 0))
        reservation.status = "pending"
        session.add(reservation)
        session.commit()

        cancelled = cancel_reservation(session, actor_from_user(customer), reservation.id, DEFAULT_NOW)
        assert cancelled.status == "cancelled"
        assert "10:00" in list_available_slots(session, provider.id, haircut.id, MONDAY, DEFAULT_NOW)

    def test_completed_reservation_cannot_be_cancelled(self, session, customer, haircut, provider):
        reservation = book(session, customer, haircut, provider, time(10, 0))
        reservation.status = "completed"
        session.add(reservation)
        session.commit()
        with pytest.raises(AlreadyPast):
            cancel_reservation(session, actor_from_user(customer), reservation.id, DEFAULT_NOW)

    def test_twice_is_already_cancelled(self, session, customer, haircut, provider):
        reservation = book(session, customer, haircut, provider, time(10, 0))
        cancel_reservation(session, actor_from_user(customer), reservation.id, DEFAULT_NOW)
        with pytest.raises(AlreadyCancelled):
            cancel_reservation(session, actor_from_user(customer), reservation.id, DEFAULT_NOW)

    def test_other_customer_is_forbidden(self, session, customer, other_customer, haircut, provider):
        reservation = book(session, customer, haircut, provider, time(10, 0))
        with pytest.raises(Forbidden):
            cancel_reservation(session, actor_from_user(other_customer), reservation.id, DEFAULT_NOW)

    def test_admin_may_cancel_any(self, session, customer, admin, haircut, provider):
        reservation = book(session, customer, haircut, provider, time(10, 0))
        cancelled = cancel_reservation(session, actor_from_user(admin), reservation.id, DEFAULT_NOW)
        assert cancelled.status == "cancelled"

    def test_unknown_reservation(self, session, customer):
        with pytest.raises(ReservationNotFound):
            cancel_reservation(session, actor_from_user(customer), 12345, DEFAULT_NOW)


class TestListings:
    def test_customer_reservations_in_date_order(self, session, customer, other_customer, haircut, provider):
        book(session, customer, haircut, provider, time(11, 0), on_date=TUESDAY)
        book(session, customer, haircut, provider, time(14, 0))
        book(session, customer, haircut, provider, time(9, 0))
        book(session, other_customer, haircut, provider, time(10, 0))

        mine = list_customer_reservations(session, customer.id)
        assert [(r.date, r.start_time) for r in mine] == [
            (MONDAY, time(9, 0)),
            (MONDAY, time(14, 0)),
            (TUESDAY, time(11, 0)),
        ]

    def test_recent_reservations_newest_date_first(self, session, customer, haircut, provider):
        book(session, customer, haircut, provider, time(9, 0))
        book(session, customer, haircut, provider, time(9, 0), on_date=TUESDAY)

        recent = list_recent_reservations(session)
        assert [r.date for r in recent] == [TUESDAY, MONDAY]

    def test_provider_day_includes_cancelled(self, session, customer, haircut, provider):
        kept = book(session, customer, haircut, provider, time(9, 0))
        dropped = book(session, customer, haircut, provider, time(11, 0))
        cancel_reservation(session, actor_from_user(customer), dropped.id, DEFAULT_NOW)

        day = list_provider_day(session, provider.id, MONDAY)
        assert [r.id for r in day] == [kept.id, dropped.id]
        assert count_active_on(session, MONDAY) == 1
        assert count_all(session) == 2

    def test_scope_splits_upcoming_and_past(self, session, customer, haircut, provider):
        monday = book(session, customer, haircut, provider, time(9, 0))
        tuesday = book(session, customer, haircut, provider, time(10, 0), on_date=TUESDAY)
        dropped = book(session, customer, haircut, provider, time(11, 0), on_date=TUESDAY)
        cancel_reservation(session, actor_from_user(customer), dropped.id, DEFAULT_NOW)

        upcoming = list_customer_reservations(session, customer.id, ReservationScope.upcoming, today=TUESDAY)
        past = list_customer_reservations(session, customer.id, ReservationScope.past, today=TUESDAY)

        assert [r.id for r in upcoming] == [tuesday.id]
        assert [r.id for r in past] == [monday.id, dropped.id]

    def test_scope_needs_today(self, session, customer):
        with pytest.raises(ValueError):
            list_customer_reservations(session, customer.id, ReservationScope.upcoming)

    def test_describe_names_the_booking(self, session, customer, haircut, provider):
        reservation = book(session, customer, haircut, provider, time(10, 0))

        detail = describe(reservation, DEFAULT_NOW)

        assert detail.service.name == "Haircut"
        assert detail.service.duration_minutes == 30
        assert detail.service.price == Decimal("300")
        assert detail.provider_name == "Alex"
        assert detail.customer_name == customer.full_name
        assert detail.can_cancel is True

    def test_can_cancel_follows_clock_and_status(self, session, customer, haircut, provider):
        reservation = book(session, customer, haircut, provider, time(10, 0))
        assert can_cancel(reservation, datetime.combine(MONDAY, time(9, 59)))
        assert not can_cancel(reservation, datetime.combine(MONDAY, time(10, 0)))

        cancel_reservation(session, actor_from_user(customer), reservation.id, DEFAULT_NOW)
        assert not can_cancel(reservation, DEFAULT_NOW)


class TestAvailabilityLookup:
    def test_unknown_ids_raise_not_found(self, session, haircut, provider):
        with pytest.raises(NotFound):
            list_available_slots(session, 999, haircut.id, MONDAY, DEFAULT_NOW)
        with pytest.raises(NotFound):
            list_available_slots(session, provider.id, 999, MONDAY, DEFAULT_NOW)

    def test_inactive_provider_has_no_slots(self, session, haircut, provider):
        catalog.deactivate_provider(session, provider.id)
        assert list_available_slots(session, provider.id, haircut.id, MONDAY, DEFAULT_NOW) == []

    def test_tuesday_window(self, session, full_cut, provider):
        assert list_available_slots(session, provider.id, full_cut.id, TUESDAY, DEFAULT_NOW) == [
            "09:00", "09:30", "10:00", "10:30", "11:00",
        ]
