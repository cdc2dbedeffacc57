# barbershop/errors.py
"""
Booking error taxonomy.

Every error carries the HTTP status the API answers with and a stable
machine-readable code. Only SlotUnavailable is worth retrying, after the
caller re-queries availability.
"""


class BookingError(Exception):
    status_code = 400
    code = "booking_error"
    default_message = "Booking request failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidRequest(BookingError):
    status_code = 422
    code = "invalid_request"
    default_message = "Invalid request"


class NotFound(InvalidRequest):
    status_code = 404
    code = "not_found"
    default_message = "Not found"


class ReservationNotFound(NotFound):
    code = "reservation_not_found"
    default_message = "Reservation not found"


class SlotUnavailable(BookingError):
    status_code = 409
    code = "slot_unavailable"
    default_message = "That time slot is no longer available"


class EntityInactive(BookingError):
    status_code = 409
    code = "entity_inactive"
    default_message = "Entity is no longer active"


class ServiceInactive(EntityInactive):
    code = "service_inactive"
    default_message = "Service is no longer offered"


class ProviderInactive(EntityInactive):
    code = "provider_inactive"
    default_message = "Provider is no longer taking bookings"


class Forbidden(BookingError):
    status_code = 403
    code = "forbidden"
    default_message = "Forbidden"


class AlreadyPast(BookingError):
    status_code = 409
    code = "already_past"
    default_message = "Reservation time has already passed"


class AlreadyCancelled(BookingError):
    status_code = 409
    code = "already_cancelled"
    default_message = "Reservation already cancelled"
