"""Booking status transitions.

Two paths change a booking's status. The owner may only cancel a booking that
is still active. An administrator may set any known status from any state;
that path is a back-office override and skips the transition table.
"""

from booking_engine.models.bookings import BookingStatus
from booking_engine.utils.custom_exceptions import (
    AlreadyFinal,
    Forbidden,
    InvalidStatus,
)

BOOKING_TRANSITIONS = {
    BookingStatus.PENDING: {BookingStatus.CONFIRMED, BookingStatus.CANCELLED},
    BookingStatus.CONFIRMED: {BookingStatus.COMPLETED, BookingStatus.CANCELLED},
    BookingStatus.CANCELLED: set(),
    BookingStatus.COMPLETED: set(),
}

OWNER_TARGETS = {BookingStatus.CANCELLED}


def is_forward_transition(current: BookingStatus, target: BookingStatus) -> bool:
    return target in BOOKING_TRANSITIONS.get(current, set())


def parse_status(raw) -> BookingStatus:
    if isinstance(raw, BookingStatus):
        return raw
    if not isinstance(raw, str):
        raise InvalidStatus()
    try:
        return BookingStatus(raw)
    except ValueError:
        raise InvalidStatus(
            f"Invalid status '{raw}'. Allowed: "
            + ", ".join(s.value for s in BookingStatus)
        ) from None


def assert_owner_transition(current: BookingStatus, target: BookingStatus) -> None:
    if target not in OWNER_TARGETS:
        raise Forbidden(f"Guests cannot set a booking to {target.value}")
    if current.is_final:
        raise AlreadyFinal()
    if not is_forward_transition(current, target):
        raise Forbidden(f"Cannot move booking from {current.value} to {target.value}")
