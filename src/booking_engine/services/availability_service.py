import logging
from datetime import date

from booking_engine.repository.booking_repo import BookingRepository

logger = logging.getLogger(__name__)


class AvailabilityService:
    def __init__(self, booking_repo: BookingRepository):
        self.booking_repo = booking_repo

    def is_available(self, room_id: str, check_in: date, check_out: date) -> bool:
        """True when no PENDING or CONFIRMED booking overlaps [check_in, check_out).

        Intervals are half-open: a stay checking out on the day another checks
        in does not conflict. Ordering of the dates is the caller's concern.
        """
        for window in self.booking_repo.get_room_bookings(room_id, check_in, check_out):
            if not window.status.is_active:
                continue
            if window.check_in < check_out and window.check_out > check_in:
                logger.info(
                    f"Room {room_id} is held by booking {window.booking_id} "
                    f"({window.check_in} to {window.check_out})"
                )
                return False
        return True
