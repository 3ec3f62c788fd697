from enum import Enum
from dataclasses import dataclass, field
from datetime import date, datetime, timezone


class BookingStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"

    @property
    def is_active(self) -> bool:
        return self in ACTIVE_STATUSES

    @property
    def is_final(self) -> bool:
        return self in FINAL_STATUSES


# statuses that hold a room's nights
ACTIVE_STATUSES = frozenset({BookingStatus.PENDING, BookingStatus.CONFIRMED})
FINAL_STATUSES = frozenset({BookingStatus.CANCELLED, BookingStatus.COMPLETED})


@dataclass
class Booking:
    booking_id: str
    user_id: str
    room_id: str
    check_in: date
    check_out: date
    num_guests: int
    total_cost: int
    status: BookingStatus = BookingStatus.PENDING

    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class RoomBookingWindow:
    """The slice of a booking the per-room index keeps for availability checks."""

    booking_id: str
    check_in: date
    check_out: date
    status: BookingStatus
