import logging
from datetime import date
from typing import List, Optional, Union
from uuid import uuid4

from booking_engine.models.bookings import Booking, BookingStatus
from booking_engine.models.users import Identity
from booking_engine.repository.booking_repo import BookingRepository
from booking_engine.repository.room_repo import RoomRepository
from booking_engine.schemas.bookings import BookingRequest
from booking_engine.services import authorization
from booking_engine.services.availability_service import AvailabilityService
from booking_engine.services.booking_state import assert_owner_transition, parse_status
from booking_engine.services.pricing import compute_total
from booking_engine.utils.custom_exceptions import (
    BookingNotFound,
    CapacityExceeded,
    InvalidDateRange,
    RoomNotFound,
    RoomUnavailable,
)

logger = logging.getLogger(__name__)


class BookingService:
    """Creates bookings and moves them through their lifecycle.

    Every public method takes the caller's identity explicitly; None stands
    for an anonymous caller and is rejected before any repository access.
    """

    def __init__(
        self,
        booking_repo: BookingRepository,
        room_repo: RoomRepository,
        availability_service: Optional[AvailabilityService] = None,
    ):
        self.booking_repo = booking_repo
        self.room_repo = room_repo
        self.availability_service = availability_service or AvailabilityService(
            booking_repo
        )

    def create_booking(self, identity: Optional[Identity], req: BookingRequest) -> Booking:
        identity = authorization.require_identity(identity)

        self._validate_dates(req.check_in, req.check_out)

        room = self.room_repo.get_room_by_id(req.room_id)
        if room is None:
            raise RoomNotFound(req.room_id)

        if not 1 <= req.num_guests <= room.capacity:
            raise CapacityExceeded(f"Room capacity is {room.capacity}")

        # read before the availability check; add_booking only commits if no
        # other write changed the room's active bookings since
        room_version = self.booking_repo.get_room_version(room.room_id)
        if not self.availability_service.is_available(
            room.room_id, req.check_in, req.check_out
        ):
            logger.warning(
                f"Room {room.room_id} unavailable from {req.check_in} to {req.check_out}"
            )
            raise RoomUnavailable()

        booking = Booking(
            booking_id=str(uuid4()),
            user_id=identity.user_id,
            room_id=room.room_id,
            check_in=req.check_in,
            check_out=req.check_out,
            num_guests=req.num_guests,
            total_cost=compute_total(room.nightly_rate, req.check_in, req.check_out),
            status=BookingStatus.PENDING,
        )
        self.booking_repo.add_booking(booking, room_version)
        logger.info(
            f"Booking {booking.booking_id} created for user {identity.user_id} "
            f"in room {room.room_id}, total {booking.total_cost}"
        )
        return booking

    def check_availability(
        self, room_id: str, check_in: date, check_out: date
    ) -> bool:
        """Dry run of the availability step of create_booking."""
        self._validate_dates(check_in, check_out)
        return self.availability_service.is_available(room_id, check_in, check_out)

    def cancel_booking(self, identity: Optional[Identity], booking_id: str) -> Booking:
        identity = authorization.require_identity(identity)
        booking = self._get_booking(booking_id)
        authorization.require_owner(identity, booking)

        assert_owner_transition(booking.status, BookingStatus.CANCELLED)

        updated = self.booking_repo.update_booking_status(booking, BookingStatus.CANCELLED)
        logger.info(f"Booking {booking_id} cancelled by owner {identity.user_id}")
        return updated

    def set_booking_status(
        self,
        identity: Optional[Identity],
        booking_id: str,
        status: Union[str, BookingStatus],
    ) -> Booking:
        identity = authorization.require_admin(identity)
        target = parse_status(status)
        booking = self._get_booking(booking_id)

        if booking.status.is_final and booking.status != target:
            logger.warning(
                f"Admin {identity.user_id} overriding final booking {booking_id}: "
                f"{booking.status.value} -> {target.value}"
            )

        updated = self.booking_repo.update_booking_status(booking, target)
        logger.info(
            f"Booking {booking_id} set to {target.value} by admin {identity.user_id}"
        )
        return updated

    def get_booking(self, identity: Optional[Identity], booking_id: str) -> Booking:
        identity = authorization.require_identity(identity)
        booking = self._get_booking(booking_id)
        authorization.require_owner_or_admin(identity, booking)
        return booking

    def get_user_bookings(self, identity: Optional[Identity]) -> List[Booking]:
        identity = authorization.require_identity(identity)
        return self.booking_repo.get_user_bookings(identity.user_id)

    def list_bookings(
        self, identity: Optional[Identity], status: Optional[str] = None
    ) -> List[Booking]:
        authorization.require_admin(identity)
        status_filter = parse_status(status) if status else None
        return self.booking_repo.list_bookings(status_filter)

    def _get_booking(self, booking_id: str) -> Booking:
        booking = self.booking_repo.get_booking_by_id(booking_id)
        if booking is None:
            raise BookingNotFound(booking_id)
        return booking

    @staticmethod
    def _validate_dates(check_in: date, check_out: date):
        if not check_out > check_in:
            raise InvalidDateRange()
