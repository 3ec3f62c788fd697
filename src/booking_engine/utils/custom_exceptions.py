class BookingError(Exception):
    """Base class for errors reported back to the caller of a booking operation."""

    status_code = 400
    default_message = "Booking request rejected"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def __str__(self):
        return self.message


class InvalidDateRange(BookingError):
    default_message = "checkOut must be after checkIn"


class CapacityExceeded(BookingError):
    default_message = "Guest count exceeds room capacity"


class RoomUnavailable(BookingError):
    status_code = 409
    default_message = "Room is not available for these dates"


class Unauthorized(BookingError):
    status_code = 401
    default_message = "Unauthorized"


class Forbidden(BookingError):
    status_code = 403
    default_message = "Forbidden"


class AlreadyFinal(BookingError):
    default_message = "This booking cannot be cancelled"


class InvalidStatus(BookingError):
    default_message = "Invalid status"


class BookingStatusConflict(BookingError):
    status_code = 409
    default_message = "Booking status was changed by another request"


class NotFoundException(BookingError):
    status_code = 404

    def __init__(self, resource: str, identifier: str):
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} '{identifier}' not found")


class RoomNotFound(NotFoundException):
    def __init__(self, room_id: str):
        super().__init__("room", room_id)


class BookingNotFound(NotFoundException):
    def __init__(self, booking_id: str):
        super().__init__("booking", booking_id)
