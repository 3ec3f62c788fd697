from datetime import date, datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator

from booking_engine.models.bookings import Booking
from booking_engine.utils.datetime_normaliser import to_calendar_date


class BookingRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    room_id: str = Field(alias="roomId", min_length=1)
    check_in: date = Field(alias="checkIn")
    check_out: date = Field(alias="checkOut")
    num_guests: int = Field(alias="numGuests")

    # ordering and guest count are checked by BookingService so that each
    # failure is reported with its own error kind
    @field_validator("check_in", "check_out", mode="before")
    @classmethod
    def normalise_date(cls, v):
        if isinstance(v, (str, datetime)):
            return to_calendar_date(v)
        return v


class CancelBookingRequest(BaseModel):
    action: str


class BookingStatusRequest(BaseModel):
    status: str


class BookingOut(BaseModel):
    booking_id: str
    user_id: str
    room_id: str
    check_in: date
    check_out: date
    num_guests: int
    total_cost: int
    status: str
    created_at: datetime

    @classmethod
    def from_booking(cls, booking: Booking) -> "BookingOut":
        return cls(
            booking_id=booking.booking_id,
            user_id=booking.user_id,
            room_id=booking.room_id,
            check_in=booking.check_in,
            check_out=booking.check_out,
            num_guests=booking.num_guests,
            total_cost=booking.total_cost,
            status=booking.status.value,
            created_at=booking.created_at,
        )

    def to_dict(self) -> dict:
        return self.model_dump(mode="json")
