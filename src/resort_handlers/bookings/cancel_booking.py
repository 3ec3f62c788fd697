import logging
import os
from boto3 import resource

from booking_engine.repository.booking_repo import BookingRepository
from booking_engine.repository.room_repo import RoomRepository
from booking_engine.services.booking_service import BookingService
from booking_engine.schemas.bookings import BookingOut, CancelBookingRequest
from booking_engine.utils.custom_response import send_custom_response
from booking_engine.utils.custom_exceptions import BookingError
from booking_engine.utils.identity import identity_from_event
from pydantic import ValidationError

TABLE_NAME = os.environ.get("TABLE_NAME")
AWS_REGION = os.environ.get("AWS_REGION", "ap-south-1")

logger = logging.getLogger(__name__)
logger.setLevel(os.environ.get("LOG_LEVEL", "INFO"))

dynamodb = resource("dynamodb", region_name=AWS_REGION)
table = dynamodb.Table(TABLE_NAME)

booking_repo = BookingRepository(table)
room_repo = RoomRepository(table)

booking_service = BookingService(booking_repo=booking_repo, room_repo=room_repo)


def cancel_booking(event, context):
    identity = identity_from_event(event)
    if identity is None:
        return send_custom_response(401, "Unauthorized")

    booking_id = (event.get("pathParameters") or {}).get("id")
    if not booking_id:
        return send_custom_response(400, "Booking id is required")

    if not event.get("body"):
        return send_custom_response(400, "Request body is required")

    try:
        request_body = CancelBookingRequest.model_validate_json(event["body"])
    except ValidationError as e:
        formatted = "; ".join(f"{err['msg']}" for err in e.errors())
        return send_custom_response(400, formatted)

    if request_body.action != "cancel":
        return send_custom_response(400, "Invalid action")

    try:
        booking = booking_service.cancel_booking(identity, booking_id)

        return send_custom_response(
            200,
            "Booking cancelled successfully",
            {"booking": BookingOut.from_booking(booking).to_dict()},
        )

    except BookingError as err:
        return send_custom_response(err.status_code, str(err))

    except Exception:
        logger.exception(f"Unhandled error while cancelling booking {booking_id}")
        return send_custom_response(500, "Internal server error")
