import logging
import os
from boto3 import resource

from booking_engine.repository.booking_repo import BookingRepository
from booking_engine.repository.room_repo import RoomRepository
from booking_engine.services.booking_service import BookingService
from booking_engine.schemas.bookings import BookingOut
from booking_engine.utils.custom_response import send_custom_response
from booking_engine.utils.custom_exceptions import BookingError
from booking_engine.utils.identity import identity_from_event

TABLE_NAME = os.environ.get("TABLE_NAME")
AWS_REGION = os.environ.get("AWS_REGION", "ap-south-1")

logger = logging.getLogger(__name__)
logger.setLevel(os.environ.get("LOG_LEVEL", "INFO"))

dynamodb = resource("dynamodb", region_name=AWS_REGION)
table = dynamodb.Table(TABLE_NAME)

booking_repo = BookingRepository(table)
room_repo = RoomRepository(table)

booking_service = BookingService(booking_repo=booking_repo, room_repo=room_repo)


def list_bookings(event, context):
    identity = identity_from_event(event)
    if identity is None:
        return send_custom_response(401, "Unauthorized")

    status = (event.get("queryStringParameters") or {}).get("status")

    try:
        bookings = booking_service.list_bookings(identity, status)

        result = [BookingOut.from_booking(b).to_dict() for b in bookings]

        return send_custom_response(
            200,
            "Bookings retrieved successfully",
            {"count": len(result), "bookings": result},
        )

    except BookingError as err:
        return send_custom_response(err.status_code, str(err))

    except Exception:
        logger.exception("Unhandled error while listing bookings")
        return send_custom_response(500, "Internal server error")
