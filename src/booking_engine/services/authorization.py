import logging
from typing import Optional

from booking_engine.models.bookings import Booking
from booking_engine.models.users import Identity
from booking_engine.utils.custom_exceptions import Forbidden, Unauthorized

logger = logging.getLogger(__name__)


def require_identity(identity: Optional[Identity]) -> Identity:
    if identity is None:
        raise Unauthorized()
    return identity


def require_admin(identity: Optional[Identity]) -> Identity:
    identity = require_identity(identity)
    if not identity.is_admin:
        logger.warning(f"User {identity.user_id} attempted an admin-only operation")
        raise Forbidden()
    return identity


def require_owner(identity: Optional[Identity], booking: Booking) -> Identity:
    identity = require_identity(identity)
    if booking.user_id != identity.user_id:
        logger.warning(
            f"User {identity.user_id} attempted to access booking {booking.booking_id}"
        )
        raise Forbidden("You can only manage your own bookings")
    return identity


def require_owner_or_admin(identity: Optional[Identity], booking: Booking) -> Identity:
    identity = require_identity(identity)
    if identity.is_admin:
        return identity
    return require_owner(identity, booking)
