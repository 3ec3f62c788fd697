BOOKING_PREFIX = "BOOKING#"
USER_PREFIX = "USER#"
ROOM_PREFIX = "ROOM#"
CHECKIN_PREFIX = "CHECKIN#"
DETAILS_SK = "DETAILS"
# per room counter bumped by every write that changes the room's active bookings
VERSION_SK = "VERSION"
