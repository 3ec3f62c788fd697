from botocore.exceptions import ClientError
import logging
from dataclasses import replace
from typing import Optional, List
from boto3.dynamodb.conditions import Attr, Key
from booking_engine.models.bookings import Booking, BookingStatus, RoomBookingWindow
from booking_engine.utils.constants import (
    BOOKING_PREFIX,
    CHECKIN_PREFIX,
    DETAILS_SK,
    ROOM_PREFIX,
    USER_PREFIX,
    VERSION_SK,
)
from booking_engine.utils.custom_exceptions import BookingStatusConflict, RoomUnavailable
from booking_engine.utils.datetime_normaliser import from_iso_string
from datetime import date, datetime, timezone
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from types_boto3_dynamodb.service_resource import Table
    from types_boto3_dynamodb import DynamoDBClient
else:
    Table = object
    DynamoDBClient = object


logger = logging.getLogger(__name__)

# raised by TransactWriteItems when a condition fails or a concurrent
# transaction touches the same items
TRANSACTION_FAILURES = ("TransactionCanceledException", "TransactionConflictException")


class BookingRepository:
    def __init__(self, table: Table, client: DynamoDBClient = None):
        self.table = table
        self.client = client if client else table.meta.client

    @staticmethod
    def _iso(dt: datetime | str) -> str:
        if isinstance(dt, str):
            parsed = datetime.fromisoformat(dt)
        else:
            parsed = dt

        if parsed.tzinfo is None:
            raise ValueError("Datetime must be timezone-aware")

        return parsed.astimezone(timezone.utc).isoformat()

    @staticmethod
    def _room_index_sk(booking: Booking) -> str:
        return f"{CHECKIN_PREFIX}{booking.check_in.isoformat()}#{BOOKING_PREFIX}{booking.booking_id}"

    @staticmethod
    def _error_code(err: ClientError) -> str:
        return err.response.get("Error", {}).get("Code", "")

    def _room_version_update(self, room_id: str, expected: Optional[int] = None) -> dict:
        """Transaction item that bumps the room's version counter.

        With an expected version the bump only applies if nobody else changed
        the room's active bookings since that version was read. A missing
        counter item counts as version 0.
        """
        update = {
            "TableName": self.table.name,
            "Key": {"pk": f"{ROOM_PREFIX}{room_id}", "sk": VERSION_SK},
            "UpdateExpression": "ADD #version :one",
            "ExpressionAttributeNames": {"#version": "version"},
            "ExpressionAttributeValues": {":one": 1},
        }
        if expected == 0:
            update["ConditionExpression"] = "attribute_not_exists(pk)"
        elif expected is not None:
            update["ConditionExpression"] = "#version = :expected"
            update["ExpressionAttributeValues"][":expected"] = expected
        return {"Update": update}

    def get_room_version(self, room_id: str) -> int:
        try:
            response = self.table.get_item(
                Key={"pk": f"{ROOM_PREFIX}{room_id}", "sk": VERSION_SK},
                ConsistentRead=True,
            )
        except ClientError as err:
            logger.error(f"Error retrieving version of room {room_id}: {err}")
            raise

        item = response.get("Item")
        return int(item["version"]) if item else 0

    def add_booking(self, booking: Booking, room_version: int):
        """Write a booking in one transaction guarded by the room's version.

        room_version must be read before the availability check that cleared
        this booking. An active booking bumps the counter only if it still
        holds that value, so a booking committed for the same room in the
        meantime makes this transaction fail, and the lost race surfaces as
        RoomUnavailable. The guard is one item whatever the length of the stay.
        """
        check_in_iso = booking.check_in.isoformat()
        check_out_iso = booking.check_out.isoformat()
        created_at_iso = self._iso(booking.created_at)

        booking_item = {
            "pk": f"{BOOKING_PREFIX}{booking.booking_id}",
            "sk": DETAILS_SK,
            "user_id": booking.user_id,
            "room_id": booking.room_id,
            "check_in": check_in_iso,
            "check_out": check_out_iso,
            "num_guests": booking.num_guests,
            "total_cost": booking.total_cost,
            "booking_status": booking.status.value,
            "created_at": created_at_iso,
        }

        user_booking = {
            "pk": f"{USER_PREFIX}{booking.user_id}",
            "sk": f"{BOOKING_PREFIX}{booking.booking_id}",
            "room_id": booking.room_id,
            "check_in": check_in_iso,
            "check_out": check_out_iso,
            "num_guests": booking.num_guests,
            "total_cost": booking.total_cost,
            "booking_status": booking.status.value,
            "created_at": created_at_iso,
        }

        room_booking = {
            "pk": f"{ROOM_PREFIX}{booking.room_id}",
            "sk": self._room_index_sk(booking),
            "booking_id": booking.booking_id,
            "check_in": check_in_iso,
            "check_out": check_out_iso,
            "booking_status": booking.status.value,
        }

        transact_items = [
            {
                "Put": {
                    "TableName": self.table.name,
                    "Item": booking_item,
                    "ConditionExpression": "attribute_not_exists(pk)",
                }
            },
            {
                "Put": {
                    "TableName": self.table.name,
                    "Item": user_booking,
                }
            },
            {
                "Put": {
                    "TableName": self.table.name,
                    "Item": room_booking,
                }
            },
        ]
        if booking.status.is_active:
            transact_items.append(
                self._room_version_update(booking.room_id, expected=room_version)
            )

        try:
            self.client.transact_write_items(TransactItems=transact_items)
        except ClientError as err:
            if self._error_code(err) in TRANSACTION_FAILURES:
                logger.warning(
                    f"Booking {booking.booking_id} lost the claim on room {booking.room_id}: {err}"
                )
                raise RoomUnavailable() from err
            logger.error(f"Error creating booking {booking.booking_id}: {err}")
            raise

    def get_booking_by_id(self, booking_id: str) -> Optional[Booking]:
        try:
            response = self.table.get_item(
                Key={"pk": f"{BOOKING_PREFIX}{booking_id}", "sk": DETAILS_SK}
            )
        except ClientError as err:
            logger.error(f"Error retrieving booking {booking_id}: {err}")
            raise

        item = response.get("Item")
        if not item:
            return None

        return self._to_domain(item, booking_id=booking_id, user_id=item["user_id"])

    def get_user_bookings(self, user_id: str) -> List[Booking]:
        key_condition = Key("pk").eq(f"{USER_PREFIX}{user_id}") & Key("sk").begins_with(
            BOOKING_PREFIX
        )
        try:
            items = self._query_all(KeyConditionExpression=key_condition)
        except ClientError as err:
            logger.error(f"Error retrieving user {user_id} bookings: {err}")
            raise

        bookings = [
            self._to_domain(
                item,
                booking_id=item["sk"].removeprefix(BOOKING_PREFIX),
                user_id=user_id,
            )
            for item in items
        ]
        bookings.sort(key=lambda b: b.created_at, reverse=True)
        return bookings

    def get_room_bookings(
        self, room_id: str, check_in: date, check_out: date
    ) -> List[RoomBookingWindow]:
        """Return every booking of the room that reaches into [check_in, check_out).

        The key range covers all bookings starting before check_out, however
        long ago; the filter drops those that ended by check_in. Reads are
        strongly consistent so a version read just before sees every booking
        committed under it.
        """
        lower = check_in.isoformat()
        upper = check_out.isoformat()
        key_condition = Key("pk").eq(f"{ROOM_PREFIX}{room_id}") & Key("sk").between(
            CHECKIN_PREFIX,
            f"{CHECKIN_PREFIX}{upper}",
        )
        try:
            items = self._query_all(
                KeyConditionExpression=key_condition,
                FilterExpression=Attr("check_out").gt(lower),
                ConsistentRead=True,
            )
        except ClientError as err:
            logger.error(
                f"Error retrieving bookings for room {room_id} between {lower} and {upper}: {err}"
            )
            raise

        return [
            RoomBookingWindow(
                booking_id=item["booking_id"],
                check_in=date.fromisoformat(item["check_in"]),
                check_out=date.fromisoformat(item["check_out"]),
                status=BookingStatus(item["booking_status"]),
            )
            for item in items
        ]

    def list_bookings(self, status: Optional[BookingStatus] = None) -> List[Booking]:
        filter_expression = Attr("sk").eq(DETAILS_SK) & Attr("pk").begins_with(
            BOOKING_PREFIX
        )
        if status is not None:
            filter_expression = filter_expression & Attr("booking_status").eq(
                status.value
            )

        items = []
        try:
            resp = self.table.scan(FilterExpression=filter_expression)
            items.extend(resp.get("Items", []))
            while "LastEvaluatedKey" in resp:
                resp = self.table.scan(
                    FilterExpression=filter_expression,
                    ExclusiveStartKey=resp["LastEvaluatedKey"],
                )
                items.extend(resp.get("Items", []))
        except ClientError as err:
            logger.error(f"Error listing bookings: {err}")
            raise

        bookings = [
            self._to_domain(
                item,
                booking_id=item["pk"].removeprefix(BOOKING_PREFIX),
                user_id=item["user_id"],
            )
            for item in items
        ]
        bookings.sort(key=lambda b: b.created_at, reverse=True)
        return bookings

    def update_booking_status(self, booking: Booking, status: BookingStatus) -> Booking:
        """Move a booking to a new status in a single transaction.

        The write is conditioned on the status the caller read, so a concurrent
        transition makes this one fail with BookingStatusConflict. Entering or
        leaving the active set bumps the room's version. Nothing here touches
        another booking's items, so an admin re-activation never strips other
        bookings of their protection.
        """
        status_update = {
            "UpdateExpression": "SET #booking_status = :new_value",
            "ExpressionAttributeNames": {"#booking_status": "booking_status"},
            "ExpressionAttributeValues": {":new_value": status.value},
        }

        transact_items = [
            {
                "Update": {
                    "TableName": self.table.name,
                    "Key": {
                        "pk": f"{BOOKING_PREFIX}{booking.booking_id}",
                        "sk": DETAILS_SK,
                    },
                    "UpdateExpression": status_update["UpdateExpression"],
                    "ExpressionAttributeNames": status_update["ExpressionAttributeNames"],
                    "ExpressionAttributeValues": {
                        ":new_value": status.value,
                        ":expected": booking.status.value,
                    },
                    "ConditionExpression": "#booking_status = :expected",
                }
            },
            {
                "Update": {
                    "TableName": self.table.name,
                    "Key": {
                        "pk": f"{USER_PREFIX}{booking.user_id}",
                        "sk": f"{BOOKING_PREFIX}{booking.booking_id}",
                    },
                    **status_update,
                    "ConditionExpression": "attribute_exists(pk)",
                }
            },
            {
                "Update": {
                    "TableName": self.table.name,
                    "Key": {
                        "pk": f"{ROOM_PREFIX}{booking.room_id}",
                        "sk": self._room_index_sk(booking),
                    },
                    **status_update,
                    "ConditionExpression": "attribute_exists(pk)",
                }
            },
        ]

        if booking.status.is_active != status.is_active:
            # unconditional: an in-flight booking for this room that read the
            # old version fails and has to re-check availability
            transact_items.append(self._room_version_update(booking.room_id))

        try:
            self.client.transact_write_items(TransactItems=transact_items)
        except ClientError as err:
            if self._error_code(err) in TRANSACTION_FAILURES:
                logger.warning(
                    f"Status update of booking {booking.booking_id} to {status.value} conflicted: {err}"
                )
                raise BookingStatusConflict() from err
            logger.error(f"Error updating booking {booking.booking_id} status: {err}")
            raise

        return replace(booking, status=status)

    def _query_all(self, **kwargs) -> List[dict]:
        resp = self.table.query(**kwargs)
        items = list(resp.get("Items", []))
        while "LastEvaluatedKey" in resp:
            resp = self.table.query(ExclusiveStartKey=resp["LastEvaluatedKey"], **kwargs)
            items.extend(resp.get("Items", []))
        return items

    @staticmethod
    def _to_domain(item: dict, booking_id: str, user_id: str) -> Booking:
        return Booking(
            booking_id=booking_id,
            user_id=user_id,
            room_id=item["room_id"],
            check_in=date.fromisoformat(item["check_in"]),
            check_out=date.fromisoformat(item["check_out"]),
            num_guests=int(item["num_guests"]),
            total_cost=int(item["total_cost"]),
            status=BookingStatus(item["booking_status"]),
            created_at=from_iso_string(item["created_at"]),
        )
