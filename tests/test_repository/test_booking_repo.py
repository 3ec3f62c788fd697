import unittest
from unittest.mock import MagicMock
from datetime import date, datetime, timezone
from decimal import Decimal
from botocore.exceptions import ClientError

from booking_engine.repository.booking_repo import BookingRepository
from booking_engine.models.bookings import Booking, BookingStatus
from booking_engine.utils.custom_exceptions import BookingStatusConflict, RoomUnavailable


def client_error(code, operation="TransactWriteItems"):
    return ClientError(
        error_response={"Error": {"Code": code, "Message": "failed"}},
        operation_name=operation,
    )


class TestBookingRepository(unittest.TestCase):

    def setUp(self):
        self.table = MagicMock()
        self.table.name = "test-table"
        self.client = MagicMock()

        self.table.meta.client = self.client
        self.repo = BookingRepository(self.table, self.client)

        self.created_at = datetime(2024, 5, 20, 9, 30, tzinfo=timezone.utc)
        self.booking = Booking(
            booking_id="b1",
            user_id="u1",
            room_id="r1",
            check_in=date(2024, 6, 1),
            check_out=date(2024, 6, 4),
            num_guests=2,
            total_cost=30000,
            status=BookingStatus.PENDING,
            created_at=self.created_at,
        )

    def _details_item(self, **overrides):
        item = {
            "pk": "BOOKING#b1",
            "sk": "DETAILS",
            "user_id": "u1",
            "room_id": "r1",
            "check_in": "2024-06-01",
            "check_out": "2024-06-04",
            "num_guests": Decimal("2"),
            "total_cost": Decimal("30000"),
            "booking_status": "PENDING",
            "created_at": self.created_at.isoformat(),
        }
        item.update(overrides)
        return item

    def test_iso_naive_fails(self):
        with self.assertRaises(ValueError):
            self.repo._iso(datetime.now())

    def test_get_room_version(self):
        self.table.get_item.return_value = {
            "Item": {"pk": "ROOM#r1", "sk": "VERSION", "version": Decimal("4")}
        }

        self.assertEqual(self.repo.get_room_version("r1"), 4)
        self.table.get_item.assert_called_once_with(
            Key={"pk": "ROOM#r1", "sk": "VERSION"}, ConsistentRead=True
        )

    def test_get_room_version_never_written(self):
        self.table.get_item.return_value = {}

        self.assertEqual(self.repo.get_room_version("r1"), 0)

    def test_add_booking_success(self):
        self.repo.add_booking(self.booking, 4)

        self.client.transact_write_items.assert_called_once()
        _, kwargs = self.client.transact_write_items.call_args
        items = kwargs["TransactItems"]

        # details, user copy, room index and the room version guard
        self.assertEqual(len(items), 4)

        booking_put = items[0]["Put"]
        self.assertEqual(booking_put["Item"]["pk"], "BOOKING#b1")
        self.assertEqual(booking_put["Item"]["sk"], "DETAILS")
        self.assertEqual(booking_put["Item"]["total_cost"], 30000)
        self.assertEqual(booking_put["Item"]["num_guests"], 2)
        self.assertEqual(booking_put["Item"]["booking_status"], "PENDING")
        self.assertEqual(booking_put["ConditionExpression"], "attribute_not_exists(pk)")

        user_put = items[1]["Put"]["Item"]
        self.assertEqual(user_put["pk"], "USER#u1")
        self.assertEqual(user_put["sk"], "BOOKING#b1")

        room_put = items[2]["Put"]["Item"]
        self.assertEqual(room_put["pk"], "ROOM#r1")
        self.assertEqual(room_put["sk"], "CHECKIN#2024-06-01#BOOKING#b1")
        self.assertEqual(room_put["check_out"], "2024-06-04")

        guard = items[3]["Update"]
        self.assertEqual(guard["Key"], {"pk": "ROOM#r1", "sk": "VERSION"})
        self.assertEqual(guard["UpdateExpression"], "ADD #version :one")
        self.assertEqual(guard["ConditionExpression"], "#version = :expected")
        self.assertEqual(guard["ExpressionAttributeValues"][":expected"], 4)

    def test_add_booking_first_for_room(self):
        self.repo.add_booking(self.booking, 0)

        _, kwargs = self.client.transact_write_items.call_args
        guard = kwargs["TransactItems"][3]["Update"]
        self.assertEqual(guard["ConditionExpression"], "attribute_not_exists(pk)")
        self.assertNotIn(":expected", guard["ExpressionAttributeValues"])

    def test_add_booking_long_stay_is_one_transaction(self):
        long_stay = Booking(
            **{**self.booking.__dict__, "check_out": date(2025, 6, 1), "total_cost": 3650000}
        )

        self.repo.add_booking(long_stay, 2)

        self.client.transact_write_items.assert_called_once()
        _, kwargs = self.client.transact_write_items.call_args
        self.assertEqual(len(kwargs["TransactItems"]), 4)
        self.assertEqual(kwargs["TransactItems"][0]["Put"]["Item"]["check_out"], "2025-06-01")

    def test_add_booking_cancelled_transaction_is_room_unavailable(self):
        self.client.transact_write_items.side_effect = client_error(
            "TransactionCanceledException"
        )

        with self.assertRaises(RoomUnavailable):
            self.repo.add_booking(self.booking, 4)

    def test_add_booking_conflict_is_room_unavailable(self):
        self.client.transact_write_items.side_effect = client_error(
            "TransactionConflictException"
        )

        with self.assertRaises(RoomUnavailable):
            self.repo.add_booking(self.booking, 4)

    def test_add_booking_other_client_error(self):
        self.client.transact_write_items.side_effect = client_error(
            "ProvisionedThroughputExceededException"
        )

        with self.assertRaises(ClientError):
            self.repo.add_booking(self.booking, 4)

    def test_get_booking_by_id_success(self):
        self.table.get_item.return_value = {"Item": self._details_item()}

        booking = self.repo.get_booking_by_id("b1")

        self.table.get_item.assert_called_once_with(
            Key={"pk": "BOOKING#b1", "sk": "DETAILS"}
        )
        self.assertEqual(booking, self.booking)
        self.assertIsInstance(booking.total_cost, int)

    def test_get_booking_by_id_not_found(self):
        self.table.get_item.return_value = {}

        self.assertIsNone(self.repo.get_booking_by_id("missing"))

    def test_get_booking_by_id_client_error(self):
        self.table.get_item.side_effect = client_error("InternalServerError", "GetItem")

        with self.assertRaises(ClientError):
            self.repo.get_booking_by_id("b1")

    def test_get_user_bookings_newest_first(self):
        older = self._details_item(created_at="2024-05-01T00:00:00+00:00")
        older.update({"pk": "USER#u1", "sk": "BOOKING#b0"})
        newer = self._details_item()
        newer.update({"pk": "USER#u1", "sk": "BOOKING#b1"})
        self.table.query.return_value = {"Items": [older, newer]}

        bookings = self.repo.get_user_bookings("u1")

        self.assertEqual([b.booking_id for b in bookings], ["b1", "b0"])
        self.assertTrue(all(b.user_id == "u1" for b in bookings))

    def test_get_user_bookings_paginates(self):
        first = self._details_item()
        first.update({"pk": "USER#u1", "sk": "BOOKING#b1"})
        second = self._details_item(created_at="2024-05-01T00:00:00+00:00")
        second.update({"pk": "USER#u1", "sk": "BOOKING#b2"})
        self.table.query.side_effect = [
            {"Items": [first], "LastEvaluatedKey": {"pk": "USER#u1", "sk": "BOOKING#b1"}},
            {"Items": [second]},
        ]

        bookings = self.repo.get_user_bookings("u1")

        self.assertEqual(len(bookings), 2)
        self.assertEqual(self.table.query.call_count, 2)

    def test_get_room_bookings(self):
        self.table.query.return_value = {
            "Items": [
                {
                    "pk": "ROOM#r1",
                    "sk": "CHECKIN#2024-06-01#BOOKING#b1",
                    "booking_id": "b1",
                    "check_in": "2024-06-01",
                    "check_out": "2024-06-04",
                    "booking_status": "CONFIRMED",
                }
            ]
        }

        windows = self.repo.get_room_bookings("r1", date(2024, 6, 3), date(2024, 6, 5))

        self.assertEqual(len(windows), 1)
        self.assertEqual(windows[0].booking_id, "b1")
        self.assertEqual(windows[0].check_out, date(2024, 6, 4))
        self.assertEqual(windows[0].status, BookingStatus.CONFIRMED)

    def test_get_room_bookings_reaches_back_to_any_start(self):
        self.table.query.return_value = {"Items": []}

        self.repo.get_room_bookings("r1", date(2024, 6, 3), date(2024, 6, 5))

        _, kwargs = self.table.query.call_args
        key_values = kwargs["KeyConditionExpression"].get_expression()["values"]
        sk_range = key_values[1].get_expression()["values"]
        self.assertEqual(sk_range[1:], ("CHECKIN#", "CHECKIN#2024-06-05"))
        filter_expr = kwargs["FilterExpression"].get_expression()
        self.assertEqual(filter_expr["operator"], ">")
        self.assertEqual(filter_expr["values"][1], "2024-06-03")
        self.assertTrue(kwargs["ConsistentRead"])

    def test_get_room_bookings_client_error(self):
        self.table.query.side_effect = client_error("InternalServerError", "Query")

        with self.assertRaises(ClientError):
            self.repo.get_room_bookings("r1", date(2024, 6, 3), date(2024, 6, 5))

    def test_list_bookings_with_status(self):
        self.table.scan.return_value = {"Items": [self._details_item()]}

        bookings = self.repo.list_bookings(BookingStatus.PENDING)

        self.table.scan.assert_called_once()
        self.assertEqual([b.booking_id for b in bookings], ["b1"])

    def test_update_status_cancel_bumps_room_version(self):
        updated = self.repo.update_booking_status(self.booking, BookingStatus.CANCELLED)

        self.assertEqual(updated.status, BookingStatus.CANCELLED)
        self.assertEqual(self.booking.status, BookingStatus.PENDING)
        _, kwargs = self.client.transact_write_items.call_args
        items = kwargs["TransactItems"]
        self.assertEqual(len(items), 4)

        details = items[0]["Update"]
        self.assertEqual(details["Key"], {"pk": "BOOKING#b1", "sk": "DETAILS"})
        self.assertEqual(details["ConditionExpression"], "#booking_status = :expected")
        self.assertEqual(details["ExpressionAttributeValues"][":expected"], "PENDING")
        self.assertEqual(details["ExpressionAttributeValues"][":new_value"], "CANCELLED")

        guard = items[3]["Update"]
        self.assertEqual(guard["Key"], {"pk": "ROOM#r1", "sk": "VERSION"})
        self.assertNotIn("ConditionExpression", guard)

    def test_update_status_between_active_states_leaves_room_version(self):
        updated = self.repo.update_booking_status(self.booking, BookingStatus.CONFIRMED)

        self.assertEqual(updated.status, BookingStatus.CONFIRMED)
        self.table.query.assert_not_called()
        _, kwargs = self.client.transact_write_items.call_args
        self.assertEqual(len(kwargs["TransactItems"]), 3)

    def test_update_status_reactivation_touches_only_own_items(self):
        cancelled = Booking(**{**self.booking.__dict__, "status": BookingStatus.CANCELLED})

        self.repo.update_booking_status(cancelled, BookingStatus.CONFIRMED)

        self.table.query.assert_not_called()
        _, kwargs = self.client.transact_write_items.call_args
        items = kwargs["TransactItems"]
        self.assertTrue(all("Update" in i for i in items))
        keys = [i["Update"]["Key"] for i in items]
        self.assertEqual(
            keys,
            [
                {"pk": "BOOKING#b1", "sk": "DETAILS"},
                {"pk": "USER#u1", "sk": "BOOKING#b1"},
                {"pk": "ROOM#r1", "sk": "CHECKIN#2024-06-01#BOOKING#b1"},
                {"pk": "ROOM#r1", "sk": "VERSION"},
            ],
        )

    def test_update_status_conflict(self):
        self.client.transact_write_items.side_effect = client_error(
            "TransactionCanceledException"
        )

        with self.assertRaises(BookingStatusConflict):
            self.repo.update_booking_status(self.booking, BookingStatus.CONFIRMED)

    def test_update_status_client_error(self):
        self.client.transact_write_items.side_effect = client_error("InternalServerError")

        with self.assertRaises(ClientError):
            self.repo.update_booking_status(self.booking, BookingStatus.CONFIRMED)


if __name__ == "__main__":
    unittest.main()
