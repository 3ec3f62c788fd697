from botocore.exceptions import ClientError
import logging
from typing import Optional
from booking_engine.models.rooms import Room
from booking_engine.utils.constants import ROOM_PREFIX, DETAILS_SK

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from types_boto3_dynamodb.service_resource import Table
    from types_boto3_dynamodb import DynamoDBClient
else:
    Table = object
    DynamoDBClient = object


logger = logging.getLogger(__name__)


class RoomRepository:
    """Read-only access to room records; rooms are managed by the admin CMS."""

    def __init__(self, table: Table, client: DynamoDBClient = None):
        self.table = table
        self.client = client if client else table.meta.client

    def get_room_by_id(self, room_id: str) -> Optional[Room]:
        try:
            response = self.table.get_item(
                Key={"pk": f"{ROOM_PREFIX}{room_id}", "sk": DETAILS_SK}
            )
        except ClientError as err:
            logger.error(f"Error retrieving room by id {room_id}: {err}")
            raise

        item = response.get("Item")
        if not item:
            return None
        return Room(
            room_id=room_id,
            name=item.get("name", room_id),
            capacity=int(item["capacity"]),
            nightly_rate=int(item["nightly_rate"]),
        )
