from dataclasses import dataclass


@dataclass(frozen=True)
class Room:
    room_id: str
    name: str
    capacity: int
    # minor currency units (cents)
    nightly_rate: int
