from enum import Enum
from dataclasses import dataclass


class UserRole(str, Enum):
    ADMIN = "ADMIN"
    USER = "USER"


@dataclass(frozen=True)
class Identity:
    user_id: str
    role: UserRole = UserRole.USER

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN
