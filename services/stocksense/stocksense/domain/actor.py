from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    ADMIN = "admin"
    STAFF = "staff"


@dataclass(frozen=True)
class Actor:
    """Authenticated identity handed to every core operation.

    The core trusts this value as given; how it was obtained is the
    transport layer's business.
    """
    id: str
    display_name: str
    role: Role = Role.STAFF

    @property
    def is_privileged(self) -> bool:
        return self.role == Role.ADMIN
