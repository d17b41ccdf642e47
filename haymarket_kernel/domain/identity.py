"""
Identity context consumed by every core operation.

Authentication and token handling live outside the core.  By the time a
request reaches a service, the transport has resolved the caller to an
``Actor``: who they are, which organization they act for, and their role
within it.
"""

from dataclasses import dataclass
from enum import Enum
from uuid import UUID


class Role(str, Enum):
    """Organization-scoped roles."""

    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    VIEWER = "VIEWER"


@dataclass(frozen=True)
class Actor:
    """The authenticated caller of an operation."""

    user_id: UUID
    organization_id: UUID
    role: Role

    def __post_init__(self) -> None:
        if not isinstance(self.role, Role):
            object.__setattr__(self, "role", Role(self.role))
