"""The party performing a booking transition."""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

SYSTEM_ACTOR_LABEL = "system"


@dataclass(frozen=True)
class Actor:
    """Either a human user or the system process.

    Automated transitions (auto-approval, scheduled expiry) must pass
    ``Actor.system()`` explicitly.
    """

    user_id: UUID | None = None

    @classmethod
    def user(cls, user_id: UUID) -> Actor:
        return cls(user_id=user_id)

    @classmethod
    def system(cls) -> Actor:
        return cls(user_id=None)

    @property
    def is_system(self) -> bool:
        return self.user_id is None

    def __str__(self) -> str:
        return SYSTEM_ACTOR_LABEL if self.user_id is None else str(self.user_id)
