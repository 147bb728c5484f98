from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime


@dataclass(slots=True)
class User:
    """Represents an authenticated actor within the system."""

    user_id: str
    username: str = ""
    email: str = ""
    roles: list[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def is_admin(self) -> bool:
        return "admin" in self.roles


@dataclass(slots=True)
class GroupMetadata:
    """Snapshot of a Telegram group's public metadata."""

    name: str
    description: str
    username: str
    link: str
    members: int = 0
    image: str | None = None
    verified: bool = False
    chat_type: str = "group"
    tags: list[str] = field(default_factory=list)


@dataclass(slots=True, frozen=True)
class PromotionPlan:
    """A purchasable featured-placement plan."""

    id: str
    name: str
    duration_days: int
    price: float
    features: tuple[str, ...] = ()
    popular: bool = False
