from __future__ import annotations

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession
from tgdir.api.deps import issue_smoke_token
from tgdir.core.auth import Role
from tgdir.domain.models import GroupMetadata, User
from tgdir.domain.services.moderation import ModerationService
from tgdir.domain.services.submissions import SubmissionService
from tgdir.infrastructure.db.models import CatalogEntry
from tgdir.libs.cryptomus_client import PaymentIntent, PaymentStatus
from tgdir.libs.telegram_client import GroupNotFoundError, normalize_handle


def auth_headers(user_id: str = "user-1", role: Role = Role.USER) -> dict[str, str]:
    token = issue_smoke_token(user_id, role=role, username=user_id)
    return {"Authorization": f"Bearer {token}"}


def admin_headers(user_id: str = "admin-user") -> dict[str, str]:
    return auth_headers(user_id, role=Role.ADMIN)


def make_user(user_id: str = "user-1", *, admin: bool = False) -> User:
    return User(user_id=user_id, username=user_id, roles=["admin" if admin else "user"])


def make_metadata(
    name: str = "DevTR",
    username: str = "devtr",
    *,
    description: str = "",
    members: int = 100,
    tags: list[str] | None = None,
) -> GroupMetadata:
    return GroupMetadata(
        name=name,
        description=description,
        username=username,
        link=f"https://t.me/{username}",
        members=members,
        tags=list(tags or []),
    )


class FakeMetadataFetcher:
    """In-memory stand-in for the Telegram client."""

    def __init__(self) -> None:
        self.groups: dict[str, GroupMetadata] = {}
        self.calls: list[str] = []

    def add(self, metadata: GroupMetadata) -> None:
        self.groups[metadata.username.lower()] = metadata

    async def fetch_group_metadata(self, handle: str) -> GroupMetadata:
        username = normalize_handle(handle)
        self.calls.append(username)
        metadata = self.groups.get(username.lower())
        if metadata is None:
            raise GroupNotFoundError(f'Group "@{username}" was not found')
        return metadata


class FakePaymentGateway:
    """Records payment intents; signatures are valid when ``sign == "valid"``."""

    def __init__(self) -> None:
        self.intents: list[dict[str, Any]] = []
        self.statuses: dict[str, str] = {}
        self.fail_with: Exception | None = None

    async def create_payment_intent(
        self,
        *,
        amount: float,
        currency: str,
        order_id: str,
        return_url: str | None,
        callback_url: str | None,
        ttl_seconds: int,
    ) -> PaymentIntent:
        if self.fail_with is not None:
            raise self.fail_with
        payment_id = f"pay-{len(self.intents) + 1}"
        self.intents.append(
            {
                "amount": amount,
                "currency": currency,
                "order_id": order_id,
                "return_url": return_url,
                "callback_url": callback_url,
                "ttl_seconds": ttl_seconds,
                "payment_id": payment_id,
            }
        )
        return PaymentIntent(payment_url=f"https://pay.example/{payment_id}", payment_id=payment_id)

    async def get_payment_status(self, payment_id: str) -> PaymentStatus:
        return PaymentStatus(
            payment_id=payment_id,
            order_id="",
            status=self.statuses.get(payment_id, "check"),
        )

    def verify_signature(self, payload: dict[str, Any]) -> bool:
        return payload.get("sign") == "valid"


async def approved_entry(
    session: AsyncSession,
    owner: User,
    metadata: GroupMetadata | None = None,
    *,
    category: str = "Technology",
) -> CatalogEntry:
    """Submit a group as ``owner`` and approve it as an admin."""
    submission = await SubmissionService(session).submit(
        owner, metadata or make_metadata(), category=category
    )
    return await ModerationService(session).approve(
        submission.id, make_user("admin-user", admin=True)
    )
