"""
Promotion engine: paid, time-bounded featured placement of catalog entries.

Lifecycle::

    pending --payment settled--> active --end_date passes--> expired

``expired`` is derived from time. A promotion counts as featured only while
``status == active and now <= end_date``; the stored ``expired`` status written
by ``expire_due`` is housekeeping and never needed for display.
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from datetime import UTC, datetime, timedelta
from typing import Any

import structlog
from sqlalchemy import ColumnElement, exists, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from tgdir.core.config import get_settings
from tgdir.domain.errors import (
    AuthorizationError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from tgdir.domain.models import PromotionPlan, User
from tgdir.domain.reference_data import PLANS_BY_ID, PROMOTION_PLANS
from tgdir.domain.services.activity import ActivityRecorder
from tgdir.infrastructure.db.models import CatalogEntry, Promotion, PromotionStatus, ensure_utc
from tgdir.infrastructure.repositories.unit_of_work import UnitOfWork
from tgdir.libs.cryptomus_client import PAID_STATUSES, PaymentGatewayProtocol

logger = structlog.get_logger()

CALLBACK_PATH = "/payments/cryptomus/callback"


def featured_clause(group_id: Any, now: datetime) -> ColumnElement[bool]:
    """SQL predicate: the group has an active promotion covering ``now``."""
    return exists().where(
        Promotion.group_id == group_id,
        Promotion.status == PromotionStatus.ACTIVE,
        Promotion.end_date >= now,
    )


def effective_status(promotion: Promotion, now: datetime) -> PromotionStatus:
    """Stored status with time-based expiry applied."""
    if promotion.status == PromotionStatus.ACTIVE and now > ensure_utc(promotion.end_date):
        return PromotionStatus.EXPIRED
    return promotion.status


class PromotionService:
    """Creates promotions, settles their payments and answers featured queries."""

    def __init__(self, session: AsyncSession, activity: ActivityRecorder | None = None) -> None:
        self.session = session
        self.activity = activity or ActivityRecorder(session)
        self.settings = get_settings()

    def list_plans(self) -> tuple[PromotionPlan, ...]:
        return PROMOTION_PLANS

    def get_plan(self, plan_id: str) -> PromotionPlan:
        plan = PLANS_BY_ID.get(plan_id)
        if plan is None:
            raise ValidationError(f"Unknown promotion plan: {plan_id}")
        return plan

    async def create_promotion(
        self,
        group_id: str,
        actor: User,
        plan_id: str,
        *,
        now: datetime | None = None,
    ) -> Promotion:
        """Create a ``pending`` promotion without starting a payment."""
        async with UnitOfWork(self.session, operation="create_promotion"):
            promotion = await self._stage(group_id, actor, plan_id, now=now)

        await logger.ainfo(
            "promotion_created",
            promotion_id=promotion.id,
            group_id=group_id,
            plan_id=plan_id,
            user_id=actor.user_id,
        )
        return promotion

    async def checkout(
        self,
        group_id: str,
        actor: User,
        plan_id: str,
        gateway: PaymentGatewayProtocol,
        *,
        return_url: str | None = None,
        now: datetime | None = None,
    ) -> tuple[Promotion, str]:
        """Create a promotion and its payment intent in one transaction.

        If the gateway call fails the promotion is rolled back and the
        ``GatewayError`` propagates; nothing is persisted.
        """
        async with UnitOfWork(self.session, operation="checkout_promotion") as uow:
            promotion = await self._stage(group_id, actor, plan_id, now=now)
            await uow.flush()

            intent = await gateway.create_payment_intent(
                amount=promotion.amount,
                currency=promotion.currency,
                order_id=promotion.order_id,
                return_url=return_url,
                callback_url=f"{self.settings.public_base_url.rstrip('/')}{CALLBACK_PATH}",
                ttl_seconds=self.settings.payment_ttl_seconds,
            )
            promotion.payment_id = intent.payment_id
            promotion.payment_url = intent.payment_url

        await logger.ainfo(
            "promotion_checkout_started",
            promotion_id=promotion.id,
            group_id=group_id,
            plan_id=plan_id,
            payment_id=intent.payment_id,
        )
        await self.activity.record(
            actor.user_id,
            "create",
            "promotion",
            {"group_id": group_id, "plan_id": plan_id, "amount": promotion.amount},
            entity_id=promotion.id,
        )
        return promotion, intent.payment_url

    async def activate_on_payment_success(
        self,
        promotion_id: str,
        payment_id: str | None = None,
        *,
        now: datetime | None = None,
    ) -> Promotion:
        """Move a promotion from ``pending`` to ``active``; repeat calls are no-ops."""
        now = now or datetime.now(UTC)
        promotion = await self._load(promotion_id)

        if promotion.status == PromotionStatus.ACTIVE:
            await logger.ainfo("promotion_already_active", promotion_id=promotion_id)
            return promotion
        if promotion.status == PromotionStatus.EXPIRED or now > ensure_utc(promotion.end_date):
            raise InvalidStateError(f"Promotion {promotion_id} has expired")

        values: dict[str, Any] = {"status": PromotionStatus.ACTIVE, "activated_at": now}
        if payment_id:
            values["payment_id"] = payment_id

        async with UnitOfWork(self.session, operation="activate_promotion"):
            result = await self.session.execute(
                update(Promotion)
                .where(Promotion.id == promotion_id, Promotion.status == PromotionStatus.PENDING)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            activated = result.rowcount > 0

        await self.session.refresh(promotion)
        if not activated:
            # Lost a race against another settlement notification
            if promotion.status == PromotionStatus.ACTIVE:
                return promotion
            raise InvalidStateError(
                f"Promotion {promotion_id} is {promotion.status.value}, expected pending"
            )

        await logger.ainfo(
            "promotion_activated",
            promotion_id=promotion_id,
            group_id=promotion.group_id,
            end_date=ensure_utc(promotion.end_date).isoformat(),
        )
        await self.activity.record(
            promotion.user_id,
            "update",
            "promotion",
            {"group_id": promotion.group_id, "status": PromotionStatus.ACTIVE.value},
            entity_id=promotion_id,
        )
        return promotion

    async def handle_payment_callback(
        self, payload: Mapping[str, Any], gateway: PaymentGatewayProtocol
    ) -> Promotion:
        """Apply a signed settlement webhook from the payment gateway."""
        data = dict(payload)
        if not gateway.verify_signature(data):
            await logger.awarning("payment_callback_bad_signature", order_id=data.get("order_id"))
            raise AuthorizationError("Invalid payment signature")

        order_id = data.get("order_id")
        status = str(data.get("status") or data.get("payment_status") or "")
        if not order_id:
            raise ValidationError("Callback payload is missing order_id")

        result = await self.session.execute(select(Promotion).where(Promotion.order_id == order_id))
        promotion = result.scalar_one_or_none()
        if promotion is None:
            raise NotFoundError(f"No promotion for order {order_id}")

        if status in PAID_STATUSES:
            return await self.activate_on_payment_success(promotion.id, data.get("uuid"))

        await logger.ainfo(
            "payment_callback_not_paid",
            promotion_id=promotion.id,
            order_id=order_id,
            status=status,
        )
        return promotion

    async def sync_payment_status(
        self, promotion_id: str, gateway: PaymentGatewayProtocol
    ) -> Promotion:
        """Poll the gateway for a pending promotion and activate it once paid."""
        promotion = await self._load(promotion_id)
        if promotion.status != PromotionStatus.PENDING:
            return promotion
        if not promotion.payment_id:
            raise InvalidStateError(f"Promotion {promotion_id} has no payment to check")

        payment = await gateway.get_payment_status(promotion.payment_id)
        await logger.ainfo(
            "payment_status_polled",
            promotion_id=promotion_id,
            payment_id=promotion.payment_id,
            status=payment.status,
        )
        if payment.is_paid:
            return await self.activate_on_payment_success(promotion_id, promotion.payment_id)
        return promotion

    async def list_awaiting_payment(self, *, limit: int = 100) -> list[Promotion]:
        """Pending promotions that already have a gateway payment to poll."""
        stmt = (
            select(Promotion)
            .where(Promotion.status == PromotionStatus.PENDING, Promotion.payment_id.is_not(None))
            .order_by(Promotion.created_at.asc(), Promotion.id.asc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def is_featured(self, group_id: str, *, now: datetime | None = None) -> bool:
        now = now or datetime.now(UTC)
        result = await self.session.execute(select(featured_clause(group_id, now)))
        return bool(result.scalar())

    async def featured_group_ids(self, *, now: datetime | None = None) -> set[str]:
        now = now or datetime.now(UTC)
        result = await self.session.execute(
            select(Promotion.group_id)
            .where(Promotion.status == PromotionStatus.ACTIVE, Promotion.end_date >= now)
            .distinct()
        )
        return set(result.scalars().all())

    async def list_for_user(self, actor: User) -> list[Promotion]:
        stmt = (
            select(Promotion)
            .options(selectinload(Promotion.group))
            .where(Promotion.user_id == actor.user_id)
            .order_by(Promotion.created_at.desc(), Promotion.id.desc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def stats(self, actor: User, *, now: datetime | None = None) -> dict[str, Any]:
        now = now or datetime.now(UTC)
        owned = Promotion.user_id == actor.user_id

        total = await self.session.scalar(select(func.count(Promotion.id)).where(owned))
        active = await self.session.scalar(
            select(func.count(Promotion.id)).where(
                owned,
                Promotion.status == PromotionStatus.ACTIVE,
                Promotion.end_date >= now,
            )
        )
        spent = await self.session.scalar(
            select(func.coalesce(func.sum(Promotion.amount), 0.0)).where(
                owned,
                Promotion.status.in_((PromotionStatus.ACTIVE, PromotionStatus.EXPIRED)),
            )
        )
        return {
            "total_promotions": int(total or 0),
            "active_promotions": int(active or 0),
            "total_spent": round(float(spent or 0.0), 2),
        }

    async def expire_due(self, *, now: datetime | None = None) -> int:
        """Write ``expired`` onto active promotions whose end date has passed."""
        now = now or datetime.now(UTC)
        async with UnitOfWork(self.session, operation="expire_promotions"):
            result = await self.session.execute(
                update(Promotion)
                .where(Promotion.status == PromotionStatus.ACTIVE, Promotion.end_date < now)
                .values(status=PromotionStatus.EXPIRED)
                .execution_options(synchronize_session=False)
            )
        expired = result.rowcount or 0
        await logger.ainfo("promotions_expired", count=expired)
        return expired

    async def _stage(
        self,
        group_id: str,
        actor: User,
        plan_id: str,
        *,
        now: datetime | None,
    ) -> Promotion:
        entry = await self.session.get(CatalogEntry, group_id, populate_existing=True)
        if entry is None:
            raise NotFoundError(f"Group {group_id} not found")
        if entry.owner_id != actor.user_id and not actor.is_admin:
            raise AuthorizationError("Only the group owner or an admin can promote this group")
        if not entry.approved:
            raise ValidationError("Only approved groups can be promoted")
        plan = self.get_plan(plan_id)

        start = now or datetime.now(UTC)
        promotion_id = str(uuid.uuid4())
        promotion = Promotion(
            id=promotion_id,
            group_id=group_id,
            user_id=actor.user_id,
            plan_id=plan.id,
            order_id=f"promotion_{promotion_id}",
            start_date=start,
            end_date=start + timedelta(days=plan.duration_days),
            status=PromotionStatus.PENDING,
            amount=plan.price,
            currency=self.settings.payment_currency,
        )
        self.session.add(promotion)
        return promotion

    async def _load(self, promotion_id: str) -> Promotion:
        promotion = await self.session.get(Promotion, promotion_id, populate_existing=True)
        if promotion is None:
            raise NotFoundError(f"Promotion {promotion_id} not found")
        return promotion
