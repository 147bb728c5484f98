"""
Background jobs run by the RQ worker.

- ``expire_promotions_job``: housekeeping sweep marking lapsed promotions
  ``expired`` (display never depends on it).
- ``sync_pending_payments_job``: polls the payment gateway for pending
  promotions, a fallback for missed settlement webhooks.

RQ calls jobs synchronously; each entry point runs its async core with
``asyncio.run``.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from tgdir.domain.errors import DirectoryError
from tgdir.domain.services.promotions import PromotionService
from tgdir.infrastructure.db.models import PromotionStatus
from tgdir.infrastructure.db.session import get_session_factory
from tgdir.libs.cryptomus_client import CryptomusClient, PaymentGatewayProtocol

logger = structlog.get_logger()


def expire_promotions_job() -> dict[str, Any]:
    """Entry point for the promotion expiry sweep."""
    return asyncio.run(expire_promotions())


def sync_pending_payments_job(limit: int = 100) -> dict[str, Any]:
    """Entry point for polling the gateway about unsettled promotions."""
    return asyncio.run(sync_pending_payments(limit=limit))


async def expire_promotions(
    *,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    factory = session_factory or get_session_factory()
    now = now or datetime.now(UTC)

    async with factory() as session:
        expired = await PromotionService(session).expire_due(now=now)

    logger.info("expire_promotions_completed", expired=expired, run_at=now.isoformat())
    return {"status": "completed", "expired": expired}


async def sync_pending_payments(
    *,
    limit: int = 100,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    gateway: PaymentGatewayProtocol | None = None,
) -> dict[str, Any]:
    """Activate pending promotions the gateway reports as paid.

    A failure on one promotion is logged and the sweep moves on to the next.
    """
    factory = session_factory or get_session_factory()
    gateway = gateway or CryptomusClient()
    checked = activated = failed = 0

    async with factory() as session:
        service = PromotionService(session)
        pending_ids = [p.id for p in await service.list_awaiting_payment(limit=limit)]
        for promotion_id in pending_ids:
            checked += 1
            try:
                synced = await service.sync_payment_status(promotion_id, gateway)
            except DirectoryError as exc:
                failed += 1
                logger.warning(
                    "payment_sync_failed",
                    promotion_id=promotion_id,
                    error=str(exc),
                    error_type=type(exc).__name__,
                )
                continue
            if synced.status == PromotionStatus.ACTIVE:
                activated += 1

    logger.info(
        "sync_pending_payments_completed", checked=checked, activated=activated, failed=failed
    )
    return {"status": "completed", "checked": checked, "activated": activated, "failed": failed}
