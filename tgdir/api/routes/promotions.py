"""Promotion plans, checkout and the payment gateway webhook."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

import structlog
from fastapi import APIRouter, Body, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from tgdir.api.deps import get_current_user, get_db_session, get_payment_gateway, http_error
from tgdir.api.schemas.promotions import (
    CheckoutRequest,
    CheckoutResponse,
    PaymentCallbackResponse,
    PlanListResponse,
    PlanResponse,
    PromotionListResponse,
    PromotionResponse,
    PromotionStatsResponse,
)
from tgdir.domain import User
from tgdir.domain.errors import DirectoryError
from tgdir.domain.services.promotions import PromotionService, effective_status
from tgdir.libs.cryptomus_client import PaymentGatewayProtocol

logger = structlog.get_logger()
router = APIRouter(prefix="/promotions", tags=["Promotions"])
payments_router = APIRouter(prefix="/payments", tags=["Payments"])


@router.get("/plans", response_model=PlanListResponse)
async def list_plans(session: AsyncSession = Depends(get_db_session)) -> PlanListResponse:
    plans = PromotionService(session).list_plans()
    return PlanListResponse(items=[PlanResponse.from_plan(plan) for plan in plans])


@router.post("", response_model=CheckoutResponse, status_code=status.HTTP_201_CREATED)
async def checkout(
    payload: CheckoutRequest,
    session: AsyncSession = Depends(get_db_session),
    user: User = Depends(get_current_user),
    gateway: PaymentGatewayProtocol = Depends(get_payment_gateway),
) -> CheckoutResponse:
    """Create a pending promotion and return the payment page to send the user to."""
    try:
        promotion, payment_url = await PromotionService(session).checkout(
            payload.group_id,
            user,
            payload.plan_id,
            gateway,
            return_url=payload.return_url,
        )
    except DirectoryError as exc:
        raise http_error(exc) from exc
    return CheckoutResponse(
        promotion=PromotionResponse.from_model(promotion, now=datetime.now(UTC)),
        payment_url=payment_url,
    )


@router.get("", response_model=PromotionListResponse)
async def list_my_promotions(
    session: AsyncSession = Depends(get_db_session),
    user: User = Depends(get_current_user),
) -> PromotionListResponse:
    now = datetime.now(UTC)
    promotions = await PromotionService(session).list_for_user(user)
    return PromotionListResponse(
        items=[
            PromotionResponse.from_model(item, now=now, group_name=item.group.name)
            for item in promotions
        ]
    )


@router.get("/stats", response_model=PromotionStatsResponse)
async def promotion_stats(
    session: AsyncSession = Depends(get_db_session),
    user: User = Depends(get_current_user),
) -> PromotionStatsResponse:
    stats = await PromotionService(session).stats(user)
    return PromotionStatsResponse(**stats)


@payments_router.post("/cryptomus/callback", response_model=PaymentCallbackResponse)
async def cryptomus_callback(
    payload: dict[str, Any] = Body(...),  # noqa: B008
    session: AsyncSession = Depends(get_db_session),
    gateway: PaymentGatewayProtocol = Depends(get_payment_gateway),
) -> PaymentCallbackResponse:
    """Settlement webhook. The payload must carry a valid ``sign``."""
    try:
        promotion = await PromotionService(session).handle_payment_callback(payload, gateway)
    except DirectoryError as exc:
        await logger.awarning("payment_callback_rejected", error=str(exc))
        raise http_error(exc) from exc
    return PaymentCallbackResponse(
        promotion_id=promotion.id,
        status=effective_status(promotion, datetime.now(UTC)).value,
    )
