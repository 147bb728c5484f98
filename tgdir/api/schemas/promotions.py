"""Pydantic schemas for promotion plans, checkout and payment callbacks."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field
from tgdir.domain.models import PromotionPlan
from tgdir.domain.services.promotions import effective_status
from tgdir.infrastructure.db.models import Promotion


class PlanResponse(BaseModel):
    id: str
    name: str
    duration_days: int
    price: float
    features: list[str]
    popular: bool = False

    @classmethod
    def from_plan(cls, plan: PromotionPlan) -> PlanResponse:
        return cls(
            id=plan.id,
            name=plan.name,
            duration_days=plan.duration_days,
            price=plan.price,
            features=list(plan.features),
            popular=plan.popular,
        )


class PlanListResponse(BaseModel):
    items: list[PlanResponse]


class CheckoutRequest(BaseModel):
    group_id: str = Field(..., description="Catalog entry to promote")
    plan_id: str = Field(..., description="Promotion plan id")
    return_url: str | None = Field(None, description="Where the payer returns after paying")


class PromotionResponse(BaseModel):
    id: str
    group_id: str
    group_name: str | None = None
    user_id: str
    plan_id: str
    order_id: str
    start_date: datetime
    end_date: datetime
    status: str
    payment_id: str | None = None
    payment_url: str | None = None
    amount: float
    currency: str
    created_at: datetime

    @classmethod
    def from_model(
        cls, promotion: Promotion, *, now: datetime, group_name: str | None = None
    ) -> PromotionResponse:
        return cls(
            id=promotion.id,
            group_id=promotion.group_id,
            group_name=group_name,
            user_id=promotion.user_id,
            plan_id=promotion.plan_id,
            order_id=promotion.order_id,
            start_date=promotion.start_date,
            end_date=promotion.end_date,
            status=effective_status(promotion, now).value,
            payment_id=promotion.payment_id,
            payment_url=promotion.payment_url,
            amount=promotion.amount,
            currency=promotion.currency,
            created_at=promotion.created_at,
        )


class CheckoutResponse(BaseModel):
    promotion: PromotionResponse
    payment_url: str


class PromotionListResponse(BaseModel):
    items: list[PromotionResponse]


class PromotionStatsResponse(BaseModel):
    total_promotions: int
    active_promotions: int
    total_spent: float


class PaymentCallbackResponse(BaseModel):
    promotion_id: str
    status: str
