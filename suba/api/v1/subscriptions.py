"""
Subscription API endpoints
"""
from datetime import date, datetime
from decimal import Decimal

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from suba.api.deps import get_db, get_current_user
from suba.application.subscriptions import (
    CreateSubscriptionUseCase, ListSubscriptionsUseCase, UpdateSubscriptionUseCase,
    CancelSubscriptionUseCase, DeleteSubscriptionUseCase, get_owned_subscription,
)
from suba.infrastructure.db.models import Subscription, User


router = APIRouter(prefix="/api/subscriptions", tags=["subscriptions"])


# === Request/Response models ===

class SubscriptionFields(BaseModel):
    name: str | None = None
    service_provider: str | None = None
    category: str | None = None
    amount: Decimal | None = None
    currency: str | None = None
    billing_cycle: str | None = None  # daily, weekly, monthly, quarterly, yearly
    next_billing_date: date | None = None
    last_payment_date: date | None = None
    auto_renew: bool | None = None
    reminder_days_before: int | None = None
    is_shared: bool | None = None
    notes: str | None = None
    cancellation_link: str | None = None
    logo_url: str | None = None
    status: str | None = None  # active, paused, cancelled
    next_reminder_date: date | None = None


class SubscriptionResponse(BaseModel):
    id: int
    user_id: int
    name: str
    service_provider: str | None
    category: str | None
    amount: float
    currency: str | None
    billing_cycle: str
    next_billing_date: date
    last_payment_date: date | None
    auto_renew: bool
    reminder_days_before: int
    is_shared: bool
    notes: str | None
    cancellation_link: str | None
    logo_url: str | None
    status: str
    is_active: bool
    skipped_at: datetime | None
    next_reminder_date: date | None
    total_payments: float
    payment_count: int
    created_at: datetime | None
    updated_at: datetime | None


class MessageResponse(BaseModel):
    message: str


def to_response(sub: Subscription) -> SubscriptionResponse:
    return SubscriptionResponse(
        id=sub.id,
        user_id=sub.user_id,
        name=sub.name,
        service_provider=sub.service_provider,
        category=sub.category,
        amount=float(sub.amount),
        currency=sub.currency,
        billing_cycle=sub.billing_cycle,
        next_billing_date=sub.next_billing_date,
        last_payment_date=sub.last_payment_date,
        auto_renew=bool(sub.auto_renew),
        reminder_days_before=sub.reminder_days_before,
        is_shared=bool(sub.is_shared),
        notes=sub.notes,
        cancellation_link=sub.cancellation_link,
        logo_url=sub.logo_url,
        status=sub.status,
        is_active=sub.status != "cancelled",
        skipped_at=sub.skipped_at,
        next_reminder_date=sub.next_reminder_date,
        total_payments=float(sub.total_payments or 0),
        payment_count=sub.payment_count or 0,
        created_at=sub.created_at,
        updated_at=sub.updated_at,
    )


# === Endpoints ===

@router.post("/", response_model=SubscriptionResponse, status_code=status.HTTP_201_CREATED)
def create_subscription(
    req: SubscriptionFields,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    fields = req.model_dump(exclude_none=True)
    sub = CreateSubscriptionUseCase(db).execute(
        user_id=user.id,
        default_currency=user.default_currency or "NGN",
        **fields,
    )
    return to_response(sub)


@router.get("/", response_model=list[SubscriptionResponse])
def list_subscriptions(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """All subscriptions of the user, soonest billing first"""
    return [to_response(s) for s in ListSubscriptionsUseCase(db).execute(user.id)]


@router.get("/{sub_id}", response_model=SubscriptionResponse)
def get_subscription(
    sub_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return to_response(get_owned_subscription(db, sub_id, user.id))


@router.put("/{sub_id}", response_model=SubscriptionResponse)
def update_subscription(
    sub_id: int,
    req: SubscriptionFields,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Partial update: only fields present in the body are changed"""
    sub = UpdateSubscriptionUseCase(db).execute(sub_id, user.id, **req.model_dump(exclude_unset=True))
    return to_response(sub)


@router.put("/{sub_id}/cancel", response_model=MessageResponse)
def cancel_subscription(
    sub_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    CancelSubscriptionUseCase(db).execute(sub_id, user.id)
    return {"message": "Subscription cancelled successfully"}


@router.delete("/{sub_id}", response_model=MessageResponse)
def delete_subscription(
    sub_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    DeleteSubscriptionUseCase(db).execute(sub_id, user.id)
    return {"message": "Subscription deleted successfully"}
