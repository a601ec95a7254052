"""
Payment API endpoints (mark paid, skip reminder, history, stats)
"""
from datetime import date, datetime
from decimal import Decimal

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from suba.api.deps import get_db, get_app_settings, get_current_user
from suba.api.v1.subscriptions import SubscriptionResponse, to_response
from suba.application.payments import (
    MarkSubscriptionPaidUseCase, SkipReminderUseCase, PaymentHistoryService,
)
from suba.config import Settings
from suba.infrastructure.db.models import User
from suba.utils.dates import local_today


router = APIRouter(prefix="/api/payments", tags=["payments"])


# === Request/Response models ===

class MarkPaidRequest(BaseModel):
    method: str | None = None
    payment_method: str | None = None  # alias of method
    payment_date: date | None = None
    amount: Decimal | None = None
    currency: str | None = None
    receipt_url: str | None = None


class SkipRequest(BaseModel):
    skip_duration: str | None = None  # "1 day", "3 days", "1 week"


class PaymentItem(BaseModel):
    id: int
    subscription_id: int
    subscription_name: str | None = None
    logo_url: str | None = None
    amount: float
    currency: str | None = None
    payment_method: str | None = None
    method: str | None = None
    status: str
    paid_at: datetime
    receipt_url: str | None = None


class Pagination(BaseModel):
    total: int
    limit: int
    offset: int


class PaymentPage(BaseModel):
    payments: list[PaymentItem]
    pagination: Pagination


class PaymentStats(BaseModel):
    total_subscriptions: int
    total_payments: int
    total_amount_paid: float
    average_payment: float | None = None
    first_payment_date: datetime | None = None
    last_payment_date: datetime | None = None


class PaymentStatsResponse(BaseModel):
    stats: PaymentStats
    recent_payments: list[PaymentItem]


class MarkPaidResponse(BaseModel):
    message: str
    subscription: SubscriptionResponse


# === Endpoints ===

@router.put("/subscriptions/{sub_id}/mark-paid", response_model=MarkPaidResponse)
def mark_paid(
    sub_id: int,
    req: MarkPaidRequest | None = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    """Record a payment and move the subscription to its next billing date"""
    req = req or MarkPaidRequest()
    sub = MarkSubscriptionPaidUseCase(db).execute(
        sub_id=sub_id,
        user_id=user.id,
        method=req.method or req.payment_method,
        payment_date=req.payment_date,
        amount=req.amount,
        currency=req.currency,
        receipt_url=req.receipt_url,
        today=local_today(settings.TIMEZONE),
    )
    return {"message": "Payment recorded successfully", "subscription": to_response(sub)}


@router.put("/subscriptions/{sub_id}/skip", response_model=MarkPaidResponse)
def skip_reminder(
    sub_id: int,
    req: SkipRequest | None = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    req = req or SkipRequest()
    sub = SkipReminderUseCase(db).execute(
        sub_id=sub_id,
        user_id=user.id,
        skip_duration=req.skip_duration,
        today=local_today(settings.TIMEZONE),
    )
    return {"message": "Reminder skipped successfully", "subscription": to_response(sub)}


@router.get("/subscriptions/{sub_id}/payments", response_model=PaymentPage)
def subscription_payments(
    sub_id: int,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return PaymentHistoryService(db).for_subscription(sub_id, user.id, limit=limit, offset=offset)


@router.get("/stats", response_model=PaymentStatsResponse)
def payment_stats(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return PaymentHistoryService(db).stats(user.id)


@router.get("/", response_model=PaymentPage)
def list_payments(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """All payments of the current user, newest first"""
    return PaymentHistoryService(db).for_user(user.id, limit=limit, offset=offset)
