"""
Payment use cases: marking subscriptions paid, skipping reminders, history, stats.

``MarkSubscriptionPaidUseCase`` is one transaction: the subscription's
aggregates/dates and the payment row are written together or not at all.
"""
import logging
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal, InvalidOperation

from sqlalchemy import func
from sqlalchemy.orm import Session

from suba.application.errors import ValidationError
from suba.application.subscriptions import get_owned_subscription
from suba.config import get_settings
from suba.domain.billing import calculate_next_billing_date
from suba.infrastructure.db.models import Payment, Subscription
from suba.utils.dates import local_today

logger = logging.getLogger(__name__)

SKIP_DURATIONS = {
    "1 day": 1,
    "3 days": 3,
    "1 week": 7,
}


def _payment_row(payment: Payment, subscription_name: str | None, logo_url: str | None = None) -> dict:
    return {
        "id": payment.id,
        "subscription_id": payment.subscription_id,
        "subscription_name": subscription_name,
        "logo_url": logo_url,
        "amount": float(payment.amount),
        "currency": payment.currency,
        "payment_method": payment.payment_method,
        "method": payment.method,
        "status": payment.status,
        "paid_at": payment.paid_at,
        "receipt_url": payment.receipt_url,
    }


class MarkSubscriptionPaidUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(
        self,
        sub_id: int,
        user_id: int,
        method: str | None = None,
        payment_date: date | None = None,
        amount=None,
        currency: str | None = None,
        receipt_url: str | None = None,
        today: date | None = None,
    ) -> Subscription:
        try:
            sub = get_owned_subscription(self.db, sub_id, user_id)
            if sub.status == "cancelled":
                raise ValidationError("Cancelled subscriptions cannot be marked as paid")

            method = method or "manual"
            payment_date = payment_date or today or local_today(get_settings().TIMEZONE)
            effective_amount = amount if amount is not None else sub.amount
            try:
                amount_value = Decimal(str(effective_amount))
            except (InvalidOperation, ValueError):
                raise ValidationError("Invalid amount")
            if not amount_value.is_finite() or amount_value <= 0:
                raise ValidationError("Invalid amount")

            sub.last_payment_date = payment_date
            sub.next_billing_date = calculate_next_billing_date(sub.billing_cycle, payment_date)
            sub.status = "active"
            sub.skipped_at = None
            sub.total_payments = (sub.total_payments or Decimal("0")) + amount_value
            sub.payment_count = (sub.payment_count or 0) + 1

            self.db.add(Payment(
                user_id=sub.user_id,
                subscription_id=sub.id,
                amount=amount_value,
                currency=(currency or sub.currency),
                payment_method=method,
                method=method,
                status="successful",
                paid_at=datetime.combine(payment_date, time.min),
                receipt_url=receipt_url,
            ))
            self.db.flush()
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            "Recorded payment sub_id=%d amount=%s next_billing_date=%s",
            sub.id, amount_value, sub.next_billing_date,
        )
        return sub


class SkipReminderUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, sub_id: int, user_id: int, skip_duration: str | None = None,
                today: date | None = None) -> Subscription:
        sub = get_owned_subscription(self.db, sub_id, user_id)
        days = SKIP_DURATIONS.get(skip_duration or "1 day", 1)
        today = today or local_today(get_settings().TIMEZONE)

        sub.skipped_at = datetime.now(timezone.utc)
        sub.next_reminder_date = today + timedelta(days=days)
        self.db.commit()
        return sub


class PaymentHistoryService:
    def __init__(self, db: Session):
        self.db = db

    def for_subscription(self, sub_id: int, user_id: int, limit: int = 20, offset: int = 0) -> dict:
        sub = get_owned_subscription(self.db, sub_id, user_id)
        payments = (
            self.db.query(Payment)
            .filter(Payment.subscription_id == sub.id, Payment.user_id == user_id)
            .order_by(Payment.paid_at.desc(), Payment.id.desc())
            .limit(limit)
            .offset(offset)
            .all()
        )
        total = self.db.query(func.count(Payment.id)).filter(
            Payment.subscription_id == sub.id, Payment.user_id == user_id,
        ).scalar() or 0
        return {
            "payments": [_payment_row(p, sub.name, sub.logo_url) for p in payments],
            "pagination": {"total": total, "limit": limit, "offset": offset},
        }

    def for_user(self, user_id: int, limit: int = 20, offset: int = 0) -> dict:
        rows = (
            self.db.query(Payment, Subscription.name, Subscription.logo_url)
            .outerjoin(Subscription, Subscription.id == Payment.subscription_id)
            .filter(Payment.user_id == user_id)
            .order_by(Payment.paid_at.desc(), Payment.id.desc())
            .limit(limit)
            .offset(offset)
            .all()
        )
        total = self.db.query(func.count(Payment.id)).filter(Payment.user_id == user_id).scalar() or 0
        return {
            "payments": [_payment_row(p, name, logo) for p, name, logo in rows],
            "pagination": {"total": total, "limit": limit, "offset": offset},
        }

    def stats(self, user_id: int) -> dict:
        """Successful-payment statistics plus the five most recent payments."""
        row = (
            self.db.query(
                func.count(func.distinct(Payment.subscription_id)),
                func.count(Payment.id),
                func.coalesce(func.sum(Payment.amount), 0),
                func.avg(Payment.amount),
                func.min(Payment.paid_at),
                func.max(Payment.paid_at),
            )
            .filter(Payment.user_id == user_id, Payment.status == "successful")
            .one()
        )
        recent = (
            self.db.query(Payment, Subscription.name)
            .outerjoin(Subscription, Subscription.id == Payment.subscription_id)
            .filter(Payment.user_id == user_id, Payment.status == "successful")
            .order_by(Payment.paid_at.desc(), Payment.id.desc())
            .limit(5)
            .all()
        )
        return {
            "stats": {
                "total_subscriptions": row[0] or 0,
                "total_payments": row[1] or 0,
                "total_amount_paid": float(row[2] or 0),
                "average_payment": float(row[3]) if row[3] is not None else None,
                "first_payment_date": row[4],
                "last_payment_date": row[5],
            },
            "recent_payments": [_payment_row(p, name) for p, name in recent],
        }
