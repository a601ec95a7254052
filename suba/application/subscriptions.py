"""
Subscription use cases: CRUD scoped by owner.
"""
from datetime import date
from decimal import Decimal, InvalidOperation

from sqlalchemy.orm import Session

from suba.application.errors import ValidationError, NotFoundError, require_fields
from suba.domain.billing import BILLING_CYCLES
from suba.infrastructure.db.models import Subscription

SUBSCRIPTION_STATUSES = ("active", "paused", "cancelled")

_REQUIRED = ["name", "amount", "billing_cycle", "next_billing_date"]

_UPDATABLE = (
    "name", "service_provider", "category", "amount", "currency", "billing_cycle",
    "next_billing_date", "last_payment_date", "auto_renew", "reminder_days_before",
    "is_shared", "notes", "cancellation_link", "logo_url", "status", "skipped_at",
    "next_reminder_date",
)


def _amount(value) -> Decimal:
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError("Invalid amount")
    if not amount.is_finite() or amount < 0:
        raise ValidationError("Invalid amount")
    return amount


def _cycle(value: str) -> str:
    cycle = value.strip().lower()
    if cycle not in BILLING_CYCLES:
        raise ValidationError(f"Unknown billing cycle: {value}")
    return cycle


def _reminder_days(value) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError("reminder_days_before must be a non-negative integer")
    return value


def _status(value: str | None) -> str:
    if not value or not value.strip():
        raise ValidationError("Status cannot be empty")
    status = value.strip().lower()
    if status not in SUBSCRIPTION_STATUSES:
        raise ValidationError(f"Unknown status: {value}")
    return status


def get_owned_subscription(db: Session, sub_id: int, user_id: int) -> Subscription:
    sub = db.query(Subscription).filter(
        Subscription.id == sub_id,
        Subscription.user_id == user_id,
    ).first()
    if not sub:
        raise NotFoundError("Subscription not found")
    return sub


class CreateSubscriptionUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, user_id: int, default_currency: str = "NGN", **fields) -> Subscription:
        require_fields(fields, _REQUIRED)

        next_billing_date = fields["next_billing_date"]
        if not isinstance(next_billing_date, date):
            raise ValidationError("next_billing_date must be a date")

        sub = Subscription(
            user_id=user_id,
            name=fields["name"].strip(),
            service_provider=fields.get("service_provider") or None,
            category=fields.get("category") or None,
            amount=_amount(fields["amount"]),
            currency=(fields.get("currency") or default_currency).upper(),
            billing_cycle=_cycle(fields["billing_cycle"]),
            next_billing_date=next_billing_date,
            auto_renew=fields.get("auto_renew", True),
            reminder_days_before=_reminder_days(fields.get("reminder_days_before", 3)),
            is_shared=fields.get("is_shared", False),
            notes=fields.get("notes") or None,
            cancellation_link=fields.get("cancellation_link") or None,
            logo_url=fields.get("logo_url") or None,
            status=_status(fields.get("status") or "active"),
        )
        self.db.add(sub)
        self.db.flush()
        self.db.commit()
        return sub


class ListSubscriptionsUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, user_id: int) -> list[Subscription]:
        return (
            self.db.query(Subscription)
            .filter(Subscription.user_id == user_id)
            .order_by(Subscription.next_billing_date.asc(), Subscription.id.asc())
            .all()
        )


class UpdateSubscriptionUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, sub_id: int, user_id: int, **changes) -> Subscription:
        sub = get_owned_subscription(self.db, sub_id, user_id)

        # Whole body is validated before any attribute is set
        validated = {}
        for field, value in changes.items():
            if field not in _UPDATABLE:
                continue
            if field == "name":
                if not value or not value.strip():
                    raise ValidationError("Name cannot be empty")
                value = value.strip()
            elif field == "amount":
                if value is None:
                    raise ValidationError("Invalid amount")
                value = _amount(value)
            elif field == "billing_cycle":
                if not value:
                    raise ValidationError("Billing cycle cannot be empty")
                value = _cycle(value)
            elif field == "status":
                value = _status(value)
            elif field == "reminder_days_before":
                value = _reminder_days(value)
            elif field in ("auto_renew", "is_shared"):
                if not isinstance(value, bool):
                    raise ValidationError(f"{field} must be true or false")
            elif field == "currency" and value:
                value = value.upper()
            elif field == "next_billing_date" and value is None:
                raise ValidationError("next_billing_date cannot be empty")
            validated[field] = value

        for field, value in validated.items():
            setattr(sub, field, value)
        self.db.commit()
        return sub


class CancelSubscriptionUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, sub_id: int, user_id: int) -> None:
        sub = get_owned_subscription(self.db, sub_id, user_id)
        sub.status = "cancelled"
        self.db.commit()


class DeleteSubscriptionUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, sub_id: int, user_id: int) -> None:
        sub = get_owned_subscription(self.db, sub_id, user_id)
        self.db.delete(sub)
        self.db.commit()
