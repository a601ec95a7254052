"""
Budget report service: one spend snapshot per user per month.

The snapshot is computed at generation time and upserted; later payment
changes do not touch an existing report until it is generated again.
"""
import json
import logging
import re
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from suba.application.errors import ValidationError
from suba.infrastructure.db.models import BudgetReport, Payment, Subscription

logger = logging.getLogger(__name__)

_ZERO = Decimal("0")
_MONTH_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


def _month_bounds(month: str) -> tuple[datetime, datetime]:
    """Return [first day of month, first day of next month)."""
    y, m = int(month[:4]), int(month[5:7])
    start = datetime(y, m, 1)
    end = datetime(y + 1, 1, 1) if m == 12 else datetime(y, m + 1, 1)
    return start, end


def _month_key(value: datetime | None) -> str | None:
    return value.strftime("%Y-%m") if value else None


def report_to_dict(report: BudgetReport) -> Dict[str, Any]:
    try:
        breakdown = json.loads(report.category_breakdown) if report.category_breakdown else None
    except ValueError:
        breakdown = None
    return {
        "id": report.id,
        "report_month": report.report_month,
        "total_spent": float(report.total_spent or 0),
        "recurring_services": report.recurring_services,
        "new_subscriptions": report.new_subscriptions,
        "canceled_subscriptions": report.canceled_subscriptions,
        "most_expensive_service": report.most_expensive_service,
        "category_breakdown": breakdown,
        "created_at": report.created_at,
    }


class BudgetReportService:
    """Generate and list monthly budget reports."""

    def __init__(self, db: Session):
        self.db = db

    def list(self, user_id: int, limit: int = 12) -> List[Dict[str, Any]]:
        reports = (
            self.db.query(BudgetReport)
            .filter(BudgetReport.user_id == user_id)
            .order_by(BudgetReport.report_month.desc())
            .limit(limit)
            .all()
        )
        return [report_to_dict(r) for r in reports]

    def generate(self, user_id: int, month: str | None) -> Dict[str, Any]:
        if not month:
            raise ValidationError("Month is required (format: YYYY-MM)", missing=["month"])
        if not _MONTH_RE.match(month):
            raise ValidationError("Month must use the format YYYY-MM")

        start, end = _month_bounds(month)

        subscriptions = (
            self.db.query(Subscription)
            .filter(
                Subscription.user_id == user_id,
                Subscription.status.in_(("active", "cancelled")),
            )
            .all()
        )
        subscriptions = [
            s for s in subscriptions
            if s.created_at is None or _month_key(s.created_at) <= month
        ]

        payments = (
            self.db.query(Payment.amount, Subscription.category)
            .outerjoin(Subscription, Subscription.id == Payment.subscription_id)
            .filter(
                Payment.user_id == user_id,
                Payment.status == "successful",
                Payment.paid_at >= start,
                Payment.paid_at < end,
            )
            .all()
        )

        total_spent = sum((Decimal(amount) for amount, _ in payments), _ZERO)
        breakdown: Dict[str, float] = {}
        for amount, category in payments:
            key = category or "Other"
            breakdown[key] = round(breakdown.get(key, 0.0) + float(amount), 2)

        recurring = sum(1 for s in subscriptions if s.status == "active")
        new_subs = sum(1 for s in subscriptions if _month_key(s.created_at) == month)
        canceled = sum(
            1 for s in subscriptions
            if s.status == "cancelled" and _month_key(s.updated_at) == month
        )
        most_expensive = max(subscriptions, key=lambda s: s.amount).name if subscriptions else None

        report = self.db.query(BudgetReport).filter(
            BudgetReport.user_id == user_id,
            BudgetReport.report_month == month,
        ).first()
        if report is None:
            report = BudgetReport(user_id=user_id, report_month=month)
            self.db.add(report)
        report.total_spent = total_spent
        report.recurring_services = recurring
        report.new_subscriptions = new_subs
        report.canceled_subscriptions = canceled
        report.most_expensive_service = most_expensive
        report.category_breakdown = json.dumps(breakdown)
        self.db.flush()
        self.db.commit()

        logger.info("Budget report user_id=%d month=%s total=%s", user_id, month, total_spent)
        return report_to_dict(report)
