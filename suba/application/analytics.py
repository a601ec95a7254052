"""
Spending analytics: period totals, category breakdown, trend series.

Windows are calendar based: the current ISO week (Monday start), the
current month or the current year. Trends look back a fixed number of
buckets (8 weeks / 6 months / 5 years) and always return every bucket,
zero-filled, oldest first.
"""
import logging
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, List

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from suba.domain.billing import add_months, clamp_period, normalize_amount
from suba.infrastructure.db.models import Payment, Subscription, User

logger = logging.getLogger(__name__)

_ZERO = Decimal("0")

TREND_LENGTH = {"weekly": 8, "monthly": 6, "yearly": 5}

_MONTH_LABELS = {
    1: "Jan", 2: "Feb", 3: "Mar", 4: "Apr", 5: "May", 6: "Jun",
    7: "Jul", 8: "Aug", 9: "Sep", 10: "Oct", 11: "Nov", 12: "Dec",
}


def start_of_iso_week(d: date) -> date:
    return d - timedelta(days=d.weekday())


def window_start(period: str, today: date) -> date:
    """First day of the period containing ``today``."""
    if period == "weekly":
        return start_of_iso_week(today)
    if period == "yearly":
        return date(today.year, 1, 1)
    return date(today.year, today.month, 1)


def next_window_start(period: str, start: date) -> date:
    if period == "weekly":
        return start + timedelta(days=7)
    if period == "yearly":
        return date(start.year + 1, 1, 1)
    return add_months(start, 1)


def bucket_key(period: str, d: date) -> str:
    """YYYYWW (ISO week) / YYYY-MM / YYYY."""
    if period == "weekly":
        iso_year, iso_week, _ = d.isocalendar()
        return str(iso_year * 100 + iso_week)
    if period == "yearly":
        return str(d.year)
    return f"{d.year}-{d.month:02d}"


def bucket_label(period: str, d: date) -> str:
    if period == "weekly":
        return f"W{d.isocalendar()[1]:02d}"
    if period == "yearly":
        return str(d.year)
    return _MONTH_LABELS[d.month]


def trend_buckets(period: str, today: date) -> List[Dict[str, Any]]:
    """Empty buckets for the lookback window, oldest first."""
    period = clamp_period(period)
    n = TREND_LENGTH[period]
    current = window_start(period, today)
    starts = []
    for i in range(n - 1, -1, -1):
        if period == "weekly":
            starts.append(current - timedelta(days=7 * i))
        elif period == "yearly":
            starts.append(date(current.year - i, 1, 1))
        else:
            starts.append(add_months(current, -i))
    return [
        {
            "key": bucket_key(period, s),
            "label": bucket_label(period, s),
            "start_date": s,
            "total_amount": 0.0,
        }
        for s in starts
    ]


def _currency_filter(column, currency: str):
    return or_(column.is_(None), func.upper(column) == currency)


def _as_datetime(d: date) -> datetime:
    return datetime(d.year, d.month, d.day)


class AnalyticsService:
    def __init__(self, db: Session):
        self.db = db

    def resolve_currency(self, user_id: int, requested: str | None, fallback: str = "NGN") -> str:
        if requested and requested.strip():
            return requested.strip().upper()
        row = self.db.query(User.default_currency).filter(User.id == user_id).first()
        return ((row[0] if row else None) or fallback).upper()

    def _active_subscriptions(self, user_id: int, currency: str) -> List[Subscription]:
        return (
            self.db.query(Subscription)
            .filter(
                Subscription.user_id == user_id,
                Subscription.status == "active",
                _currency_filter(Subscription.currency, currency),
            )
            .all()
        )

    def _successful_payments(self, user_id: int, currency: str):
        return self.db.query(Payment).filter(
            Payment.user_id == user_id,
            Payment.status == "successful",
            _currency_filter(Payment.currency, currency),
        )

    def spending(self, user_id: int, period: str | None, mode: str | None,
                 currency: str, today: date) -> Dict[str, Any]:
        """
        Total spend for the current period.

        expected: sum of active subscriptions normalized to the period.
        actual: sum of successful payments with paid_at inside the window.
        """
        period = clamp_period(period)
        mode = "expected" if (mode or "actual").strip().lower() == "expected" else "actual"
        subs = self._active_subscriptions(user_id, currency)

        if mode == "expected":
            total = sum(
                (normalize_amount(s.amount, s.billing_cycle, period) for s in subs), _ZERO
            )
        else:
            start = window_start(period, today)
            end = next_window_start(period, start)
            total = (
                self._successful_payments(user_id, currency)
                .filter(Payment.paid_at >= _as_datetime(start), Payment.paid_at < _as_datetime(end))
                .with_entities(func.coalesce(func.sum(Payment.amount), 0))
                .scalar()
            )
            total = Decimal(str(total or 0))

        logger.info(
            "Spending user=%d period=%s mode=%s currency=%s subs=%d total=%s",
            user_id, period, mode, currency, len(subs), total,
        )
        return {
            "total_spent": round(float(total), 2),
            "total_subscriptions": len(subs),
            "currency": currency,
            "period": period,
            "mode": mode,
        }

    def categories(self, user_id: int, period: str | None, currency: str,
                   today: date) -> List[Dict[str, Any]]:
        period = clamp_period(period)
        start = window_start(period, today)
        end = next_window_start(period, start)
        category = func.coalesce(Subscription.category, "Uncategorized")

        rows = (
            self.db.query(
                category.label("category"),
                func.coalesce(func.sum(Payment.amount), 0).label("total_amount"),
                func.count(func.distinct(Subscription.id)).label("subscription_count"),
            )
            .select_from(Payment)
            .outerjoin(Subscription, Subscription.id == Payment.subscription_id)
            .filter(
                Payment.user_id == user_id,
                Payment.status == "successful",
                Payment.paid_at >= _as_datetime(start),
                Payment.paid_at < _as_datetime(end),
                _currency_filter(Payment.currency, currency),
            )
            .group_by(category)
            .all()
        )
        result = [
            {
                "category": r.category,
                "total_amount": round(float(r.total_amount or 0), 2),
                "subscription_count": int(r.subscription_count or 0),
            }
            for r in rows
        ]
        result.sort(key=lambda r: r["total_amount"], reverse=True)
        return result

    def trends(self, user_id: int, period: str | None, currency: str,
               today: date) -> List[Dict[str, Any]]:
        period = clamp_period(period)
        buckets = trend_buckets(period, today)
        first = buckets[0]["start_date"]
        end = next_window_start(period, window_start(period, today))

        rows = (
            self._successful_payments(user_id, currency)
            .filter(Payment.paid_at >= _as_datetime(first), Payment.paid_at < _as_datetime(end))
            .with_entities(Payment.paid_at, Payment.amount)
            .all()
        )
        totals: Dict[str, Decimal] = {}
        for paid_at, amount in rows:
            key = bucket_key(period, paid_at.date())
            totals[key] = totals.get(key, _ZERO) + Decimal(str(amount))

        for b in buckets:
            b["total_amount"] = round(float(totals.get(b["key"], _ZERO)), 2)
        return buckets
