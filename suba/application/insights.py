"""
Insight generator: per-user feature summary, generation, de-duplicated persistence.

Generation never fails because of the language model; see
``insight_rules.generate_insights``.
"""
import json
import logging
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List

from sqlalchemy import func
from sqlalchemy.orm import Session

from suba.application.errors import NotFoundError
from suba.application.insight_rules import generate_insights
from suba.config import get_settings
from suba.domain.billing import monthly_equivalent
from suba.infrastructure.db.models import AiInsight, Payment, Subscription
from suba.utils.dates import local_today

logger = logging.getLogger(__name__)

LOW_USAGE_DAYS = 45
DUE_SOON_DAYS = 7
PRICE_CHANGE_THRESHOLD = 0.15
EXPENSIVE_NGN = Decimal("5000")
EXPENSIVE_OTHER = Decimal("20")


def _money(value) -> float:
    return round(float(value or 0), 2)


def _is_free_trial(sub: Subscription) -> bool:
    return (
        "trial" in (sub.name or "").lower()
        or "trial" in (sub.notes or "").lower()
        or Decimal(sub.amount or 0) == 0
    )


def build_feature_summary(db: Session, user_id: int, today: date,
                          default_currency: str = "NGN") -> Dict[str, Any]:
    """
    Collect everything the generator looks at for one user.

    Only active and paused subscriptions are considered. Payment statistics
    come from successful payments only. All values are JSON friendly.
    """
    subs = (
        db.query(Subscription)
        .filter(Subscription.user_id == user_id, Subscription.status.in_(("active", "paused")))
        .order_by(Subscription.next_billing_date.asc(), Subscription.id.asc())
        .all()
    )
    stat_rows = (
        db.query(
            Payment.subscription_id,
            func.count(Payment.id),
            func.coalesce(func.sum(Payment.amount), 0),
            func.avg(Payment.amount),
            func.min(Payment.paid_at),
            func.max(Payment.paid_at),
        )
        .filter(Payment.user_id == user_id, Payment.status == "successful")
        .group_by(Payment.subscription_id)
        .all()
    )
    stats_by_sub = {row[0]: row for row in stat_rows}

    currency = ((subs[0].currency if subs else None) or default_currency).upper()
    expensive_threshold = EXPENSIVE_NGN if currency == "NGN" else EXPENSIVE_OTHER

    enriched: List[Dict[str, Any]] = []
    low_usage, due_soon, free_trials, expensive, price_changes = [], [], [], [], []
    by_category: Dict[str, List[Dict[str, Any]]] = {}

    for sub in subs:
        stats = stats_by_sub.get(sub.id)
        count = int(stats[1]) if stats else 0
        avg = float(stats[3]) if stats and stats[3] is not None else 0.0
        last_paid = stats[5] if stats else None
        days_since_last = (today - last_paid.date()).days if last_paid else None
        due_in_days = (sub.next_billing_date - today).days if sub.next_billing_date else None

        entry = {
            "id": sub.id,
            "name": sub.name,
            "service_provider": sub.service_provider,
            "category": sub.category,
            "amount": _money(sub.amount),
            "currency": sub.currency,
            "billing_cycle": sub.billing_cycle,
            "next_billing_date": sub.next_billing_date,
            "status": sub.status,
            "auto_renew": sub.auto_renew,
            "notes": sub.notes,
            "monthly_equivalent": _money(monthly_equivalent(sub.amount, sub.billing_cycle)),
            "payment_stats": {
                "payment_count": count,
                "total_amount": _money(stats[2]) if stats else 0.0,
                "avg_amount": round(avg, 2),
                "first_paid_at": stats[4] if stats else None,
                "last_paid_at": last_paid,
                "days_since_last_payment": days_since_last,
            },
            "due_in_days": due_in_days,
        }
        enriched.append(entry)
        by_category.setdefault(sub.category or "Uncategorized", []).append(entry)

        if sub.auto_renew and (days_since_last is None or days_since_last > LOW_USAGE_DAYS):
            low_usage.append(entry)
        if due_in_days is not None and 0 <= due_in_days <= DUE_SOON_DAYS:
            due_soon.append(entry)
        if _is_free_trial(sub):
            free_trials.append(entry)
        if Decimal(sub.amount or 0) >= expensive_threshold:
            expensive.append(entry)
        if count >= 2 and avg:
            diff = float(sub.amount) - avg
            pct = diff / avg
            if abs(pct) > PRICE_CHANGE_THRESHOLD:
                price_changes.append({
                    "subscription_id": sub.id,
                    "name": sub.name,
                    "current_amount": _money(sub.amount),
                    "average_amount": round(avg, 2),
                    "pct_diff": round(pct, 4),
                    "abs_diff": round(diff, 2),
                })

    category_totals = sorted(
        (
            {
                "category": cat,
                "monthly_total": round(sum(e["monthly_equivalent"] for e in entries), 2),
                "count": len(entries),
            }
            for cat, entries in by_category.items()
        ),
        key=lambda c: c["monthly_total"],
        reverse=True,
    )

    return {
        "currency": currency,
        "total_monthly": round(sum(e["monthly_equivalent"] for e in enriched), 2),
        "subscriptions": enriched,
        "category_totals": category_totals,
        "overlaps": [
            {"category": cat, "names": [e["name"] for e in entries]}
            for cat, entries in by_category.items()
            if len(entries) > 1
        ],
        "price_changes": price_changes,
        "low_usage": low_usage,
        "due_soon": due_soon,
        "free_trials": free_trials,
        "expensive": expensive,
    }


def _affected_services(raw: str | None) -> List[str]:
    try:
        parsed = json.loads(raw) if raw else []
    except ValueError:
        return []
    return parsed if isinstance(parsed, list) else []


def insight_to_dict(insight: AiInsight) -> Dict[str, Any]:
    return {
        "id": insight.id,
        "type": insight.type,
        "message": insight.message,
        "affected_services": _affected_services(insight.affected_services),
        "confidence_score": float(insight.confidence_score) if insight.confidence_score is not None else None,
        "resolved": insight.resolved,
        "generated_at": insight.generated_at,
    }


class InsightService:
    def __init__(self, db: Session):
        self.db = db

    def list_unresolved(self, user_id: int) -> List[Dict[str, Any]]:
        rows = (
            self.db.query(AiInsight)
            .filter(AiInsight.user_id == user_id, AiInsight.resolved.is_(False))
            .order_by(AiInsight.generated_at.desc(), AiInsight.id.desc())
            .all()
        )
        return [insight_to_dict(r) for r in rows]

    def resolve(self, insight_id: int, user_id: int) -> None:
        insight = self.db.query(AiInsight).filter(
            AiInsight.id == insight_id,
            AiInsight.user_id == user_id,
        ).first()
        if not insight:
            raise NotFoundError("Insight not found")
        insight.resolved = True
        self.db.commit()

    def generate(self, user_id: int, client=None, today: date | None = None,
                 default_currency: str = "NGN") -> List[Dict[str, Any]]:
        """
        Generate insights and store the new ones.

        A message already present among the user's unresolved insights is
        not stored again, neither is a message repeated inside the batch.
        Storing is all-or-nothing.
        """
        today = today or local_today(get_settings().TIMEZONE)
        features = build_feature_summary(self.db, user_id, today, default_currency)
        insights = generate_insights(features, client)

        try:
            existing = {
                message for (message,) in self.db.query(AiInsight.message).filter(
                    AiInsight.user_id == user_id,
                    AiInsight.resolved.is_(False),
                )
            }
            stored = 0
            for item in insights:
                if item["message"] in existing:
                    continue
                existing.add(item["message"])
                self.db.add(AiInsight(
                    user_id=user_id,
                    type=item["type"],
                    message=item["message"],
                    affected_services=json.dumps(item.get("affected_services") or []),
                    confidence_score=Decimal(str(item["confidence_score"])).quantize(Decimal("0.01")),
                    resolved=False,
                ))
                stored += 1
            self.db.flush()
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            "Generated insights user_id=%d produced=%d stored=%d", user_id, len(insights), stored,
        )
        return self.list_unresolved(user_id)
