"""
Tests for the insight service: feature summary, persistence with de-duplication, resolve.
"""
import json
import pytest
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from unittest.mock import Mock

from suba.application.errors import NotFoundError
from suba.application.insights import InsightService, build_feature_summary
from suba.config import get_settings
from suba.infrastructure.db.models import AiInsight, Payment, Subscription

TODAY = date(2026, 10, 17)


def _sub(db_session, user, name, amount, cycle="monthly", category=None, status="active",
         next_billing=date(2026, 11, 10), notes=None, auto_renew=True, currency="NGN"):
    sub = Subscription(
        user_id=user.id, name=name, amount=Decimal(amount), billing_cycle=cycle,
        category=category, status=status, next_billing_date=next_billing,
        notes=notes, auto_renew=auto_renew, currency=currency,
    )
    db_session.add(sub)
    db_session.flush()
    return sub


def _pay(db_session, user, sub, amount, paid_at, status="successful"):
    db_session.add(Payment(
        user_id=user.id, subscription_id=sub.id, amount=Decimal(amount),
        currency="NGN", status=status, paid_at=paid_at,
    ))


@pytest.fixture
def portfolio(db_session, user):
    netflix = _sub(db_session, user, "Netflix", "4400", category="Streaming", next_billing=date(2026, 10, 20))
    _sub(db_session, user, "Showmax", "2900", category="Streaming")
    dstv = _sub(db_session, user, "DSTV", "15700", category="TV", status="paused")
    _sub(db_session, user, "Apple Music Trial", "0", category="Music", notes="free trial")
    _sub(db_session, user, "Gym", "20000", category="Fitness", status="cancelled")
    _sub(db_session, user, "Cloud", "12000", cycle="yearly", category="Storage", auto_renew=False)

    # Netflix: recent payments, current amount 4400 vs avg 3000 -> +46%
    _pay(db_session, user, netflix, "2600", datetime(2026, 8, 20))
    _pay(db_session, user, netflix, "3400", datetime(2026, 9, 20))
    _pay(db_session, user, netflix, "9999", datetime(2026, 10, 1), status="failed")
    # DSTV: last paid long ago
    _pay(db_session, user, dstv, "15700", datetime(2026, 6, 1))
    db_session.commit()


class TestFeatureSummary:
    def test_summary(self, db_session, user, portfolio):
        f = build_feature_summary(db_session, user.id, TODAY)
        names = [s["name"] for s in f["subscriptions"]]
        assert "Gym" not in names
        assert set(names) == {"Netflix", "Showmax", "DSTV", "Apple Music Trial", "Cloud"}
        assert f["currency"] == "NGN"
        # 4400 + 2900 + 15700 + 0 + 12000/12
        assert f["total_monthly"] == 24000.0

        netflix = next(s for s in f["subscriptions"] if s["name"] == "Netflix")
        assert netflix["due_in_days"] == 3
        assert netflix["payment_stats"]["payment_count"] == 2
        assert netflix["payment_stats"]["avg_amount"] == 3000.0
        assert netflix["payment_stats"]["days_since_last_payment"] == 27

        assert f["category_totals"][0] == {"category": "TV", "monthly_total": 15700.0, "count": 1}
        assert f["overlaps"] == [{"category": "Streaming", "names": ["Netflix", "Showmax"]}]
        assert [p["name"] for p in f["price_changes"]] == ["Netflix"]
        assert f["price_changes"][0]["pct_diff"] == pytest.approx(0.4667, abs=1e-4)
        assert [s["name"] for s in f["due_soon"]] == ["Netflix"]
        assert [s["name"] for s in f["free_trials"]] == ["Apple Music Trial"]
        assert {s["name"] for s in f["expensive"]} == {"DSTV", "Cloud"}
        # no payment at all counts as low usage; Cloud does not auto-renew
        assert {s["name"] for s in f["low_usage"]} == {"Showmax", "DSTV", "Apple Music Trial"}

    def test_empty_user_uses_default_currency(self, db_session, user):
        f = build_feature_summary(db_session, user.id, TODAY, default_currency="usd")
        assert f["currency"] == "USD"
        assert f["subscriptions"] == []
        assert f["total_monthly"] == 0

    def test_usd_expensive_threshold(self, db_session, user):
        _sub(db_session, user, "ChatGPT", "20", currency="USD")
        _sub(db_session, user, "iCloud", "2.99", currency="USD")
        db_session.commit()
        f = build_feature_summary(db_session, user.id, TODAY)
        assert [s["name"] for s in f["expensive"]] == ["ChatGPT"]

    def test_summary_is_json_serializable(self, db_session, user, portfolio):
        json.dumps(build_feature_summary(db_session, user.id, TODAY), default=str)


class TestInsightService:
    def test_generate_without_model_persists_heuristics(self, db_session, user, portfolio):
        result = InsightService(db_session).generate(user.id, client=None, today=TODAY)
        assert 3 <= len(result) <= 7
        assert db_session.query(AiInsight).count() == len(result)
        assert all(r["resolved"] is False for r in result)
        assert any(r["type"] == "overlap_detected" for r in result)

    def test_generate_twice_does_not_duplicate(self, db_session, user, portfolio):
        service = InsightService(db_session)
        first = service.generate(user.id, today=TODAY)
        second = service.generate(user.id, today=TODAY)
        assert len(second) == len(first)
        assert db_session.query(AiInsight).count() == len(first)

    def test_without_today_uses_configured_timezone(self, db_session, user, portfolio, monkeypatch):
        seen = []

        def fake_local_today(tz_name):
            seen.append(tz_name)
            return TODAY

        monkeypatch.setattr("suba.application.insights.local_today", fake_local_today)
        result = InsightService(db_session).generate(user.id)
        assert seen == [get_settings().TIMEZONE]
        assert any("due within 7 days: Netflix" in r["message"] for r in result)

    def test_resolved_message_can_be_stored_again(self, db_session, user, portfolio):
        service = InsightService(db_session)
        first = service.generate(user.id, today=TODAY)
        service.resolve(first[0]["id"], user.id)
        again = service.generate(user.id, today=TODAY)
        assert len(again) == len(first)
        assert db_session.query(AiInsight).count() == len(first) + 1

    def test_repeated_model_messages_stored_once(self, db_session, user):
        client = Mock()
        client.generate_text.return_value = json.dumps([
            {"type": "alert", "message": "Same", "confidence_score": 0.9},
            {"type": "alert", "message": "Same", "confidence_score": 0.8},
            {"type": "suggestion", "message": "Other", "confidence_score": 0.5},
            {"type": "suggestion", "message": "Third", "affected_services": ["X"]},
        ])
        result = InsightService(db_session).generate(user.id, client=client, today=TODAY)
        assert sorted(r["message"] for r in result) == ["Other", "Same", "Third"]
        third = next(r for r in result if r["message"] == "Third")
        assert third["affected_services"] == ["X"]
        assert third["confidence_score"] == 0.7

    def test_persistence_failure_rolls_back(self, db_session, user, monkeypatch):
        items = [
            {"type": "alert", "message": "ok", "affected_services": [], "confidence_score": 0.5},
            {"type": "alert", "message": "bad", "affected_services": [], "confidence_score": "abc"},
        ]
        monkeypatch.setattr("suba.application.insights.generate_insights", lambda features, client: items)
        with pytest.raises(InvalidOperation):
            InsightService(db_session).generate(user.id, today=TODAY)
        assert db_session.query(AiInsight).count() == 0

    def test_list_unresolved_newest_first_and_malformed_json(self, db_session, user, other_user):
        db_session.add_all([
            AiInsight(user_id=user.id, type="alert", message="old", affected_services='["A"]',
                      generated_at=datetime(2026, 10, 1)),
            AiInsight(user_id=user.id, type="alert", message="new", affected_services="{broken",
                      generated_at=datetime(2026, 10, 2)),
            AiInsight(user_id=user.id, type="alert", message="done", resolved=True,
                      generated_at=datetime(2026, 10, 3)),
            AiInsight(user_id=other_user.id, type="alert", message="theirs"),
        ])
        db_session.commit()
        result = InsightService(db_session).list_unresolved(user.id)
        assert [r["message"] for r in result] == ["new", "old"]
        assert result[0]["affected_services"] == []
        assert result[1]["affected_services"] == ["A"]

    def test_resolve_scoped(self, db_session, user, other_user):
        insight = AiInsight(user_id=user.id, type="alert", message="m")
        db_session.add(insight)
        db_session.commit()
        service = InsightService(db_session)
        with pytest.raises(NotFoundError):
            service.resolve(insight.id, other_user.id)
        service.resolve(insight.id, user.id)
        assert service.list_unresolved(user.id) == []
