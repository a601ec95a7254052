"""
Tests for the monthly budget setting and monthly budget reports.
"""
import json
import pytest
from datetime import date, datetime
from decimal import Decimal

from suba.application.budget import BudgetService
from suba.application.budget_report import BudgetReportService
from suba.application.errors import ValidationError
from suba.infrastructure.db.models import BudgetReport, Payment, Subscription


class TestBudget:
    def test_defaults(self, db_session, user):
        assert BudgetService(db_session).get(user.id) == {"budget": 0.0, "currency": "NGN"}

    def test_update_rounds_to_cents(self, db_session, user):
        value = BudgetService(db_session).update(user.id, "50000.456")
        assert value == Decimal("50000.46")
        assert BudgetService(db_session).get(user.id)["budget"] == 50000.46

    def test_update_caps_value(self, db_session, user):
        assert BudgetService(db_session).update(user.id, 10**12) == Decimal("999999999.99")

    def test_zero_allowed(self, db_session, user):
        assert BudgetService(db_session).update(user.id, 0) == Decimal("0.00")

    @pytest.mark.parametrize("bad", [-1, "abc", "NaN", True])
    def test_invalid_values(self, db_session, user, bad):
        with pytest.raises(ValidationError):
            BudgetService(db_session).update(user.id, bad)

    def test_missing_value(self, db_session, user):
        with pytest.raises(ValidationError) as exc:
            BudgetService(db_session).update(user.id, None)
        assert exc.value.missing == ["budget"]


def _sub(db_session, user, name, amount, category, status="active",
         created=datetime(2026, 9, 3), updated=datetime(2026, 9, 3)):
    sub = Subscription(
        user_id=user.id, name=name, amount=Decimal(amount), category=category,
        currency="NGN", billing_cycle="monthly", next_billing_date=date(2026, 10, 3),
        status=status, created_at=created, updated_at=updated,
    )
    db_session.add(sub)
    db_session.flush()
    return sub


def _pay(db_session, user, sub, amount, paid_at, status="successful"):
    db_session.add(Payment(
        user_id=user.id, subscription_id=sub.id, amount=Decimal(amount),
        currency="NGN", status=status, paid_at=paid_at,
    ))


class TestBudgetReports:
    @pytest.fixture
    def data(self, db_session, user):
        dstv = _sub(db_session, user, "DSTV", "15700", "TV", created=datetime(2026, 8, 1), updated=datetime(2026, 8, 1))
        netflix = _sub(db_session, user, "Netflix", "4400", "Streaming")
        gym = _sub(db_session, user, "Gym", "20000", "Fitness", status="cancelled",
                   created=datetime(2026, 7, 1), updated=datetime(2026, 9, 25))
        _pay(db_session, user, dstv, "15700", datetime(2026, 9, 5))
        _pay(db_session, user, netflix, "4400", datetime(2026, 9, 10))
        _pay(db_session, user, netflix, "4400", datetime(2026, 9, 11), status="failed")
        _pay(db_session, user, dstv, "15700", datetime(2026, 10, 5))
        db_session.commit()

    def test_generate(self, db_session, user, data):
        report = BudgetReportService(db_session).generate(user.id, "2026-09")
        assert report["report_month"] == "2026-09"
        assert report["total_spent"] == 20100.0
        assert report["recurring_services"] == 2
        assert report["new_subscriptions"] == 1
        assert report["canceled_subscriptions"] == 1
        assert report["most_expensive_service"] == "Gym"
        assert report["category_breakdown"] == {"TV": 15700.0, "Streaming": 4400.0}

    def test_generate_is_upsert(self, db_session, user, data):
        service = BudgetReportService(db_session)
        first = service.generate(user.id, "2026-09")
        second = service.generate(user.id, "2026-09")
        assert first["id"] == second["id"]
        assert db_session.query(BudgetReport).count() == 1

    def test_snapshot_not_recomputed_by_new_payments(self, db_session, user, data):
        service = BudgetReportService(db_session)
        service.generate(user.id, "2026-09")
        sub = db_session.query(Subscription).filter(Subscription.name == "Netflix").one()
        _pay(db_session, user, sub, "1000", datetime(2026, 9, 28))
        db_session.commit()
        assert service.list(user.id)[0]["total_spent"] == 20100.0

    def test_list_newest_first(self, db_session, user, data):
        service = BudgetReportService(db_session)
        service.generate(user.id, "2026-08")
        service.generate(user.id, "2026-10")
        service.generate(user.id, "2026-09")
        assert [r["report_month"] for r in service.list(user.id)] == ["2026-10", "2026-09", "2026-08"]

    def test_category_breakdown_stored_as_json(self, db_session, user, data):
        BudgetReportService(db_session).generate(user.id, "2026-10")
        row = db_session.query(BudgetReport).one()
        assert json.loads(row.category_breakdown) == {"TV": 15700.0}

    @pytest.mark.parametrize("month", ["2026-13", "2026/09", "26-09", "September"])
    def test_bad_month_format(self, db_session, user, month):
        with pytest.raises(ValidationError):
            BudgetReportService(db_session).generate(user.id, month)

    def test_month_required(self, db_session, user):
        with pytest.raises(ValidationError) as exc:
            BudgetReportService(db_session).generate(user.id, None)
        assert exc.value.missing == ["month"]
