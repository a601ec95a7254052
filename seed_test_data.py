"""
Seed demo data for demo@suba.local.
Run:  python seed_test_data.py   (uses DATABASE_URL from the environment / .env)
"""
import sys
from datetime import date
from decimal import Decimal

# ── bootstrap ────────────────────────────────────────────────────
from suba.config import get_settings
from suba.infrastructure.db.session import build_engine, build_session_factory
from suba.infrastructure.db.models import Subscription
from suba.auth import get_user_by_email

from suba.application.users import RegisterUserUseCase
from suba.application.subscriptions import CreateSubscriptionUseCase
from suba.application.payments import MarkSubscriptionPaidUseCase
from suba.application.budget import BudgetService
from suba.application.budget_report import BudgetReportService

EMAIL = "demo@suba.local"
PASSWORD = "password123"

db = build_session_factory(build_engine(get_settings()))()

user = get_user_by_email(db, EMAIL)
if user is None:
    user = RegisterUserUseCase(db).execute("Demo User", EMAIL, PASSWORD)
    print(f"Created user: {EMAIL} / {PASSWORD} (ID: {user.id})")
else:
    print(f"User already exists: {EMAIL} (ID: {user.id})")

existing = db.query(Subscription).filter_by(user_id=user.id).count()
if existing > 0:
    print(f"Subscriptions exist ({existing}). Nothing to seed.")
    db.close()
    sys.exit(0)

# ═══════════════════════════════════════════════════════════════
# Subscriptions
# ═══════════════════════════════════════════════════════════════
print("Creating subscriptions...")
create_uc = CreateSubscriptionUseCase(db)
SUBS = [
    # name, amount, cycle, next billing, category
    ("Netflix", "4400", "monthly", date(2026, 11, 3), "Streaming"),
    ("Showmax", "2900", "monthly", date(2026, 11, 12), "Streaming"),
    ("Spotify", "1300", "monthly", date(2026, 11, 8), "Music"),
    ("DSTV Compact", "15700", "monthly", date(2026, 11, 1), "TV"),
    ("iCloud 200GB", "2000", "monthly", date(2026, 11, 20), "Storage"),
    ("Canva Pro", "55000", "yearly", date(2027, 3, 14), "Productivity"),
    ("Gym", "45000", "quarterly", date(2026, 12, 5), "Fitness"),
]
subs = {}
for name, amount, cycle, next_billing, category in SUBS:
    subs[name] = create_uc.execute(
        user_id=user.id,
        name=name,
        amount=Decimal(amount),
        billing_cycle=cycle,
        next_billing_date=next_billing,
        category=category,
    )
print(f"  {len(subs)} subscriptions created")

# ═══════════════════════════════════════════════════════════════
# Payments (three months of history)
# ═══════════════════════════════════════════════════════════════
print("Recording payments...")
pay_uc = MarkSubscriptionPaidUseCase(db)
pay_count = 0
for month in (8, 9, 10):
    for name, day in (("Netflix", 3), ("Showmax", 12), ("DSTV Compact", 1), ("iCloud 200GB", 20)):
        pay_uc.execute(subs[name].id, user.id, method="card", payment_date=date(2026, month, day))
        pay_count += 1
# Spotify got more expensive in October
pay_uc.execute(subs["Spotify"].id, user.id, method="card", payment_date=date(2026, 9, 8), amount=Decimal("1100"))
pay_uc.execute(subs["Spotify"].id, user.id, method="card", payment_date=date(2026, 10, 8))
pay_count += 2
print(f"  {pay_count} payments recorded")

# ═══════════════════════════════════════════════════════════════
# Budget + report
# ═══════════════════════════════════════════════════════════════
BudgetService(db).update(user.id, Decimal("60000"))
report = BudgetReportService(db).generate(user.id, "2026-10")
print(f"Budget set to 60000, report 2026-10 total_spent={report['total_spent']}")

db.close()
print("Done.")
