"""
Billing-cycle arithmetic.

Uses date only (no timezone).

Cycles:
- daily, weekly, monthly, quarterly, yearly (unknown tags behave as monthly)

Periods (analytics targets):
- weekly, monthly, yearly (unknown periods behave as monthly)
"""
import calendar
from datetime import date, datetime, timedelta
from decimal import Decimal


BILLING_CYCLES = ("daily", "weekly", "monthly", "quarterly", "yearly")
PERIODS = ("weekly", "monthly", "yearly")
DEFAULT_CYCLE = "monthly"
DEFAULT_PERIOD = "monthly"

_D = Decimal

# target period -> source cycle -> (multiplier, divisor)
_NORMALIZATION = {
    "weekly": {
        "daily": (_D(7), _D(1)),
        "weekly": (_D(1), _D(1)),
        "monthly": (_D(1), _D("4.33")),
        "quarterly": (_D(1), _D(13)),
        "yearly": (_D(1), _D(52)),
    },
    "monthly": {
        "daily": (_D(30), _D(1)),
        "weekly": (_D("4.33"), _D(1)),
        "monthly": (_D(1), _D(1)),
        "quarterly": (_D(1), _D(3)),
        "yearly": (_D(1), _D(12)),
    },
    "yearly": {
        "daily": (_D(365), _D(1)),
        "weekly": (_D(52), _D(1)),
        "monthly": (_D(12), _D(1)),
        "quarterly": (_D(4), _D(1)),
        "yearly": (_D(1), _D(1)),
    },
}


def normalize_cycle(cycle: str | None) -> str:
    value = (cycle or DEFAULT_CYCLE).strip().lower()
    return value if value in BILLING_CYCLES else DEFAULT_CYCLE


def clamp_period(period: str | None) -> str:
    value = (period or DEFAULT_PERIOD).strip().lower()
    return value if value in PERIODS else DEFAULT_PERIOD


def last_day_of_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def add_months(d: date, n: int) -> date:
    """Shift by n calendar months, clipping the day to the target month's end."""
    month = d.month - 1 + n
    year = d.year + month // 12
    month = month % 12 + 1
    day = min(d.day, last_day_of_month(year, month))
    return date(year, month, day)


def calculate_next_billing_date(billing_cycle: str | None, reference: date | datetime) -> date:
    """
    Next billing date after ``reference`` for the given cycle.

    daily +1 day, weekly +7 days, monthly +1 month, quarterly +3 months,
    yearly +1 year. Missing or unknown cycles advance one month.
    """
    if isinstance(reference, datetime):
        reference = reference.date()

    cycle = normalize_cycle(billing_cycle)
    if cycle == "daily":
        return reference + timedelta(days=1)
    if cycle == "weekly":
        return reference + timedelta(days=7)
    if cycle == "quarterly":
        return add_months(reference, 3)
    if cycle == "yearly":
        return add_months(reference, 12)
    return add_months(reference, 1)


def normalize_amount(amount, billing_cycle: str | None, period: str | None) -> Decimal:
    """
    Express a per-cycle amount as a per-period amount.

    >>> normalize_amount(1200, "monthly", "yearly")
    Decimal('14400')
    >>> normalize_amount(1200, "yearly", "monthly")
    Decimal('100')
    """
    value = _D(str(amount)) if amount is not None else _D(0)
    multiplier, divisor = _NORMALIZATION[clamp_period(period)][normalize_cycle(billing_cycle)]
    return value * multiplier / divisor


def monthly_equivalent(amount, billing_cycle: str | None) -> Decimal:
    return normalize_amount(amount, billing_cycle, "monthly")
