"""
Monthly budget stored on the user row.
"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from sqlalchemy.orm import Session

from suba.application.errors import ValidationError, NotFoundError
from suba.infrastructure.db.models import User

MAX_BUDGET = Decimal("999999999.99")


class BudgetService:
    def __init__(self, db: Session):
        self.db = db

    def _user(self, user_id: int) -> User:
        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotFoundError("User not found")
        return user

    def get(self, user_id: int) -> dict:
        user = self._user(user_id)
        return {
            "budget": float(user.default_monthly_budget or 0),
            "currency": user.default_currency or "NGN",
        }

    def update(self, user_id: int, budget) -> Decimal:
        """Store a non-negative budget, capped and rounded to cents."""
        if budget is None or (isinstance(budget, str) and not budget.strip()):
            raise ValidationError("Budget is required", missing=["budget"])
        if isinstance(budget, bool):
            raise ValidationError("Budget must be a non-negative number")
        try:
            value = Decimal(str(budget))
        except (InvalidOperation, ValueError):
            raise ValidationError("Budget must be a non-negative number")
        if not value.is_finite() or value < 0:
            raise ValidationError("Budget must be a non-negative number")

        value = min(value, MAX_BUDGET).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
        user = self._user(user_id)
        user.default_monthly_budget = value
        self.db.commit()
        return value
