"""
Budget API endpoints (monthly budget, monthly reports)
"""
from datetime import datetime
from decimal import Decimal

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from suba.api.deps import get_db, get_current_user
from suba.application.budget import BudgetService
from suba.application.budget_report import BudgetReportService
from suba.infrastructure.db.models import User


router = APIRouter(prefix="/api/budget", tags=["budget"])


class BudgetResponse(BaseModel):
    budget: float
    currency: str


class UpdateBudgetRequest(BaseModel):
    budget: Decimal | None = None


class UpdateBudgetResponse(BaseModel):
    message: str
    budget: float


class GenerateReportRequest(BaseModel):
    month: str | None = None  # YYYY-MM


class BudgetReportResponse(BaseModel):
    id: int
    report_month: str
    total_spent: float
    recurring_services: int
    new_subscriptions: int
    canceled_subscriptions: int
    most_expensive_service: str | None = None
    category_breakdown: dict[str, float] | None = None
    created_at: datetime | None = None


@router.get("/", response_model=BudgetResponse)
def get_budget(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return BudgetService(db).get(user.id)


@router.put("/", response_model=UpdateBudgetResponse)
def update_budget(
    req: UpdateBudgetRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    value = BudgetService(db).update(user.id, req.budget)
    return {"message": "Budget updated successfully", "budget": float(value)}


@router.get("/reports", response_model=list[BudgetReportResponse])
def list_reports(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Latest 12 monthly reports"""
    return BudgetReportService(db).list(user.id)


@router.post("/reports/generate", response_model=BudgetReportResponse)
def generate_report(
    req: GenerateReportRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return BudgetReportService(db).generate(user.id, req.month)
