"""
Analytics API endpoints (spending totals, categories, trends)
"""
from datetime import date

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from suba.api.deps import get_db, get_app_settings, get_current_user
from suba.application.analytics import AnalyticsService
from suba.config import Settings
from suba.infrastructure.db.models import User
from suba.utils.dates import local_today


router = APIRouter(prefix="/api/analytics", tags=["analytics"])


class SpendingResponse(BaseModel):
    total_spent: float
    total_subscriptions: int
    currency: str
    period: str
    mode: str


class CategoryItem(BaseModel):
    category: str
    total_amount: float
    subscription_count: int


class TrendItem(BaseModel):
    key: str
    label: str
    start_date: date
    total_amount: float


@router.get("/spending", response_model=SpendingResponse)
def spending(
    period: str | None = None,  # weekly, monthly, yearly
    mode: str | None = None,  # actual, expected
    currency: str | None = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    service = AnalyticsService(db)
    return service.spending(
        user.id,
        period=period,
        mode=mode,
        currency=service.resolve_currency(user.id, currency, settings.DEFAULT_CURRENCY),
        today=local_today(settings.TIMEZONE),
    )


@router.get("/categories", response_model=list[CategoryItem])
def categories(
    period: str | None = None,
    currency: str | None = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    service = AnalyticsService(db)
    return service.categories(
        user.id,
        period=period,
        currency=service.resolve_currency(user.id, currency, settings.DEFAULT_CURRENCY),
        today=local_today(settings.TIMEZONE),
    )


@router.get("/trends", response_model=list[TrendItem])
def trends(
    period: str | None = None,
    currency: str | None = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    service = AnalyticsService(db)
    return service.trends(
        user.id,
        period=period,
        currency=service.resolve_currency(user.id, currency, settings.DEFAULT_CURRENCY),
        today=local_today(settings.TIMEZONE),
    )
