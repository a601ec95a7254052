"""
AI insight API endpoints
"""
from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from suba.api.deps import get_db, get_app_settings, get_current_user
from suba.application.insights import InsightService
from suba.config import Settings
from suba.infrastructure.db.models import User
from suba.infrastructure.llm.gemini import GeminiClient
from suba.utils.dates import local_today


router = APIRouter(prefix="/api/ai", tags=["ai"])


class InsightResponse(BaseModel):
    id: int
    type: str
    message: str
    affected_services: list[str]
    confidence_score: float | None = None
    resolved: bool
    generated_at: datetime | None = None


class MessageResponse(BaseModel):
    message: str


@router.get("/insights", response_model=list[InsightResponse])
def list_insights(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Unresolved insights, newest first"""
    return InsightService(db).list_unresolved(user.id)


@router.put("/insights/{insight_id}/resolve", response_model=MessageResponse)
def resolve_insight(
    insight_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    InsightService(db).resolve(insight_id, user.id)
    return {"message": "Insight resolved"}


@router.post("/insights/generate", response_model=list[InsightResponse])
def generate_insights(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    """
    Generate fresh insights and return the user's unresolved set.

    Works without a Gemini key: the heuristic rules fill in.
    """
    return InsightService(db).generate(
        user.id,
        client=GeminiClient.from_settings(settings),
        today=local_today(settings.TIMEZONE),
        default_currency=user.default_currency or settings.DEFAULT_CURRENCY,
    )
