"""
Shared plan API endpoints
"""
from datetime import datetime
from decimal import Decimal

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from suba.api.deps import get_db, get_current_user
from suba.application.shared_plans import (
    CreateSharedPlanUseCase, DeleteSharedPlanUseCase, RespondToInvitationUseCase,
    SharedPlanReadService,
)
from suba.infrastructure.db.models import User


router = APIRouter(prefix="/api/shared-plans", tags=["shared-plans"])


# === Request/Response models ===

class CreateSharedPlanRequest(BaseModel):
    plan_name: str | None = None
    total_amount: Decimal | None = None
    split_type: str | None = None  # equal, custom, percentage
    max_participants: int | None = None
    participant_emails: list[str] = []


class ParticipantResponse(BaseModel):
    id: int
    plan_id: int
    user_id: int
    status: str
    split_amount: float
    user_name: str | None = None
    user_email: str | None = None
    avatar_url: str | None = None
    created_at: datetime | None = None


class SharedPlanResponse(BaseModel):
    id: int
    user_id: int
    plan_name: str
    total_amount: float
    split_type: str
    max_participants: int
    is_active: bool
    created_at: datetime | None = None
    owner_name: str | None = None
    owner_email: str | None = None
    participants: list[ParticipantResponse]


class CreateSharedPlanResponse(BaseModel):
    message: str
    plan: SharedPlanResponse


class MessageResponse(BaseModel):
    message: str


# === Endpoints ===

@router.get("/", response_model=list[SharedPlanResponse])
def list_shared_plans(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Plans the user owns or was invited to, newest first"""
    return SharedPlanReadService(db).list_for_user(user.id)


@router.get("/{plan_id}", response_model=SharedPlanResponse)
def get_shared_plan(
    plan_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return SharedPlanReadService(db).get_for_user(plan_id, user.id)


@router.post("/", response_model=CreateSharedPlanResponse, status_code=status.HTTP_201_CREATED)
def create_shared_plan(
    req: CreateSharedPlanRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    plan_id = CreateSharedPlanUseCase(db).execute(
        user_id=user.id,
        plan_name=req.plan_name,
        total_amount=req.total_amount,
        split_type=req.split_type,
        max_participants=req.max_participants,
        participant_emails=req.participant_emails,
    )
    return {
        "message": "Shared plan created successfully",
        "plan": SharedPlanReadService(db).get_for_user(plan_id, user.id),
    }


@router.patch("/participants/{participant_id}/accept", response_model=MessageResponse)
def accept_invitation(
    participant_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    RespondToInvitationUseCase(db).execute(participant_id, user.id, accept=True)
    return {"message": "Invitation accepted"}


@router.patch("/participants/{participant_id}/decline", response_model=MessageResponse)
def decline_invitation(
    participant_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    RespondToInvitationUseCase(db).execute(participant_id, user.id, accept=False)
    return {"message": "Invitation declined"}


@router.delete("/{plan_id}", response_model=MessageResponse)
def delete_shared_plan(
    plan_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Owner only"""
    DeleteSharedPlanUseCase(db).execute(plan_id, user.id)
    return {"message": "Shared plan deleted successfully"}
