"""
Notification API endpoints
"""
from datetime import datetime

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, ConfigDict
from sqlalchemy.orm import Session

from suba.api.deps import get_db, get_current_user
from suba.application.notifications import NotificationService
from suba.infrastructure.db.models import User


router = APIRouter(prefix="/api/notifications", tags=["notifications"])


class NotificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    type: str
    title: str
    message: str
    seen: bool
    created_at: datetime | None = None


class CreateNotificationRequest(BaseModel):
    type: str | None = None
    title: str | None = None
    message: str | None = None


class CreatedResponse(BaseModel):
    message: str
    id: int


class MarkAllSeenResponse(BaseModel):
    message: str
    updated: int


class MessageResponse(BaseModel):
    message: str


@router.get("/", response_model=list[NotificationResponse])
def list_notifications(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Latest 50"""
    return NotificationService(db).list(user.id)


@router.post("/", response_model=CreatedResponse, status_code=status.HTTP_201_CREATED)
def create_notification(
    req: CreateNotificationRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    notif_id = NotificationService(db).create(user.id, req.type, req.title, req.message)
    return {"message": "Notification created", "id": notif_id}


@router.patch("/mark-all-seen", response_model=MarkAllSeenResponse)
def mark_all_seen(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    updated = NotificationService(db).mark_all_seen(user.id)
    return {"message": "All notifications marked as seen", "updated": updated}


@router.patch("/{notification_id}/seen", response_model=MessageResponse)
def mark_seen(
    notification_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    NotificationService(db).mark_seen(notification_id, user.id)
    return {"message": "Notification marked as seen"}
