"""
User profile API endpoints (profile, avatar, account deletion)
"""
from fastapi import APIRouter, Depends, File, UploadFile
from pydantic import BaseModel
from sqlalchemy.orm import Session

from suba.api.deps import get_db, get_app_settings, get_current_user
from suba.api.v1.auth import PublicUser
from suba.application.users import (
    DeleteAccountUseCase, UpdateAvatarUseCase, UpdateProfileUseCase, public_user,
)
from suba.config import Settings
from suba.infrastructure.db.models import User


router = APIRouter(prefix="/api/user", tags=["user"])


class UpdateProfileRequest(BaseModel):
    full_name: str | None = None
    phone_number: str | None = None
    country: str | None = None
    default_currency: str | None = None
    prefers_dark_mode: bool | None = None


class ProfileResponse(BaseModel):
    message: str
    user: PublicUser


class AvatarResponse(BaseModel):
    message: str
    avatar_url: str


class MessageResponse(BaseModel):
    message: str


@router.get("/profile", response_model=PublicUser)
def get_profile(user: User = Depends(get_current_user)):
    return public_user(user)


@router.put("/profile", response_model=ProfileResponse)
def update_profile(
    req: UpdateProfileRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    updated = UpdateProfileUseCase(db).execute(user.id, **req.model_dump(exclude_none=True))
    return {"message": "Profile updated successfully", "user": public_user(updated)}


@router.post("/avatar", response_model=AvatarResponse)
async def upload_avatar(
    avatar: UploadFile | None = File(None),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    """Multipart upload, field name ``avatar``, images only"""
    data = await avatar.read() if avatar is not None else b""
    url = UpdateAvatarUseCase(db, settings.UPLOAD_DIR, settings.AVATAR_MAX_BYTES).execute(
        user_id=user.id,
        filename=avatar.filename if avatar is not None else None,
        content_type=avatar.content_type if avatar is not None else None,
        data=data,
    )
    return {"message": "Avatar uploaded successfully", "avatar_url": url}


@router.delete("/account", response_model=MessageResponse)
def delete_account(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    DeleteAccountUseCase(db).execute(user.id)
    return {"message": "Account deleted successfully"}
