"""
Authentication routes (register, login, me)
"""
from fastapi import APIRouter, Depends, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from suba.api.deps import get_db, get_app_settings, get_current_user
from suba.application.users import AuthenticateUserUseCase, RegisterUserUseCase, public_user
from suba.auth import create_access_token
from suba.config import Settings
from suba.infrastructure.db.models import User


router = APIRouter(prefix="/api/auth", tags=["auth"])


# === Request/Response models ===

class RegisterRequest(BaseModel):
    full_name: str | None = None
    email: str | None = None
    password: str | None = None


class LoginRequest(BaseModel):
    email: str | None = None
    password: str | None = None


class PublicUser(BaseModel):
    id: int
    full_name: str
    email: str
    phone_number: str | None = None
    country: str | None = None
    avatar_url: str | None = None
    default_currency: str
    prefers_dark_mode: bool


class TokenResponse(BaseModel):
    message: str
    token: str
    user: PublicUser


# === Endpoints ===

@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
def register(
    req: RegisterRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    user = RegisterUserUseCase(db).execute(
        full_name=req.full_name,
        email=req.email,
        password=req.password,
        default_currency=settings.DEFAULT_CURRENCY,
    )
    return {
        "message": "User registered successfully.",
        "token": create_access_token(settings, user.id, user.email),
        "user": public_user(user),
    }


@router.post("/login", response_model=TokenResponse)
def login(
    req: LoginRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    user = AuthenticateUserUseCase(db).execute(email=req.email, password=req.password)
    return {
        "message": "Login successful.",
        "token": create_access_token(settings, user.id, user.email),
        "user": public_user(user),
    }


@router.get("/me", response_model=PublicUser)
def me(user: User = Depends(get_current_user)):
    """Current user behind the bearer token"""
    return public_user(user)
