"""
User use cases: registration, login, profile, avatar, account deletion.
"""
import logging
import os
import secrets
import time

from sqlalchemy.orm import Session

from suba.auth import hash_password, verify_password, get_user_by_email
from suba.application.errors import ValidationError, NotFoundError, require_fields
from suba.infrastructure.db.models import (
    User, Subscription, Payment, SharedPlan, SharedPlanParticipant,
    AiInsight, BudgetReport, Notification,
)

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ("full_name", "phone_number", "country", "default_currency", "prefers_dark_mode")


def public_user(user: User) -> dict:
    """User fields safe to send to the client."""
    return {
        "id": user.id,
        "full_name": user.full_name,
        "email": user.email,
        "phone_number": user.phone_number,
        "country": user.country,
        "avatar_url": user.avatar_url,
        "default_currency": user.default_currency or "NGN",
        "prefers_dark_mode": bool(user.prefers_dark_mode),
    }


class RegisterUserUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, full_name: str | None, email: str | None, password: str | None,
                default_currency: str = "NGN") -> User:
        require_fields(
            {"full_name": full_name, "email": email, "password": password},
            ["full_name", "email", "password"],
            message="All fields are required.",
        )
        email = email.strip().lower()
        if get_user_by_email(self.db, email):
            raise ValidationError("User already exists.")

        user = User(
            full_name=full_name.strip(),
            email=email,
            password_hash=hash_password(password),
            default_currency=default_currency,
        )
        self.db.add(user)
        self.db.flush()
        self.db.commit()
        logger.info("Registered user id=%d", user.id)
        return user


class AuthenticateUserUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, email: str | None, password: str | None) -> User:
        require_fields({"email": email, "password": password}, ["email", "password"])
        user = get_user_by_email(self.db, email.strip().lower())
        if not user or not verify_password(password, user.password_hash):
            raise ValidationError("Invalid credentials.")
        return user


class UpdateProfileUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, user_id: int, **changes) -> User:
        changes = {k: v for k, v in changes.items() if k in PROFILE_FIELDS and v is not None}
        if not changes:
            raise ValidationError("No valid fields to update")

        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotFoundError("User not found")

        if "full_name" in changes:
            name = changes["full_name"].strip()
            if not name:
                raise ValidationError("Full name cannot be empty")
            user.full_name = name
        if "default_currency" in changes:
            currency = changes["default_currency"].strip().upper()
            if len(currency) != 3:
                raise ValidationError("Currency must be a 3-letter code")
            user.default_currency = currency
        for field in ("phone_number", "country", "prefers_dark_mode"):
            if field in changes:
                setattr(user, field, changes[field])
        self.db.commit()
        return user


class UpdateAvatarUseCase:
    """
    Store an uploaded image under ``<upload_dir>/avatars`` and point the user at it.

    The file is removed again if the database update fails.
    """

    def __init__(self, db: Session, upload_dir: str, max_bytes: int):
        self.db = db
        self.upload_dir = upload_dir
        self.max_bytes = max_bytes

    def execute(self, user_id: int, filename: str | None, content_type: str | None, data: bytes) -> str:
        if not data:
            raise ValidationError("No file uploaded")
        if not (content_type or "").startswith("image/"):
            raise ValidationError("Only image files are allowed")
        if len(data) > self.max_bytes:
            raise ValidationError(
                f"File too large. Maximum size is {self.max_bytes // (1024 * 1024)}MB."
            )

        avatars_dir = os.path.join(self.upload_dir, "avatars")
        os.makedirs(avatars_dir, exist_ok=True)
        ext = os.path.splitext(filename or "")[1].lower()
        stored_name = f"avatar-{int(time.time() * 1000)}-{secrets.randbelow(10**9)}{ext}"
        path = os.path.join(avatars_dir, stored_name)
        with open(path, "wb") as fh:
            fh.write(data)

        avatar_url = f"/uploads/avatars/{stored_name}"
        try:
            user = self.db.query(User).filter(User.id == user_id).first()
            if not user:
                raise NotFoundError("User not found")
            user.avatar_url = avatar_url
            self.db.commit()
        except Exception:
            self.db.rollback()
            if os.path.exists(path):
                os.remove(path)
                logger.info("Deleted uploaded avatar %s after failed update", stored_name)
            raise
        return avatar_url


class DeleteAccountUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, user_id: int) -> None:
        """Remove the user and everything they own in one transaction."""
        try:
            owned_plan_ids = [
                pid for (pid,) in self.db.query(SharedPlan.id).filter(SharedPlan.user_id == user_id)
            ]
            if owned_plan_ids:
                self.db.query(SharedPlanParticipant).filter(
                    SharedPlanParticipant.plan_id.in_(owned_plan_ids)
                ).delete(synchronize_session=False)
                self.db.query(SharedPlan).filter(
                    SharedPlan.id.in_(owned_plan_ids)
                ).delete(synchronize_session=False)
            self.db.query(SharedPlanParticipant).filter(
                SharedPlanParticipant.user_id == user_id
            ).delete(synchronize_session=False)

            for model in (AiInsight, Notification, BudgetReport, Payment, Subscription):
                self.db.query(model).filter(model.user_id == user_id).delete(synchronize_session=False)

            deleted = self.db.query(User).filter(User.id == user_id).delete(synchronize_session=False)
            if not deleted:
                raise NotFoundError("User not found")
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info("Deleted account user_id=%d", user_id)
