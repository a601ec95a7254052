"""
In-app notifications: listing and seen flags.
"""
from sqlalchemy.orm import Session

from suba.application.errors import NotFoundError, require_fields
from suba.infrastructure.db.models import Notification


class NotificationService:
    def __init__(self, db: Session):
        self.db = db

    def list(self, user_id: int, limit: int = 50) -> list[Notification]:
        return (
            self.db.query(Notification)
            .filter(Notification.user_id == user_id)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .limit(limit)
            .all()
        )

    def create(self, user_id: int, type: str | None, title: str | None, message: str | None) -> int:
        require_fields({"title": title, "message": message}, ["title", "message"])
        notif = Notification(
            user_id=user_id,
            type=type or "general",
            title=title.strip(),
            message=message.strip(),
        )
        self.db.add(notif)
        self.db.flush()
        self.db.commit()
        return notif.id

    def mark_seen(self, notification_id: int, user_id: int) -> None:
        notif = self.db.query(Notification).filter(
            Notification.id == notification_id,
            Notification.user_id == user_id,
        ).first()
        if not notif:
            raise NotFoundError("Notification not found")
        notif.seen = True
        self.db.commit()

    def mark_all_seen(self, user_id: int) -> int:
        updated = (
            self.db.query(Notification)
            .filter(Notification.user_id == user_id, Notification.seen.is_(False))
            .update({Notification.seen: True}, synchronize_session=False)
        )
        self.db.commit()
        return updated
