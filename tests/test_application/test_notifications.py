"""
Tests for NotificationService: create, list, seen flags, scoping.
"""
import pytest
from datetime import datetime

from suba.application.errors import NotFoundError, ValidationError
from suba.application.notifications import NotificationService
from suba.infrastructure.db.models import Notification


def test_create_and_list_newest_first(db_session, user):
    service = NotificationService(db_session)
    first = service.create(user.id, "payment_due", "DSTV due", "DSTV renews in 3 days")
    second = service.create(user.id, None, "Welcome", "Thanks for joining")

    items = service.list(user.id)
    assert [n.id for n in items] == [second, first]
    assert items[0].type == "general"
    assert all(n.seen is False for n in items)


def test_create_requires_title_and_message(db_session, user):
    with pytest.raises(ValidationError) as exc:
        NotificationService(db_session).create(user.id, "general", " ", None)
    assert exc.value.missing == ["title", "message"]


def test_list_limited_to_fifty(db_session, user):
    for i in range(55):
        db_session.add(Notification(
            user_id=user.id, title=f"n{i}", message="m", created_at=datetime(2026, 1, 1, 0, i),
        ))
    db_session.commit()
    items = NotificationService(db_session).list(user.id)
    assert len(items) == 50
    assert items[0].title == "n54"


def test_mark_seen_scoped_to_owner(db_session, user, other_user):
    service = NotificationService(db_session)
    notif_id = service.create(user.id, "general", "Hi", "There")

    with pytest.raises(NotFoundError):
        service.mark_seen(notif_id, other_user.id)

    service.mark_seen(notif_id, user.id)
    assert db_session.get(Notification, notif_id).seen is True


def test_mark_all_seen_counts_only_unseen(db_session, user, other_user):
    service = NotificationService(db_session)
    a = service.create(user.id, None, "A", "a")
    service.create(user.id, None, "B", "b")
    service.create(other_user.id, None, "C", "c")
    service.mark_seen(a, user.id)

    assert service.mark_all_seen(user.id) == 1
    assert service.mark_all_seen(user.id) == 0
    other = service.list(other_user.id)
    assert other[0].seen is False
