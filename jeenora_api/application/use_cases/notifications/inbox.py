"""Use cases for reading and maintaining notification inboxes."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session

from jeenora_api.infrastructure.repositories import NotificationRepository
from jeenora_api.utils import now_in_app_timezone

logger = logging.getLogger(__name__)


def _pagination(page: int, limit: int, total: int) -> dict[str, int]:
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": (total + limit - 1) // limit if limit else 0,
    }


def list_user_notifications(
    session: Session,
    *,
    user_id: int,
    page: int = 1,
    limit: int = 10,
    category: str | None = None,
    unread_only: bool = False,
) -> dict[str, Any]:
    """Return a page of the user's notifications with their unread count."""

    repository = NotificationRepository(session)
    items, total = repository.list_for_user(
        user_id, page=page, limit=limit, category=category, unread_only=unread_only
    )
    return {
        "items": list(items),
        "unread_count": repository.count_unread(user_id),
        "pagination": _pagination(page, limit, total),
    }


def get_notification_stats(session: Session, *, user_id: int) -> dict[str, Any]:
    repository = NotificationRepository(session)
    return {
        "total": repository.count_for_user(user_id),
        "unread": repository.count_unread(user_id),
        "by_category": repository.stats_by_category(user_id),
    }


def mark_notification_read(session: Session, *, user_id: int, notification_id: int) -> bool:
    return NotificationRepository(session).mark_as_read(notification_id, user_id=user_id)


def mark_all_notifications_read(session: Session, *, user_id: int) -> int:
    return NotificationRepository(session).mark_all_as_read(user_id)


def delete_user_notification(session: Session, *, user_id: int, notification_id: int) -> bool:
    return NotificationRepository(session).delete_for_user(notification_id, user_id=user_id)


def list_all_notifications(
    session: Session,
    *,
    page: int = 1,
    limit: int = 20,
    user_id: int | None = None,
    type: str | None = None,
    category: str | None = None,
    channel: str | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
) -> dict[str, Any]:
    """Admin listing across every user, with per-type counts for the same filters."""

    filters = {
        "user_id": user_id,
        "type": type,
        "category": category,
        "channel": channel,
        "start_date": start_date,
        "end_date": end_date,
    }
    repository = NotificationRepository(session)
    items, total = repository.list_all(page=page, limit=limit, **filters)
    return {
        "items": list(items),
        "stats": repository.stats_by_type(**filters),
        "pagination": _pagination(page, limit, total),
    }


def delete_notification(session: Session, *, notification_id: int) -> bool:
    return NotificationRepository(session).delete(notification_id)


def purge_expired_notifications(session: Session, *, now: datetime | None = None) -> int:
    """Delete notifications whose expiry time has passed."""

    deleted = NotificationRepository(session).purge_expired(now or now_in_app_timezone())
    if deleted:
        logger.info("Purged %s expired notifications", deleted)
    return deleted


__all__ = [
    "delete_notification",
    "delete_user_notification",
    "get_notification_stats",
    "list_all_notifications",
    "list_user_notifications",
    "mark_all_notifications_read",
    "mark_notification_read",
    "purge_expired_notifications",
]
