"""Persistence helpers for notification entities."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Any

from sqlalchemy import String, case, cast, func
from sqlalchemy.orm import Query, Session

from jeenora_api.domain.entities import Notification, SentStatus
from jeenora_api.infrastructure.models import NotificationModel
from jeenora_api.utils import (
    from_storage_datetime,
    now_in_app_timezone,
    to_storage_datetime,
)


class NotificationRepository:
    """Provide CRUD operations for :class:`Notification` objects."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, notification_id: int) -> Notification | None:
        model = self.session.get(NotificationModel, notification_id)
        return self._to_entity(model) if model else None

    def create(self, notification: Notification) -> Notification:
        model = NotificationModel()
        self._apply_entity_to_model(model, notification)
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def update_sent_status(self, notification_id: int, sent_status: SentStatus) -> Notification:
        model = self.session.get(NotificationModel, notification_id)
        if model is None:
            msg = f"Notification with id {notification_id} not found"
            raise ValueError(msg)
        model.sent_dashboard = sent_status.dashboard
        model.sent_email = sent_status.email
        model.sent_whatsapp = sent_status.whatsapp
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def list_for_user(
        self,
        user_id: int,
        *,
        page: int = 1,
        limit: int = 10,
        category: str | None = None,
        unread_only: bool = False,
    ) -> tuple[Sequence[Notification], int]:
        query = self.session.query(NotificationModel).filter(
            NotificationModel.user_id == user_id
        )
        if category and category != "all":
            query = query.filter(NotificationModel.category == category)
        if unread_only:
            query = query.filter(NotificationModel.is_read.is_(False))
        return self._paginate(query, page=page, limit=limit)

    def list_all(
        self,
        *,
        page: int = 1,
        limit: int = 20,
        user_id: int | None = None,
        type: str | None = None,
        category: str | None = None,
        channel: str | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> tuple[Sequence[Notification], int]:
        query = self._filtered_query(
            user_id=user_id,
            type=type,
            category=category,
            channel=channel,
            start_date=start_date,
            end_date=end_date,
        )
        return self._paginate(query, page=page, limit=limit)

    def stats_by_type(self, **filters: Any) -> list[dict[str, Any]]:
        query = self._filtered_query(**filters)
        rows = (
            query.with_entities(NotificationModel.type, func.count(NotificationModel.id))
            .group_by(NotificationModel.type)
            .all()
        )
        return [{"type": row[0], "count": row[1]} for row in rows]

    def stats_by_category(self, user_id: int) -> list[dict[str, Any]]:
        unread = func.sum(case((NotificationModel.is_read.is_(False), 1), else_=0))
        rows = (
            self.session.query(
                NotificationModel.category,
                func.count(NotificationModel.id),
                unread,
            )
            .filter(NotificationModel.user_id == user_id)
            .group_by(NotificationModel.category)
            .all()
        )
        return [
            {"category": row[0], "count": row[1], "unread": int(row[2] or 0)}
            for row in rows
        ]

    def count_for_user(self, user_id: int) -> int:
        return (
            self.session.query(func.count(NotificationModel.id))
            .filter(NotificationModel.user_id == user_id)
            .scalar()
        ) or 0

    def count_unread(self, user_id: int) -> int:
        return (
            self.session.query(func.count(NotificationModel.id))
            .filter(NotificationModel.user_id == user_id)
            .filter(NotificationModel.is_read.is_(False))
            .scalar()
        ) or 0

    def mark_as_read(self, notification_id: int, *, user_id: int) -> bool:
        updated = (
            self.session.query(NotificationModel)
            .filter(
                NotificationModel.id == notification_id,
                NotificationModel.user_id == user_id,
            )
            .update({NotificationModel.is_read: True}, synchronize_session=False)
        )
        self.session.commit()
        return bool(updated)

    def mark_all_as_read(self, user_id: int) -> int:
        updated = (
            self.session.query(NotificationModel)
            .filter(
                NotificationModel.user_id == user_id,
                NotificationModel.is_read.is_(False),
            )
            .update({NotificationModel.is_read: True}, synchronize_session=False)
        )
        self.session.commit()
        return updated

    def delete_for_user(self, notification_id: int, *, user_id: int) -> bool:
        deleted = (
            self.session.query(NotificationModel)
            .filter(
                NotificationModel.id == notification_id,
                NotificationModel.user_id == user_id,
            )
            .delete(synchronize_session=False)
        )
        self.session.commit()
        return bool(deleted)

    def delete(self, notification_id: int) -> bool:
        deleted = (
            self.session.query(NotificationModel)
            .filter(NotificationModel.id == notification_id)
            .delete(synchronize_session=False)
        )
        self.session.commit()
        return bool(deleted)

    def purge_expired(self, now: datetime | None = None) -> int:
        cutoff = to_storage_datetime(now or now_in_app_timezone())
        deleted = (
            self.session.query(NotificationModel)
            .filter(NotificationModel.expires_at <= cutoff)
            .delete(synchronize_session=False)
        )
        self.session.commit()
        return deleted

    def _filtered_query(
        self,
        *,
        user_id: int | None = None,
        type: str | None = None,
        category: str | None = None,
        channel: str | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> Query:
        query = self.session.query(NotificationModel)
        if user_id is not None:
            query = query.filter(NotificationModel.user_id == user_id)
        if type:
            query = query.filter(NotificationModel.type == type)
        if category:
            query = query.filter(NotificationModel.category == category)
        if channel:
            # channels is a JSON array; match the quoted member in its text form
            query = query.filter(
                cast(NotificationModel.channels, String).like(f'%"{channel}"%')
            )
        if start_date is not None:
            query = query.filter(
                NotificationModel.created_at >= to_storage_datetime(start_date)
            )
        if end_date is not None:
            query = query.filter(
                NotificationModel.created_at <= to_storage_datetime(end_date)
            )
        return query

    def _paginate(
        self, query: Query, *, page: int, limit: int
    ) -> tuple[Sequence[Notification], int]:
        total = query.order_by(None).count()
        page = max(page, 1)
        models = (
            query.order_by(
                NotificationModel.created_at.desc(), NotificationModel.id.desc()
            )
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return [self._to_entity(model) for model in models], total

    @staticmethod
    def _apply_entity_to_model(model: NotificationModel, notification: Notification) -> None:
        created_at = notification.created_at or now_in_app_timezone()
        model.user_id = notification.user_id
        model.title = notification.title
        model.message = notification.message
        model.type = notification.type
        model.category = notification.category
        model.link = notification.link
        model.channels = list(notification.channels)
        model.meta = dict(notification.meta or {})
        model.is_read = notification.is_read
        model.sent_dashboard = notification.sent_status.dashboard
        model.sent_email = notification.sent_status.email
        model.sent_whatsapp = notification.sent_status.whatsapp
        model.scheduled_at = to_storage_datetime(notification.scheduled_at)
        model.created_at = to_storage_datetime(created_at)
        model.expires_at = to_storage_datetime(notification.expires_at)

    @staticmethod
    def _to_entity(model: NotificationModel) -> Notification:
        return Notification(
            id=model.id,
            user_id=model.user_id,
            title=model.title,
            message=model.message,
            type=model.type,
            category=model.category,
            link=model.link,
            channels=list(model.channels or []),
            meta=dict(model.meta or {}),
            is_read=model.is_read,
            sent_status=SentStatus(
                dashboard=model.sent_dashboard,
                email=model.sent_email,
                whatsapp=model.sent_whatsapp,
            ),
            scheduled_at=from_storage_datetime(model.scheduled_at),
            created_at=from_storage_datetime(model.created_at),
            expires_at=from_storage_datetime(model.expires_at),
        )


__all__ = ["NotificationRepository"]
