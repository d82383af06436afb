"""Persistence layer for user data."""

from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy.orm import Session

from jeenora_api.domain.entities import User
from jeenora_api.infrastructure.models import UserModel
from jeenora_api.utils import from_storage_datetime


class UserRepository:
    """Provide lookups and creation for user entities."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, user_id: int) -> User | None:
        model = self.session.get(UserModel, user_id)
        return self._to_entity(model) if model else None

    def get_by_email(self, email: str) -> User | None:
        model = (
            self.session.query(UserModel)
            .filter(UserModel.email == email)
            .one_or_none()
        )
        return self._to_entity(model) if model else None

    def list_active_ids(self) -> list[int]:
        query = (
            self.session.query(UserModel.id)
            .filter(UserModel.is_active.is_(True))
            .order_by(UserModel.id)
        )
        return [row.id for row in query.all()]

    def filter_existing_ids(self, user_ids: Iterable[int]) -> list[int]:
        """Return the subset of ``user_ids`` that exist, preserving input order."""

        requested = list(dict.fromkeys(user_ids))
        if not requested:
            return []
        rows = self.session.query(UserModel.id).filter(UserModel.id.in_(requested)).all()
        existing = {row.id for row in rows}
        return [user_id for user_id in requested if user_id in existing]

    def create(self, user: User) -> User:
        model = UserModel(
            name=user.name,
            email=user.email,
            phone=user.phone,
            role=user.role,
            is_active=user.is_active,
        )
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    @staticmethod
    def _to_entity(model: UserModel) -> User:
        return User(
            id=model.id,
            name=model.name,
            email=model.email,
            phone=model.phone,
            role=model.role,
            is_active=model.is_active,
            created_at=from_storage_datetime(model.created_at),
        )


__all__ = ["UserRepository"]
