# messaging_api/repositories/user_repository.py

from typing import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from messaging_api.core.base_repository import BaseRepository
from messaging_api.infrastructure.database.models.user_model import UserModel


class UserRepository(BaseRepository[UserModel]):
    def __init__(self, session: Session) -> None:
        super().__init__(session)

    def get_by_id(self, user_id: int) -> UserModel | None:
        stmt = select(UserModel).where(UserModel.id == user_id, UserModel.is_deleted.is_(False))
        return self._session.execute(stmt).scalar_one_or_none()

    def list_by_ids(self, user_ids: Iterable[int]) -> list[UserModel]:
        ids = sorted(set(user_ids))
        if not ids:
            return []
        stmt = select(UserModel).where(UserModel.id.in_(ids))
        return list(self._session.execute(stmt).scalars().all())

    def add(self, model: UserModel) -> UserModel:
        self._session.add(model)
        self._session.flush()
        return model
