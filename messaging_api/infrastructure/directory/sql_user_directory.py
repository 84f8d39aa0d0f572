# messaging_api/infrastructure/directory/sql_user_directory.py
from __future__ import annotations

from typing import Iterable

from messaging_api.core.interfaces.user_directory import UserDirectory, UserSummary
from messaging_api.infrastructure.database.models.user_model import UserModel
from messaging_api.repositories.user_repository import UserRepository


def _to_summary(u: UserModel) -> UserSummary:
    if u.first_name and u.last_name:
        display_name = f"{u.first_name} {u.last_name}"
    else:
        display_name = u.username

    return UserSummary(
        id=int(u.id),
        username=u.username,
        display_name=display_name,
        avatar_url=u.profile_image_url,
        role=(u.role or "").lower(),
        last_seen_at=u.last_login_at,
    )


class SqlUserDirectory(UserDirectory):
    def __init__(self, user_repository: UserRepository) -> None:
        self._repo = user_repository

    def get_summary(self, user_id: int) -> UserSummary | None:
        u = self._repo.get_by_id(user_id)
        return _to_summary(u) if u is not None else None

    def get_summaries(self, user_ids: Iterable[int]) -> dict[int, UserSummary]:
        # includes soft-deleted users so old messages keep their sender
        return {int(u.id): _to_summary(u) for u in self._repo.list_by_ids(user_ids)}
