# messaging_api/repositories/message_reaction_repository.py
from sqlalchemy import select
from sqlalchemy.orm import Session

from messaging_api.core.base_repository import BaseRepository
from messaging_api.infrastructure.database.models.message_reaction_model import MessageReactionModel


class MessageReactionRepository(BaseRepository[MessageReactionModel]):
    def __init__(self, session: Session) -> None:
        super().__init__(session)

    def get(self, *, message_id: int, user_id: int, emoji: str) -> MessageReactionModel | None:
        stmt = select(MessageReactionModel).where(
            MessageReactionModel.message_id == message_id,
            MessageReactionModel.user_id == user_id,
            MessageReactionModel.emoji == emoji,
        )
        return self._session.execute(stmt).scalar_one_or_none()

    def add(self, model: MessageReactionModel) -> MessageReactionModel:
        self._session.add(model)
        self._session.flush()
        return model

    def delete(self, model: MessageReactionModel) -> None:
        self._session.delete(model)
        self._session.flush()

    def list_by_message_ids(self, message_ids: list[int]) -> dict[int, list[MessageReactionModel]]:
        if not message_ids:
            return {}

        stmt = (
            select(MessageReactionModel)
            .where(MessageReactionModel.message_id.in_(message_ids))
            .order_by(MessageReactionModel.created_at.asc(), MessageReactionModel.id.asc())
        )
        rows = list(self._session.execute(stmt).scalars().all())

        grouped: dict[int, list[MessageReactionModel]] = {}
        for r in rows:
            grouped.setdefault(r.message_id, []).append(r)
        return grouped
