# messaging_api/repositories/conversation_participant_repository.py

from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from messaging_api.core.base_repository import BaseRepository
from messaging_api.infrastructure.database.models.conversation_participant_model import ConversationParticipantModel


class ConversationParticipantRepository(BaseRepository[ConversationParticipantModel]):
    def __init__(self, session: Session) -> None:
        super().__init__(session)

    def get(self, *, conversation_id: int, user_id: int) -> ConversationParticipantModel | None:
        stmt = (
            select(ConversationParticipantModel)
            .where(
                ConversationParticipantModel.conversation_id == conversation_id,
                ConversationParticipantModel.user_id == user_id,
            )
        )
        return self._session.execute(stmt).scalars().first()

    def get_many_for_user(self, *, user_id: int, conversation_ids: list[int]) -> dict[int, ConversationParticipantModel]:
        if not conversation_ids:
            return {}

        stmt = select(ConversationParticipantModel).where(
            ConversationParticipantModel.user_id == user_id,
            ConversationParticipantModel.conversation_id.in_(conversation_ids),
        )
        rows = self._session.execute(stmt).scalars().all()
        return {p.conversation_id: p for p in rows}

    def add_many(self, participants: list[ConversationParticipantModel]) -> None:
        self._session.add_all(participants)
        self._session.flush()

    def set_last_read(self, *, conversation_id: int, user_id: int, at: datetime) -> None:
        stmt = (
            update(ConversationParticipantModel)
            .where(
                ConversationParticipantModel.conversation_id == conversation_id,
                ConversationParticipantModel.user_id == user_id,
            )
            .values(last_read_at=at)
        )
        self._session.execute(stmt)

    def set_last_seen(self, *, conversation_id: int, user_id: int, at: datetime) -> None:
        stmt = (
            update(ConversationParticipantModel)
            .where(
                ConversationParticipantModel.conversation_id == conversation_id,
                ConversationParticipantModel.user_id == user_id,
            )
            .values(last_seen_at=at)
        )
        self._session.execute(stmt)

    def update_settings(
        self,
        *,
        conversation_id: int,
        user_id: int,
        is_muted: bool,
        is_archived: bool,
        is_pinned: bool,
    ) -> bool:
        """Full overwrite of the three flags; returns False when the row does not exist."""
        stmt = (
            update(ConversationParticipantModel)
            .where(
                ConversationParticipantModel.conversation_id == conversation_id,
                ConversationParticipantModel.user_id == user_id,
            )
            .values(is_muted=is_muted, is_archived=is_archived, is_pinned=is_pinned)
        )
        res = self._session.execute(stmt)
        return (res.rowcount or 0) > 0
