# messaging_api/repositories/conversation_repository.py
from datetime import datetime

from sqlalchemy import and_, exists, func, or_, select
from sqlalchemy.orm import Session

from messaging_api.core.base_repository import BaseRepository
from messaging_api.infrastructure.database.models.conversation_model import ConversationModel
from messaging_api.infrastructure.database.models.conversation_participant_model import (
    ConversationParticipantModel,
)


def pair_key(user_a: int, user_b: int) -> tuple[int, int]:
    return (user_a, user_b) if user_a <= user_b else (user_b, user_a)


class ConversationRepository(BaseRepository[ConversationModel]):
    def __init__(self, session: Session) -> None:
        super().__init__(session)

    @staticmethod
    def member_filter(user_id: int):
        return or_(ConversationModel.user_low_id == user_id, ConversationModel.user_high_id == user_id)

    def _order_by_last_activity(self):
        # ORDER BY COALESCE(last_message_at, created_at) DESC
        return (
            func.coalesce(ConversationModel.last_message_at, ConversationModel.created_at).desc(),
            ConversationModel.id.desc(),
        )

    def get_by_id(self, conversation_id: int) -> ConversationModel | None:
        stmt = select(ConversationModel).where(ConversationModel.id == conversation_id)
        return self._session.execute(stmt).scalar_one_or_none()

    def get_for_member(self, *, conversation_id: int, user_id: int) -> ConversationModel | None:
        stmt = select(ConversationModel).where(
            ConversationModel.id == conversation_id,
            self.member_filter(user_id),
        )
        return self._session.execute(stmt).scalar_one_or_none()

    def find_by_pair(self, *, user_a: int, user_b: int, project_id: int | None) -> ConversationModel | None:
        low, high = pair_key(user_a, user_b)
        stmt = select(ConversationModel).where(
            ConversationModel.user_low_id == low,
            ConversationModel.user_high_id == high,
            ConversationModel.project_scope == (project_id or 0),
        )
        return self._session.execute(stmt).scalar_one_or_none()

    def list_for_user(self, *, user_id: int, include_archived: bool, limit: int | None = None) -> list[ConversationModel]:
        stmt = select(ConversationModel).where(self.member_filter(user_id))

        if not include_archived:
            archived = exists().where(
                ConversationParticipantModel.conversation_id == ConversationModel.id,
                ConversationParticipantModel.user_id == user_id,
                ConversationParticipantModel.is_archived.is_(True),
            )
            stmt = stmt.where(~archived)

        stmt = stmt.order_by(*self._order_by_last_activity())
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(self._session.execute(stmt).scalars().all())

    def count_for_user(self, *, user_id: int, exclude_archived: bool = False) -> int:
        stmt = select(func.count(ConversationModel.id)).where(self.member_filter(user_id))
        if exclude_archived:
            stmt = stmt.where(
                ~exists().where(
                    and_(
                        ConversationParticipantModel.conversation_id == ConversationModel.id,
                        ConversationParticipantModel.user_id == user_id,
                        ConversationParticipantModel.is_archived.is_(True),
                    )
                )
            )
        return int(self._session.execute(stmt).scalar_one())

    def add(self, model: ConversationModel) -> ConversationModel:
        self._session.add(model)
        self._session.flush()
        return model

    def touch_last_message(self, conv: ConversationModel, at: datetime) -> None:
        # set on the instance so views built from this session see the new values
        conv.last_message_at = at
        conv.updated_at = at
        self._session.flush()
