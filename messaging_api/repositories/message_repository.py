# messaging_api/repositories/message_repository.py

from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from messaging_api.core.base_repository import BaseRepository
from messaging_api.infrastructure.database.models.conversation_model import ConversationModel
from messaging_api.infrastructure.database.models.message_model import (
    DELETED_MESSAGE_CONTENT,
    MessageModel,
    MessageType,
)
from messaging_api.repositories.conversation_repository import ConversationRepository


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class MessageRepository(BaseRepository[MessageModel]):
    def __init__(self, session: Session) -> None:
        super().__init__(session)

    def _unread_filter(self, user_id: int):
        return (MessageModel.sender_id != user_id, MessageModel.is_read.is_(False))

    def _user_messages_stmt(self, columns, user_id: int):
        return (
            select(*columns)
            .join(ConversationModel, ConversationModel.id == MessageModel.conversation_id)
            .where(ConversationRepository.member_filter(user_id))
        )

    def add(self, model: MessageModel) -> MessageModel:
        self._session.add(model)
        self._session.flush()
        return model

    def get_by_id(self, message_id: int) -> MessageModel | None:
        stmt = select(MessageModel).where(MessageModel.id == message_id)
        return self._session.execute(stmt).scalar_one_or_none()

    def get_owned(self, *, message_id: int, sender_id: int) -> MessageModel | None:
        stmt = select(MessageModel).where(MessageModel.id == message_id, MessageModel.sender_id == sender_id)
        return self._session.execute(stmt).scalar_one_or_none()

    def get_in_conversation(self, *, message_id: int, conversation_id: int) -> MessageModel | None:
        stmt = select(MessageModel).where(
            MessageModel.id == message_id,
            MessageModel.conversation_id == conversation_id,
        )
        return self._session.execute(stmt).scalar_one_or_none()

    def get_by_stored_name(self, *, conversation_id: int, stored_name: str) -> MessageModel | None:
        # attachment_url is "<public base>/<stored_name>"; the base may change between deployments
        stmt = (
            select(MessageModel)
            .where(
                MessageModel.conversation_id == conversation_id,
                MessageModel.attachment_url.endswith(f"/{stored_name}", autoescape=True),
            )
            .limit(1)
        )
        return self._session.execute(stmt).scalars().first()

    def get_many(self, message_ids: list[int]) -> dict[int, MessageModel]:
        if not message_ids:
            return {}
        stmt = select(MessageModel).where(MessageModel.id.in_(message_ids))
        return {m.id: m for m in self._session.execute(stmt).scalars().all()}

    def soft_delete(self, *, message_id: int, sender_id: int, at: datetime) -> bool:
        stmt = (
            update(MessageModel)
            .where(MessageModel.id == message_id, MessageModel.sender_id == sender_id)
            .values(
                is_deleted=True,
                deleted_at=func.coalesce(MessageModel.deleted_at, at),
                content=DELETED_MESSAGE_CONTENT,
            )
            .execution_options(synchronize_session="fetch")
        )
        res = self._session.execute(stmt)
        return (res.rowcount or 0) > 0

    def count_in_conversation(self, conversation_id: int) -> int:
        stmt = select(func.count(MessageModel.id)).where(MessageModel.conversation_id == conversation_id)
        return int(self._session.execute(stmt).scalar_one())

    def list_page_newest_first(self, *, conversation_id: int, limit: int, offset: int) -> list[MessageModel]:
        stmt = (
            select(MessageModel)
            .where(MessageModel.conversation_id == conversation_id)
            .order_by(MessageModel.sent_at.desc(), MessageModel.id.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(self._session.execute(stmt).scalars().all())

    def latest_by_conversation(self, conversation_ids: list[int]) -> dict[int, MessageModel]:
        if not conversation_ids:
            return {}

        rank = (
            func.row_number()
            .over(
                partition_by=MessageModel.conversation_id,
                order_by=(MessageModel.sent_at.desc(), MessageModel.id.desc()),
            )
            .label("rn")
        )
        ranked = (
            select(MessageModel.id.label("message_id"), rank)
            .where(MessageModel.conversation_id.in_(conversation_ids))
            .subquery()
        )
        stmt = select(MessageModel).join(ranked, ranked.c.message_id == MessageModel.id).where(ranked.c.rn == 1)
        return {m.conversation_id: m for m in self._session.execute(stmt).scalars().all()}

    def unread_count_by_conversation(self, *, user_id: int, conversation_ids: list[int]) -> dict[int, int]:
        """
        Unread = sent by someone else and not yet flagged read.

        {conversation_id: unread_count}
        """
        if not conversation_ids:
            return {}

        stmt = (
            select(MessageModel.conversation_id, func.count(MessageModel.id).label("unread_count"))
            .where(MessageModel.conversation_id.in_(conversation_ids), *self._unread_filter(user_id))
            .group_by(MessageModel.conversation_id)
        )
        rows = self._session.execute(stmt).all()
        return {row.conversation_id: int(row.unread_count) for row in rows}

    def mark_read(
        self,
        *,
        conversation_id: int,
        reader_id: int,
        at: datetime,
        up_to_message_id: int | None = None,
    ) -> int:
        stmt = update(MessageModel).where(
            MessageModel.conversation_id == conversation_id,
            *self._unread_filter(reader_id),
        )
        if up_to_message_id is not None:
            stmt = stmt.where(MessageModel.id <= up_to_message_id)

        stmt = stmt.values(is_read=True, read_at=at).execution_options(synchronize_session="fetch")
        res = self._session.execute(stmt)
        return res.rowcount or 0

    def search(
        self,
        *,
        user_id: int,
        query: str | None = None,
        conversation_id: int | None = None,
        message_type: MessageType | None = None,
        from_date: datetime | None = None,
        to_date: datetime | None = None,
        limit: int,
        offset: int,
    ) -> list[MessageModel]:
        # membership first, then the optional filters
        stmt = self._user_messages_stmt([MessageModel], user_id).where(MessageModel.is_deleted.is_(False))

        if query:
            stmt = stmt.where(MessageModel.content.ilike(f"%{_escape_like(query)}%", escape="\\"))
        if conversation_id is not None:
            stmt = stmt.where(MessageModel.conversation_id == conversation_id)
        if message_type is not None:
            stmt = stmt.where(MessageModel.message_type == message_type)
        if from_date is not None:
            stmt = stmt.where(MessageModel.sent_at >= from_date)
        if to_date is not None:
            stmt = stmt.where(MessageModel.sent_at <= to_date)

        stmt = stmt.order_by(MessageModel.sent_at.desc(), MessageModel.id.desc()).limit(limit).offset(offset)
        return list(self._session.execute(stmt).scalars().all())

    def count_for_user(self, user_id: int) -> int:
        stmt = self._user_messages_stmt([func.count(MessageModel.id)], user_id)
        return int(self._session.execute(stmt).scalar_one())

    def count_unread_for_user(self, user_id: int) -> int:
        stmt = self._user_messages_stmt([func.count(MessageModel.id)], user_id).where(*self._unread_filter(user_id))
        return int(self._session.execute(stmt).scalar_one())

    def count_conversations_with_unread(self, user_id: int) -> int:
        stmt = self._user_messages_stmt(
            [func.count(func.distinct(MessageModel.conversation_id))], user_id
        ).where(*self._unread_filter(user_id))
        return int(self._session.execute(stmt).scalar_one())

    def last_activity_for_user(self, user_id: int) -> datetime | None:
        stmt = self._user_messages_stmt([func.max(MessageModel.sent_at)], user_id)
        return self._session.execute(stmt).scalar_one_or_none()
