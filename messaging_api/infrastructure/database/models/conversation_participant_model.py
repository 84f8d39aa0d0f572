# messaging_api/infrastructure/database/models/conversation_participant_model.py

from datetime import datetime

from sqlalchemy import BigInteger, Boolean, DateTime, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from messaging_api.infrastructure.database.base_model import BaseModel


class ConversationParticipantModel(BaseModel):
    __tablename__ = "tbConversationParticipants"
    __table_args__ = (
        UniqueConstraint("conversation_id", "user_id", name="uq_participant_conversation_user"),
    )

    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True)

    conversation_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("tbConversations.id"), nullable=False
    )

    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("tbUsers.id"), nullable=False, index=True
    )

    joined_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    last_read_at: Mapped[datetime] = mapped_column(DateTime, nullable=True)
    last_seen_at: Mapped[datetime] = mapped_column(DateTime, nullable=True)

    is_muted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_archived: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_pinned: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
