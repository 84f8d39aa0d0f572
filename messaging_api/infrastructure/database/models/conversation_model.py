# messaging_api/infrastructure/database/models/conversation_model.py

from datetime import datetime

from sqlalchemy import BigInteger, Boolean, DateTime, ForeignKey, Integer, String, UniqueConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column

from messaging_api.infrastructure.database.base_model import BaseModel


class ConversationModel(BaseModel):
    __tablename__ = "tbConversations"
    __table_args__ = (
        # one conversation per unordered pair and project scope
        UniqueConstraint("user_low_id", "user_high_id", "project_scope", name="uq_conversation_pair_scope"),
        Index("ix_conversations_user_high", "user_high_id"),
    )

    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True)

    # participants in ascending id order
    user_low_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("tbUsers.id"), nullable=False)
    user_high_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("tbUsers.id"), nullable=False)

    # display slots only
    freelancer_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("tbUsers.id"), nullable=False)
    client_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("tbUsers.id"), nullable=False)

    project_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("tbProjects.id"), nullable=True)
    # project_id or 0 for "no project"
    project_scope: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    subject: Mapped[str] = mapped_column(String(200), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    last_message_at: Mapped[datetime] = mapped_column(DateTime, nullable=True)

    # legacy conversation-level flags; per-user state lives on the participant row
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_archived: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_pinned: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_muted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    @property
    def participant_ids(self) -> tuple[int, int]:
        return (self.user_low_id, self.user_high_id)

    def has_participant(self, user_id: int) -> bool:
        return user_id in (self.user_low_id, self.user_high_id)

    def other_participant_id(self, user_id: int) -> int:
        return self.user_high_id if user_id == self.user_low_id else self.user_low_id
