# messaging_api/infrastructure/database/models/message_model.py

import enum
from datetime import datetime

from sqlalchemy import BigInteger, Boolean, DateTime, Enum, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from messaging_api.infrastructure.database.base_model import BaseModel

DELETED_MESSAGE_CONTENT = "This message was deleted"


class MessageType(str, enum.Enum):
    TEXT = "text"
    IMAGE = "image"
    FILE = "file"
    SYSTEM = "system"


class MessageModel(BaseModel):
    __tablename__ = "tbMessages"
    __table_args__ = (
        Index("ix_messages_conversation_sent", "conversation_id", "sent_at", "id"),
    )

    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True)

    conversation_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("tbConversations.id"), nullable=False
    )

    sender_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("tbUsers.id"), nullable=False, index=True
    )

    content: Mapped[str] = mapped_column(Text, nullable=False)

    message_type: Mapped[MessageType] = mapped_column(
        Enum(MessageType, name="message_type", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=MessageType.TEXT,
    )

    # set together or not at all
    attachment_url: Mapped[str] = mapped_column(String(500), nullable=True)
    attachment_name: Mapped[str] = mapped_column(String(255), nullable=True)
    attachment_mime_type: Mapped[str] = mapped_column(String(100), nullable=True)
    attachment_size: Mapped[int] = mapped_column(BigInteger, nullable=True)

    reply_to_message_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("tbMessages.id"), nullable=True
    )

    sent_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    edited_at: Mapped[datetime] = mapped_column(DateTime, nullable=True)
    deleted_at: Mapped[datetime] = mapped_column(DateTime, nullable=True)

    is_edited: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_system: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    read_at: Mapped[datetime] = mapped_column(DateTime, nullable=True)

    @property
    def has_attachment(self) -> bool:
        return bool(self.attachment_url)
