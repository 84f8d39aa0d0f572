# messaging_api/api/schemas/message_schema.py
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from messaging_api.infrastructure.database.models.message_model import MessageType


class SendMessageRequest(BaseModel):
    conversation_id: int
    content: Optional[str] = None
    message_type: MessageType = MessageType.TEXT
    reply_to_message_id: Optional[int] = None


class EditMessageRequest(BaseModel):
    content: str = Field(min_length=1)


class AddReactionRequest(BaseModel):
    emoji: str = Field(min_length=1)


class SearchMessagesQuery(BaseModel):
    query: Optional[str] = None
    conversation_id: Optional[int] = None
    message_type: Optional[MessageType] = None
    from_date: Optional[datetime] = None
    to_date: Optional[datetime] = None
    page: int = 1
    page_size: int = 20

    @field_validator("from_date", "to_date")
    @classmethod
    def to_naive_utc(cls, v: Optional[datetime]):
        # stored timestamps are naive UTC
        if v is not None and v.tzinfo is not None:
            return v.astimezone(timezone.utc).replace(tzinfo=None)
        return v
