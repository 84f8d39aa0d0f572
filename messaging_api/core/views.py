# messaging_api/core/views.py
"""Response views assembled by the messaging services.

Every datetime is serialized as ISO-8601 UTC.
"""

from __future__ import annotations

import enum
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, field_serializer

from messaging_api.core._datetime_serializer import serialize_dt
from messaging_api.infrastructure.database.models.message_model import MessageType


class MessageStatus(str, enum.Enum):
    SENT = "sent"
    DELIVERED = "delivered"
    READ = "read"


class UserSummaryView(BaseModel):
    id: int
    username: str
    display_name: str
    avatar_url: Optional[str] = None
    role: str
    is_online: bool = False
    last_seen_at: Optional[datetime] = None

    @field_serializer("last_seen_at")
    def serialize_last_seen_at(self, value: datetime | None):
        return serialize_dt(value)

    @classmethod
    def unknown(cls, user_id: int) -> "UserSummaryView":
        return cls(id=user_id, username="unknown", display_name="Unknown user", role="unknown")


class ProjectSummaryView(BaseModel):
    id: int
    title: str
    description: Optional[str] = None


class AttachmentView(BaseModel):
    url: str
    name: str
    mime_type: str
    size: int
    is_image: bool


class ReactionGroupView(BaseModel):
    emoji: str
    users: List[UserSummaryView] = []
    count: int = 0
    has_current_user_reacted: bool = False


class ReplyPreviewView(BaseModel):
    id: int
    sender_id: int
    sender: UserSummaryView
    content: str
    message_type: MessageType
    sent_at: datetime
    is_deleted: bool
    is_edited: bool

    @field_serializer("sent_at")
    def serialize_sent_at(self, value: datetime):
        return serialize_dt(value)


class MessageView(BaseModel):
    id: int
    conversation_id: int
    sender_id: int
    sender: UserSummaryView
    content: str
    message_type: MessageType
    attachment: Optional[AttachmentView] = None

    sent_at: datetime
    edited_at: Optional[datetime] = None
    read_at: Optional[datetime] = None

    is_edited: bool = False
    is_deleted: bool = False
    is_system: bool = False
    is_read: bool = False

    reply_to_message_id: Optional[int] = None
    reply_to_message: Optional[ReplyPreviewView] = None

    reactions: List[ReactionGroupView] = []

    is_sent_by_current_user: bool = False
    status: MessageStatus = MessageStatus.SENT

    @field_serializer("sent_at", "edited_at", "read_at")
    def serialize_dates(self, value: datetime | None):
        return serialize_dt(value)


class ParticipantStatusView(BaseModel):
    last_read_at: Optional[datetime] = None
    last_seen_at: Optional[datetime] = None
    is_muted: bool = False
    is_archived: bool = False
    is_pinned: bool = False

    @field_serializer("last_read_at", "last_seen_at")
    def serialize_dates(self, value: datetime | None):
        return serialize_dt(value)


class ConversationView(BaseModel):
    id: int
    participant_ids: List[int]
    freelancer_id: int
    client_id: int
    project_id: Optional[int] = None
    subject: Optional[str] = None

    created_at: datetime
    updated_at: datetime
    last_message_at: Optional[datetime] = None

    is_active: bool = True
    is_archived: bool = False
    is_pinned: bool = False
    is_muted: bool = False

    freelancer: UserSummaryView
    client: UserSummaryView
    other_participant: UserSummaryView
    project: Optional[ProjectSummaryView] = None
    last_message: Optional[MessageView] = None
    unread_count: int = 0
    current_user_status: ParticipantStatusView

    @field_serializer("created_at", "updated_at", "last_message_at")
    def serialize_dates(self, value: datetime | None):
        return serialize_dt(value)


class ConversationSummaryView(BaseModel):
    id: int
    other_participant: UserSummaryView
    project: Optional[ProjectSummaryView] = None
    subject: Optional[str] = None
    last_message: Optional[MessageView] = None
    unread_count: int = 0
    last_activity: Optional[datetime] = None
    is_pinned: bool = False
    is_muted: bool = False
    is_archived: bool = False

    @field_serializer("last_activity")
    def serialize_last_activity(self, value: datetime | None):
        return serialize_dt(value)


class MessagesPageView(BaseModel):
    messages: List[MessageView] = []
    total_count: int
    page: int
    page_size: int
    # newer page (page - 1) exists
    has_next_page: bool
    # older messages exist beyond this page
    has_previous_page: bool
    conversation: ConversationView


class MessageStatsView(BaseModel):
    total_conversations: int = 0
    active_conversations: int = 0
    unread_conversations: int = 0
    total_messages: int = 0
    unread_messages: int = 0
    last_activity: Optional[datetime] = None
    recent_conversations: List[ConversationSummaryView] = []

    @field_serializer("last_activity")
    def serialize_last_activity(self, value: datetime | None):
        return serialize_dt(value)
