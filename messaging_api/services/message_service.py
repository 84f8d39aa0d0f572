# messaging_api/services/message_service.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import BinaryIO

from messaging_api.core.clock import Clock, utcnow
from messaging_api.core.exceptions import (
    EditWindowExpiredError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from messaging_api.core.views import MessagesPageView, MessageView
from messaging_api.infrastructure.database.models.message_model import MessageModel, MessageType
from messaging_api.infrastructure.storage.file_storage import AttachmentStore, StoredAttachment
from messaging_api.repositories.conversation_participant_repository import ConversationParticipantRepository
from messaging_api.repositories.conversation_repository import ConversationRepository
from messaging_api.repositories.message_repository import MessageRepository
from messaging_api.services.pagination import validate_pagination
from messaging_api.services.view_builder import MessageViewBuilder

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AttachmentUpload:
    fileobj: BinaryIO
    filename: str
    content_type: str | None
    size_bytes: int | None = None


def _coerce_type(message_type: MessageType | str | None) -> MessageType:
    if message_type is None:
        return MessageType.TEXT
    try:
        return MessageType(message_type)
    except ValueError:
        raise ValidationError(f"Unknown message type: '{message_type}'.")


class MessageService:
    def __init__(
        self,
        *,
        conv_repo: ConversationRepository,
        part_repo: ConversationParticipantRepository,
        msg_repo: MessageRepository,
        attachment_store: AttachmentStore,
        views: MessageViewBuilder,
        clock: Clock = utcnow,
        edit_window_minutes: int = 15,
        message_max_length: int = 5000,
        max_attachment_bytes: int = 10 * 1024 * 1024,
        allowed_mime_types: set[str] | None = None,
    ) -> None:
        self._conv_repo = conv_repo
        self._part_repo = part_repo
        self._msg_repo = msg_repo
        self._store = attachment_store
        self._views = views
        self._clock = clock
        self._edit_window = timedelta(minutes=edit_window_minutes)
        self._edit_window_minutes = edit_window_minutes
        self._message_max_length = message_max_length
        self._max_attachment_bytes = max_attachment_bytes
        self._allowed_mime_types = allowed_mime_types or set()

    def _ensure_member(self, *, conversation_id: int, user_id: int):
        conv = self._conv_repo.get_for_member(conversation_id=conversation_id, user_id=user_id)
        if conv is None:
            raise ForbiddenError("Access denied to conversation.")
        return conv

    def _validate_content(self, content: str | None, *, allow_empty: bool) -> str:
        content = content or ""
        if len(content) > self._message_max_length:
            raise ValidationError(f"Message cannot exceed {self._message_max_length} characters.")
        if not allow_empty and not content.strip():
            raise ValidationError("Message content is required.")
        return content

    def _validate_attachment(self, attachment: AttachmentUpload) -> None:
        mime = (attachment.content_type or "").lower()
        if self._allowed_mime_types:
            if not mime:
                raise ValidationError("Attachment mime type is missing.")
            if mime not in self._allowed_mime_types:
                raise ValidationError(f"File type not allowed: '{mime}'.")

        if attachment.size_bytes is not None and attachment.size_bytes > self._max_attachment_bytes:
            raise ValidationError("File size exceeds maximum allowed size.")

    def _store_attachment(self, *, conversation_id: int, attachment: AttachmentUpload) -> StoredAttachment:
        self._validate_attachment(attachment)

        stored = self._store.save(
            fileobj=attachment.fileobj,
            original_name=attachment.filename,
            content_type=attachment.content_type,
            folder=f"messages/{conversation_id}",
        )

        if stored.size_bytes > self._max_attachment_bytes:
            self._store.delete(stored_name=stored.stored_name)
            raise ValidationError("File size exceeds maximum allowed size.")
        return stored

    # -------------------------
    # send / edit / delete
    # -------------------------

    def send_message(
        self,
        *,
        sender_id: int,
        conversation_id: int,
        content: str | None,
        message_type: MessageType | str | None = MessageType.TEXT,
        reply_to_message_id: int | None = None,
        attachment: AttachmentUpload | None = None,
    ) -> MessageView:
        conv = self._ensure_member(conversation_id=conversation_id, user_id=sender_id)

        msg_type = _coerce_type(message_type)
        if msg_type == MessageType.SYSTEM:
            raise ValidationError("System messages cannot be sent by users.")

        body = self._validate_content(content, allow_empty=attachment is not None)

        if reply_to_message_id is not None:
            target = self._msg_repo.get_in_conversation(message_id=reply_to_message_id, conversation_id=conv.id)
            if target is None:
                raise ValidationError("Reply target not found in this conversation.")

        # upload first: a failed upload leaves no message row behind
        stored = None
        if attachment is not None:
            stored = self._store_attachment(conversation_id=conv.id, attachment=attachment)
            mime = (stored.content_type or "").lower()
            msg_type = MessageType.IMAGE if mime.startswith("image/") else MessageType.FILE

        now = self._clock()
        try:
            with self._msg_repo.atomic():
                msg = self._msg_repo.add(
                    MessageModel(
                        conversation_id=conv.id,
                        sender_id=sender_id,
                        content=body,
                        message_type=msg_type,
                        reply_to_message_id=reply_to_message_id,
                        attachment_url=stored.url if stored else None,
                        attachment_name=stored.original_name if stored else None,
                        attachment_mime_type=stored.content_type if stored else None,
                        attachment_size=stored.size_bytes if stored else None,
                        sent_at=now,
                        is_read=False,
                    )
                )
                self._conv_repo.touch_last_message(conv, now)
        except Exception:
            if stored is not None:
                self._store.delete(stored_name=stored.stored_name)
            raise

        logger.info("User %s sent message %s in conversation %s", sender_id, msg.id, conv.id)
        return self._views.message_view(msg, sender_id)

    def edit_message(self, *, editor_id: int, message_id: int, content: str) -> MessageView:
        body = self._validate_content(content, allow_empty=False)

        # id and ownership in one predicate: not-owned looks exactly like missing
        msg = self._msg_repo.get_owned(message_id=message_id, sender_id=editor_id)
        if msg is None:
            raise NotFoundError("Message not found.")

        if msg.is_deleted:
            raise InvalidStateError("Cannot edit a deleted message.")

        now = self._clock()
        if now - msg.sent_at > self._edit_window:
            raise EditWindowExpiredError(self._edit_window_minutes)

        msg.content = body
        msg.is_edited = True
        msg.edited_at = now
        self._msg_repo.add(msg)

        logger.info("User %s edited message %s", editor_id, message_id)
        return self._views.message_view(msg, editor_id)

    def delete_message(self, *, deleter_id: int, message_id: int) -> bool:
        ok = self._msg_repo.soft_delete(message_id=message_id, sender_id=deleter_id, at=self._clock())
        if ok:
            logger.info("User %s deleted message %s", deleter_id, message_id)
        return ok

    # -------------------------
    # reading
    # -------------------------

    def get_conversation_messages(
        self,
        *,
        user_id: int,
        conversation_id: int,
        page: int = 1,
        page_size: int = 50,
    ) -> MessagesPageView:
        limit, offset = validate_pagination(page, page_size)

        conv = self._conv_repo.get_by_id(conversation_id)
        if conv is None:
            raise NotFoundError("Conversation not found.")
        if not conv.has_participant(user_id):
            raise ForbiddenError("Access denied to conversation.")

        total = self._msg_repo.count_in_conversation(conversation_id)
        # newest-first page, returned oldest-first
        rows = self._msg_repo.list_page_newest_first(conversation_id=conversation_id, limit=limit, offset=offset)
        rows.reverse()

        self._part_repo.set_last_seen(conversation_id=conversation_id, user_id=user_id, at=self._clock())

        return MessagesPageView(
            messages=self._views.message_views(rows, user_id),
            total_count=total,
            page=page,
            page_size=page_size,
            has_next_page=page > 1,
            has_previous_page=page * page_size < total,
            conversation=self._views.conversation_view(conv, user_id),
        )

    def mark_conversation_as_read(
        self,
        *,
        user_id: int,
        conversation_id: int,
        up_to_message_id: int | None = None,
    ) -> bool:
        participant = self._part_repo.get(conversation_id=conversation_id, user_id=user_id)
        if participant is None:
            return False

        now = self._clock()
        self._part_repo.set_last_read(conversation_id=conversation_id, user_id=user_id, at=now)
        marked = self._msg_repo.mark_read(
            conversation_id=conversation_id,
            reader_id=user_id,
            at=now,
            up_to_message_id=up_to_message_id,
        )

        logger.debug("User %s marked %s messages read in conversation %s", user_id, marked, conversation_id)
        return True

    def search_messages(
        self,
        *,
        user_id: int,
        query: str | None = None,
        conversation_id: int | None = None,
        message_type: MessageType | str | None = None,
        from_date: datetime | None = None,
        to_date: datetime | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> list[MessageView]:
        limit, offset = validate_pagination(page, page_size)

        rows = self._msg_repo.search(
            user_id=user_id,
            query=(query or "").strip() or None,
            conversation_id=conversation_id,
            message_type=_coerce_type(message_type) if message_type is not None else None,
            from_date=from_date,
            to_date=to_date,
            limit=limit,
            offset=offset,
        )
        return self._views.message_views(rows, user_id)
