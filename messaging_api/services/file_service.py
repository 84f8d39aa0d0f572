# messaging_api/services/file_service.py
from __future__ import annotations

from pathlib import PurePosixPath

from messaging_api.core.exceptions import ForbiddenError, NotFoundError
from messaging_api.infrastructure.database.models.message_model import MessageModel
from messaging_api.repositories.conversation_repository import ConversationRepository
from messaging_api.repositories.message_repository import MessageRepository


def conversation_id_from_stored_name(stored_name: str) -> int | None:
    # messages/<conversation_id>/<file>
    parts = PurePosixPath(stored_name).parts
    if len(parts) != 3 or parts[0] != "messages" or not parts[1].isdigit():
        return None
    return int(parts[1])


class FileService:
    def __init__(self, *, conv_repo: ConversationRepository, msg_repo: MessageRepository) -> None:
        self._conv_repo = conv_repo
        self._msg_repo = msg_repo

    def get_attachment_for_download(self, *, stored_name: str, user_id: int) -> MessageModel:
        """Message carrying the attachment, once the caller's membership is checked."""
        conversation_id = conversation_id_from_stored_name(stored_name)
        if conversation_id is None:
            raise NotFoundError("File not found.")

        conv = self._conv_repo.get_for_member(conversation_id=conversation_id, user_id=user_id)
        if conv is None:
            raise ForbiddenError("Access denied to conversation.")

        msg = self._msg_repo.get_by_stored_name(conversation_id=conversation_id, stored_name=stored_name)
        if msg is None or msg.is_deleted:
            raise NotFoundError("File not found.")
        return msg
