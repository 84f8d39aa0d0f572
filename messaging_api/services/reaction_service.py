# messaging_api/services/reaction_service.py
from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from messaging_api.core.clock import Clock, utcnow
from messaging_api.core.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from messaging_api.core.views import MessageView, ReactionGroupView
from messaging_api.infrastructure.database.models.message_model import MessageModel
from messaging_api.infrastructure.database.models.message_reaction_model import MessageReactionModel
from messaging_api.repositories.conversation_repository import ConversationRepository
from messaging_api.repositories.message_reaction_repository import MessageReactionRepository
from messaging_api.repositories.message_repository import MessageRepository
from messaging_api.services.view_builder import MessageViewBuilder

logger = logging.getLogger(__name__)

EMOJI_MAX_LENGTH = 10


def _clean_emoji(emoji: str | None) -> str:
    value = (emoji or "").strip()
    if not value:
        raise ValidationError("Emoji is required.")
    if len(value) > EMOJI_MAX_LENGTH:
        raise ValidationError(f"Emoji cannot exceed {EMOJI_MAX_LENGTH} characters.")
    return value


class ReactionService:
    def __init__(
        self,
        *,
        conv_repo: ConversationRepository,
        msg_repo: MessageRepository,
        reaction_repo: MessageReactionRepository,
        views: MessageViewBuilder,
        clock: Clock = utcnow,
    ) -> None:
        self._conv_repo = conv_repo
        self._msg_repo = msg_repo
        self._reaction_repo = reaction_repo
        self._views = views
        self._clock = clock

    def _accessible_message(self, *, user_id: int, message_id: int) -> MessageModel:
        msg = self._msg_repo.get_by_id(message_id)
        if msg is None:
            raise NotFoundError("Message not found.")

        conv = self._conv_repo.get_for_member(conversation_id=msg.conversation_id, user_id=user_id)
        if conv is None:
            raise ForbiddenError("Access denied to message.")
        return msg

    def add_reaction(self, *, user_id: int, message_id: int, emoji: str) -> MessageView:
        value = _clean_emoji(emoji)
        msg = self._accessible_message(user_id=user_id, message_id=message_id)

        if self._reaction_repo.get(message_id=msg.id, user_id=user_id, emoji=value) is not None:
            raise ConflictError("Reaction already exists.")

        try:
            with self._reaction_repo.atomic():
                self._reaction_repo.add(
                    MessageReactionModel(
                        message_id=msg.id,
                        user_id=user_id,
                        emoji=value,
                        created_at=self._clock(),
                    )
                )
        except IntegrityError:
            raise ConflictError("Reaction already exists.")

        logger.info("User %s reacted %s to message %s", user_id, value, msg.id)
        return self._views.message_view(msg, user_id)

    def remove_reaction(self, *, user_id: int, message_id: int, emoji: str) -> MessageView:
        value = _clean_emoji(emoji)
        msg = self._accessible_message(user_id=user_id, message_id=message_id)

        reaction = self._reaction_repo.get(message_id=msg.id, user_id=user_id, emoji=value)
        if reaction is None:
            raise InvalidStateError("Reaction not found.")

        self._reaction_repo.delete(reaction)

        logger.info("User %s removed reaction %s from message %s", user_id, value, msg.id)
        return self._views.message_view(msg, user_id)

    def get_message_reactions(self, *, user_id: int, message_id: int) -> list[ReactionGroupView]:
        msg = self._accessible_message(user_id=user_id, message_id=message_id)
        return self._views.reaction_groups(msg.id, user_id)
