# messaging_api/services/conversation_service.py
from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from messaging_api.core.clock import Clock, utcnow
from messaging_api.core.exceptions import NotFoundError, ValidationError
from messaging_api.core.interfaces.project_directory import ProjectDirectory
from messaging_api.core.interfaces.user_directory import UserDirectory, UserSummary
from messaging_api.core.views import ConversationSummaryView, ConversationView, MessageStatsView
from messaging_api.infrastructure.database.models.conversation_model import ConversationModel
from messaging_api.infrastructure.database.models.conversation_participant_model import ConversationParticipantModel
from messaging_api.infrastructure.database.models.message_model import MessageModel, MessageType
from messaging_api.repositories.conversation_participant_repository import ConversationParticipantRepository
from messaging_api.repositories.conversation_repository import ConversationRepository, pair_key
from messaging_api.repositories.message_repository import MessageRepository
from messaging_api.services.view_builder import MessageViewBuilder

logger = logging.getLogger(__name__)

FREELANCER_ROLE = "freelancer"
CLIENT_ROLE = "client"
SUBJECT_MAX_LENGTH = 200
RECENT_CONVERSATIONS = 5


def assign_slots(initiator: UserSummary, other: UserSummary) -> tuple[int, int]:
    """(freelancer_id, client_id) display slots. Not used for lookup or access."""
    if initiator.role == FREELANCER_ROLE:
        return initiator.id, other.id
    if initiator.role == CLIENT_ROLE:
        return other.id, initiator.id
    if other.role == FREELANCER_ROLE:
        return other.id, initiator.id
    if other.role == CLIENT_ROLE:
        return initiator.id, other.id
    return min(initiator.id, other.id), max(initiator.id, other.id)


class ConversationService:
    def __init__(
        self,
        *,
        conv_repo: ConversationRepository,
        part_repo: ConversationParticipantRepository,
        msg_repo: MessageRepository,
        users: UserDirectory,
        projects: ProjectDirectory,
        views: MessageViewBuilder,
        clock: Clock = utcnow,
        message_max_length: int = 5000,
    ) -> None:
        self._conv_repo = conv_repo
        self._part_repo = part_repo
        self._msg_repo = msg_repo
        self._users = users
        self._projects = projects
        self._views = views
        self._clock = clock
        self._message_max_length = message_max_length

    def _validate_start(
        self,
        *,
        initiator_id: int,
        participant_id: int,
        initial_message: str,
        subject: str | None,
    ) -> tuple[str, str | None]:
        if participant_id is None or participant_id <= 0:
            raise ValidationError("Invalid participant id.")
        if participant_id == initiator_id:
            raise ValidationError("Cannot start a conversation with yourself.")

        body = (initial_message or "").strip()
        if not body:
            raise ValidationError("Initial message is required.")
        if len(body) > self._message_max_length:
            raise ValidationError(f"Message cannot exceed {self._message_max_length} characters.")

        clean_subject = (subject or "").strip() or None
        if clean_subject is not None and len(clean_subject) > SUBJECT_MAX_LENGTH:
            raise ValidationError(f"Subject cannot exceed {SUBJECT_MAX_LENGTH} characters.")

        return body, clean_subject

    def start_conversation(
        self,
        *,
        initiator_id: int,
        participant_id: int,
        initial_message: str,
        project_id: int | None = None,
        subject: str | None = None,
    ) -> ConversationView:
        body, clean_subject = self._validate_start(
            initiator_id=initiator_id,
            participant_id=participant_id,
            initial_message=initial_message,
            subject=subject,
        )

        initiator = self._users.get_summary(initiator_id)
        if initiator is None:
            raise NotFoundError("Current user not found.")
        other = self._users.get_summary(participant_id)
        if other is None:
            raise NotFoundError(f"User with id {participant_id} not found.")

        if project_id is not None and self._projects.get_summary(project_id) is None:
            raise NotFoundError(f"Project with id {project_id} not found.")

        existing = self._conv_repo.find_by_pair(user_a=initiator_id, user_b=participant_id, project_id=project_id)
        if existing is not None:
            logger.info("Returning existing conversation %s for users %s and %s", existing.id, initiator_id, participant_id)
            return self._views.conversation_view(existing, initiator_id)

        try:
            conv = self._create(
                initiator=initiator,
                other=other,
                body=body,
                project_id=project_id,
                subject=clean_subject,
            )
        except IntegrityError:
            # concurrent creation for the same pair won; return its row
            winner = self._conv_repo.find_by_pair(user_a=initiator_id, user_b=participant_id, project_id=project_id)
            if winner is None:
                raise
            logger.info("Conversation %s was created concurrently; returning it", winner.id)
            return self._views.conversation_view(winner, initiator_id)

        logger.info("Created conversation %s between users %s and %s", conv.id, initiator_id, participant_id)
        return self._views.conversation_view(conv, initiator_id)

    def _create(
        self,
        *,
        initiator: UserSummary,
        other: UserSummary,
        body: str,
        project_id: int | None,
        subject: str | None,
    ) -> ConversationModel:
        now = self._clock()
        low, high = pair_key(initiator.id, other.id)
        freelancer_id, client_id = assign_slots(initiator, other)

        try:
            with self._conv_repo.atomic():
                conv = self._conv_repo.add(
                    ConversationModel(
                        user_low_id=low,
                        user_high_id=high,
                        freelancer_id=freelancer_id,
                        client_id=client_id,
                        project_id=project_id,
                        project_scope=project_id or 0,
                        subject=subject,
                        created_at=now,
                        updated_at=now,
                        is_active=True,
                    )
                )

                self._part_repo.add_many(
                    [
                        ConversationParticipantModel(
                            conversation_id=conv.id, user_id=initiator.id, joined_at=now, last_read_at=now
                        ),
                        ConversationParticipantModel(conversation_id=conv.id, user_id=other.id, joined_at=now),
                    ]
                )

                self._msg_repo.add(
                    MessageModel(
                        conversation_id=conv.id,
                        sender_id=initiator.id,
                        content=body,
                        message_type=MessageType.TEXT,
                        sent_at=now,
                        is_read=False,
                    )
                )

                self._conv_repo.touch_last_message(conv, now)
        except Exception as e:
            # a duplicate pair is resolved by the caller
            if not isinstance(e, IntegrityError):
                logger.exception("Failed to create conversation between users %s and %s", initiator.id, other.id)
            raise

        return conv

    def get_user_conversations(self, *, user_id: int, include_archived: bool = False) -> list[ConversationSummaryView]:
        rows = self._conv_repo.list_for_user(user_id=user_id, include_archived=include_archived)
        return self._views.conversation_summaries(rows, user_id)

    def get_conversation(self, *, user_id: int, conversation_id: int) -> ConversationView | None:
        conv = self._conv_repo.get_for_member(conversation_id=conversation_id, user_id=user_id)
        if conv is None:
            return None
        return self._views.conversation_view(conv, user_id)

    def update_conversation_settings(
        self,
        *,
        user_id: int,
        conversation_id: int,
        is_muted: bool,
        is_archived: bool,
        is_pinned: bool,
    ) -> bool:
        ok = self._part_repo.update_settings(
            conversation_id=conversation_id,
            user_id=user_id,
            is_muted=is_muted,
            is_archived=is_archived,
            is_pinned=is_pinned,
        )
        if ok:
            logger.info(
                "User %s updated conversation %s settings (muted=%s archived=%s pinned=%s)",
                user_id, conversation_id, is_muted, is_archived, is_pinned,
            )
        return ok

    def get_user_message_stats(self, *, user_id: int) -> MessageStatsView:
        recent = self._conv_repo.list_for_user(user_id=user_id, include_archived=False, limit=RECENT_CONVERSATIONS)

        return MessageStatsView(
            total_conversations=self._conv_repo.count_for_user(user_id=user_id),
            active_conversations=self._conv_repo.count_for_user(user_id=user_id, exclude_archived=True),
            unread_conversations=self._msg_repo.count_conversations_with_unread(user_id),
            total_messages=self._msg_repo.count_for_user(user_id),
            unread_messages=self._msg_repo.count_unread_for_user(user_id),
            last_activity=self._msg_repo.last_activity_for_user(user_id),
            recent_conversations=self._views.conversation_summaries(recent, user_id),
        )
