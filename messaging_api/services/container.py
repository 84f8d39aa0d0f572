# messaging_api/services/container.py
from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.orm import Session

from messaging_api.config.settings import settings
from messaging_api.core.clock import Clock, utcnow
from messaging_api.infrastructure.directory.sql_project_directory import SqlProjectDirectory
from messaging_api.infrastructure.directory.sql_user_directory import SqlUserDirectory
from messaging_api.infrastructure.storage.file_storage import AttachmentStore
from messaging_api.repositories.conversation_participant_repository import ConversationParticipantRepository
from messaging_api.repositories.conversation_repository import ConversationRepository
from messaging_api.repositories.message_reaction_repository import MessageReactionRepository
from messaging_api.repositories.message_repository import MessageRepository
from messaging_api.repositories.project_repository import ProjectRepository
from messaging_api.repositories.user_repository import UserRepository
from messaging_api.services.conversation_service import ConversationService
from messaging_api.services.file_service import FileService
from messaging_api.services.message_service import MessageService
from messaging_api.services.reaction_service import ReactionService
from messaging_api.services.view_builder import MessageViewBuilder


@dataclass
class MessagingServices:
    conversations: ConversationService
    messages: MessageService
    reactions: ReactionService
    files: FileService


def build_services(
    session: Session,
    *,
    attachment_store: AttachmentStore,
    clock: Clock = utcnow,
) -> MessagingServices:
    """Wires repositories and services over one request-scoped session."""
    conv_repo = ConversationRepository(session)
    part_repo = ConversationParticipantRepository(session)
    msg_repo = MessageRepository(session)
    reaction_repo = MessageReactionRepository(session)

    users = SqlUserDirectory(UserRepository(session))
    projects = SqlProjectDirectory(ProjectRepository(session))

    views = MessageViewBuilder(
        msg_repo=msg_repo,
        part_repo=part_repo,
        reaction_repo=reaction_repo,
        users=users,
        projects=projects,
        clock=clock,
        online_window_minutes=settings.online_window_minutes,
    )

    return MessagingServices(
        conversations=ConversationService(
            conv_repo=conv_repo,
            part_repo=part_repo,
            msg_repo=msg_repo,
            users=users,
            projects=projects,
            views=views,
            clock=clock,
            message_max_length=settings.message_max_length,
        ),
        messages=MessageService(
            conv_repo=conv_repo,
            part_repo=part_repo,
            msg_repo=msg_repo,
            attachment_store=attachment_store,
            views=views,
            clock=clock,
            edit_window_minutes=settings.edit_window_minutes,
            message_max_length=settings.message_max_length,
            max_attachment_bytes=settings.max_file_size_bytes,
            allowed_mime_types=settings.allowed_mime_types,
        ),
        reactions=ReactionService(
            conv_repo=conv_repo,
            msg_repo=msg_repo,
            reaction_repo=reaction_repo,
            views=views,
            clock=clock,
        ),
        files=FileService(conv_repo=conv_repo, msg_repo=msg_repo),
    )
