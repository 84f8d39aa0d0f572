# messaging_api/services/view_builder.py
from __future__ import annotations

from datetime import timedelta
from typing import Iterable

from messaging_api.core.clock import Clock, utcnow
from messaging_api.core.interfaces.project_directory import ProjectDirectory
from messaging_api.core.interfaces.user_directory import UserDirectory, UserSummary
from messaging_api.core.reactions import group_reactions
from messaging_api.core.views import (
    AttachmentView,
    ConversationSummaryView,
    ConversationView,
    MessageStatus,
    MessageView,
    ParticipantStatusView,
    ProjectSummaryView,
    ReactionGroupView,
    ReplyPreviewView,
    UserSummaryView,
)
from messaging_api.infrastructure.database.models.conversation_model import ConversationModel
from messaging_api.infrastructure.database.models.message_model import DELETED_MESSAGE_CONTENT, MessageModel
from messaging_api.repositories.conversation_participant_repository import ConversationParticipantRepository
from messaging_api.repositories.message_reaction_repository import MessageReactionRepository
from messaging_api.repositories.message_repository import MessageRepository


class MessageViewBuilder:
    """Assembles response views; batches directory and repository lookups per call."""

    def __init__(
        self,
        *,
        msg_repo: MessageRepository,
        part_repo: ConversationParticipantRepository,
        reaction_repo: MessageReactionRepository,
        users: UserDirectory,
        projects: ProjectDirectory,
        clock: Clock = utcnow,
        online_window_minutes: int = 5,
    ) -> None:
        self._msg_repo = msg_repo
        self._part_repo = part_repo
        self._reaction_repo = reaction_repo
        self._users = users
        self._projects = projects
        self._clock = clock
        self._online_window = timedelta(minutes=online_window_minutes)

    # -------------------------
    # users / projects
    # -------------------------

    def _user_view(self, summary: UserSummary) -> UserSummaryView:
        last_seen = summary.last_seen_at
        return UserSummaryView(
            id=summary.id,
            username=summary.username,
            display_name=summary.display_name,
            avatar_url=summary.avatar_url,
            role=summary.role,
            is_online=bool(last_seen and last_seen > self._clock() - self._online_window),
            last_seen_at=last_seen,
        )

    def user_views(self, user_ids: Iterable[int]) -> dict[int, UserSummaryView]:
        summaries = self._users.get_summaries(set(user_ids))
        return {uid: self._user_view(s) for uid, s in summaries.items()}

    def _project_view(self, project_id: int | None) -> ProjectSummaryView | None:
        if project_id is None:
            return None
        p = self._projects.get_summary(project_id)
        if p is None:
            return None
        return ProjectSummaryView(id=p.id, title=p.title, description=p.description)

    # -------------------------
    # messages
    # -------------------------

    def _status(self, msg: MessageModel, viewer_id: int) -> MessageStatus:
        if msg.sender_id != viewer_id:
            return MessageStatus.DELIVERED
        if msg.is_read:
            return MessageStatus.READ
        return MessageStatus.SENT

    def _content(self, msg: MessageModel) -> str:
        return DELETED_MESSAGE_CONTENT if msg.is_deleted else msg.content

    def _attachment(self, msg: MessageModel) -> AttachmentView | None:
        if not msg.has_attachment:
            return None
        mime = msg.attachment_mime_type or "application/octet-stream"
        return AttachmentView(
            url=msg.attachment_url,
            name=msg.attachment_name or "Unknown",
            mime_type=mime,
            size=msg.attachment_size or 0,
            is_image=mime.startswith("image/"),
        )

    def message_views(self, messages: list[MessageModel], viewer_id: int) -> list[MessageView]:
        if not messages:
            return []

        reply_ids = [m.reply_to_message_id for m in messages if m.reply_to_message_id is not None]
        replies = self._msg_repo.get_many(reply_ids)
        reactions = self._reaction_repo.list_by_message_ids([m.id for m in messages])

        user_ids = {m.sender_id for m in messages}
        user_ids.update(r.sender_id for r in replies.values())
        user_ids.update(r.user_id for rows in reactions.values() for r in rows)
        users = self.user_views(user_ids)

        def sender(uid: int) -> UserSummaryView:
            return users.get(uid) or UserSummaryView.unknown(uid)

        out: list[MessageView] = []
        for m in messages:
            reply = replies.get(m.reply_to_message_id) if m.reply_to_message_id is not None else None
            out.append(
                MessageView(
                    id=m.id,
                    conversation_id=m.conversation_id,
                    sender_id=m.sender_id,
                    sender=sender(m.sender_id),
                    content=self._content(m),
                    message_type=m.message_type,
                    attachment=self._attachment(m),
                    sent_at=m.sent_at,
                    edited_at=m.edited_at,
                    read_at=m.read_at,
                    is_edited=bool(m.is_edited),
                    is_deleted=bool(m.is_deleted),
                    is_system=bool(m.is_system),
                    is_read=bool(m.is_read),
                    reply_to_message_id=m.reply_to_message_id,
                    reply_to_message=(
                        ReplyPreviewView(
                            id=reply.id,
                            sender_id=reply.sender_id,
                            sender=sender(reply.sender_id),
                            content=self._content(reply),
                            message_type=reply.message_type,
                            sent_at=reply.sent_at,
                            is_deleted=bool(reply.is_deleted),
                            is_edited=bool(reply.is_edited),
                        )
                        if reply is not None
                        else None
                    ),
                    reactions=group_reactions(reactions.get(m.id, []), viewer_id, users),
                    is_sent_by_current_user=m.sender_id == viewer_id,
                    status=self._status(m, viewer_id),
                )
            )
        return out

    def message_view(self, message: MessageModel, viewer_id: int) -> MessageView:
        return self.message_views([message], viewer_id)[0]

    def reaction_groups(self, message_id: int, viewer_id: int) -> list[ReactionGroupView]:
        rows = self._reaction_repo.list_by_message_ids([message_id]).get(message_id, [])
        users = self.user_views(r.user_id for r in rows)
        return group_reactions(rows, viewer_id, users)

    # -------------------------
    # conversations
    # -------------------------

    def conversation_view(self, conv: ConversationModel, viewer_id: int) -> ConversationView:
        users = self.user_views([conv.user_low_id, conv.user_high_id, conv.freelancer_id, conv.client_id])
        last = self._msg_repo.latest_by_conversation([conv.id]).get(conv.id)
        unread = self._msg_repo.unread_count_by_conversation(user_id=viewer_id, conversation_ids=[conv.id])
        participant = self._part_repo.get(conversation_id=conv.id, user_id=viewer_id)

        def user(uid: int) -> UserSummaryView:
            return users.get(uid) or UserSummaryView.unknown(uid)

        return ConversationView(
            id=conv.id,
            participant_ids=list(conv.participant_ids),
            freelancer_id=conv.freelancer_id,
            client_id=conv.client_id,
            project_id=conv.project_id,
            subject=conv.subject,
            created_at=conv.created_at,
            updated_at=conv.updated_at,
            last_message_at=conv.last_message_at,
            is_active=bool(conv.is_active),
            is_archived=bool(conv.is_archived),
            is_pinned=bool(conv.is_pinned),
            is_muted=bool(conv.is_muted),
            freelancer=user(conv.freelancer_id),
            client=user(conv.client_id),
            other_participant=user(conv.other_participant_id(viewer_id)),
            project=self._project_view(conv.project_id),
            last_message=self.message_view(last, viewer_id) if last is not None else None,
            unread_count=unread.get(conv.id, 0),
            current_user_status=ParticipantStatusView(
                last_read_at=participant.last_read_at if participant else None,
                last_seen_at=participant.last_seen_at if participant else None,
                is_muted=bool(participant and participant.is_muted),
                is_archived=bool(participant and participant.is_archived),
                is_pinned=bool(participant and participant.is_pinned),
            ),
        )

    def conversation_summaries(self, conversations: list[ConversationModel], viewer_id: int) -> list[ConversationSummaryView]:
        if not conversations:
            return []

        ids = [c.id for c in conversations]
        latest = self._msg_repo.latest_by_conversation(ids)
        unread = self._msg_repo.unread_count_by_conversation(user_id=viewer_id, conversation_ids=ids)
        participants = self._part_repo.get_many_for_user(user_id=viewer_id, conversation_ids=ids)

        last_views = {v.conversation_id: v for v in self.message_views(list(latest.values()), viewer_id)}
        others = self.user_views(c.other_participant_id(viewer_id) for c in conversations)

        out: list[ConversationSummaryView] = []
        for c in conversations:
            other_id = c.other_participant_id(viewer_id)
            p = participants.get(c.id)
            out.append(
                ConversationSummaryView(
                    id=c.id,
                    other_participant=others.get(other_id) or UserSummaryView.unknown(other_id),
                    project=self._project_view(c.project_id),
                    subject=c.subject,
                    last_message=last_views.get(c.id),
                    unread_count=unread.get(c.id, 0),
                    last_activity=c.last_message_at or c.created_at,
                    is_pinned=bool(p and p.is_pinned),
                    is_muted=bool(p and p.is_muted),
                    is_archived=bool(p and p.is_archived),
                )
            )
        return out
