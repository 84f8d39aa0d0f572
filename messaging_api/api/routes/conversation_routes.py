# messaging_api/api/routes/conversation_routes.py

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from messaging_api.api.middlewares.auth_middleware import current_user_id, require_auth
from messaging_api.api.schemas.conversation_schema import (
    MarkReadRequest,
    StartConversationRequest,
    UpdateConversationSettingsRequest,
)
from messaging_api.core.exceptions import NotFoundError
from messaging_api.infrastructure.database.session import db_session
from messaging_api.services.container import MessagingServices, build_services

bp_conv = Blueprint("conversations", __name__)


# -------------------------
# Helpers
# -------------------------

def _build_services(session) -> MessagingServices:
    return build_services(
        session,
        attachment_store=current_app.extensions["attachment_store"],
        clock=current_app.extensions["clock"],
    )


def _int_arg(name: str, default: int) -> int:
    try:
        return int(request.args.get(name, default))
    except (TypeError, ValueError):
        return default


def _bool_arg(name: str) -> bool:
    return (request.args.get(name) or "").strip().lower() in ("1", "true", "yes")


# -------------------------
# Routes (queries)
# -------------------------

@bp_conv.get("")
@require_auth
def list_conversations():
    user_id = current_user_id()

    with db_session() as session:
        svc = _build_services(session).conversations
        items = svc.get_user_conversations(user_id=user_id, include_archived=_bool_arg("include_archived"))
        payload = [x.model_dump() for x in items]

    return jsonify(payload), 200


@bp_conv.get("/<int:conversation_id>")
@require_auth
def get_conversation(conversation_id: int):
    user_id = current_user_id()

    with db_session() as session:
        svc = _build_services(session).conversations
        view = svc.get_conversation(user_id=user_id, conversation_id=conversation_id)
        if view is None:
            raise NotFoundError("Conversation not found.")
        payload = view.model_dump()

    return jsonify(payload), 200


@bp_conv.get("/<int:conversation_id>/messages")
@require_auth
def list_messages(conversation_id: int):
    user_id = current_user_id()

    with db_session() as session:
        svc = _build_services(session).messages
        page = svc.get_conversation_messages(
            user_id=user_id,
            conversation_id=conversation_id,
            page=_int_arg("page", 1),
            page_size=_int_arg("page_size", 50),
        )
        payload = page.model_dump()

    return jsonify(payload), 200


# -------------------------
# Routes (mutations)
# -------------------------

@bp_conv.post("")
@require_auth
def start_conversation():
    user_id = current_user_id()
    payload = StartConversationRequest.model_validate(request.get_json(force=True))

    with db_session() as session:
        svc = _build_services(session).conversations
        view = svc.start_conversation(
            initiator_id=user_id,
            participant_id=payload.participant_id,
            initial_message=payload.initial_message,
            project_id=payload.project_id,
            subject=payload.subject,
        )
        body = view.model_dump()

    return jsonify(body), 200


@bp_conv.post("/<int:conversation_id>/mark-read")
@require_auth
def mark_read(conversation_id: int):
    user_id = current_user_id()
    payload = MarkReadRequest.model_validate(request.get_json(silent=True) or {})

    with db_session() as session:
        svc = _build_services(session).messages
        ok = svc.mark_conversation_as_read(
            user_id=user_id,
            conversation_id=conversation_id,
            up_to_message_id=payload.up_to_message_id,
        )

    if not ok:
        raise NotFoundError("Conversation not found.")
    return ("", 204)


@bp_conv.put("/<int:conversation_id>/settings")
@require_auth
def update_settings(conversation_id: int):
    user_id = current_user_id()
    payload = UpdateConversationSettingsRequest.model_validate(request.get_json(force=True))

    with db_session() as session:
        svc = _build_services(session).conversations
        ok = svc.update_conversation_settings(
            user_id=user_id,
            conversation_id=conversation_id,
            is_muted=payload.is_muted,
            is_archived=payload.is_archived,
            is_pinned=payload.is_pinned,
        )

    if not ok:
        raise NotFoundError("Conversation not found.")
    return ("", 204)
