# messaging_api/api/routes/message_routes.py

from flask import Blueprint, current_app, jsonify, request

from messaging_api.api.middlewares.auth_middleware import current_user_id, require_auth
from messaging_api.api.schemas.message_schema import (
    AddReactionRequest,
    EditMessageRequest,
    SearchMessagesQuery,
    SendMessageRequest,
)
from messaging_api.core.exceptions import NotFoundError, ValidationError
from messaging_api.infrastructure.database.session import db_session
from messaging_api.services.container import MessagingServices, build_services
from messaging_api.services.message_service import AttachmentUpload

bp_msg = Blueprint("messages", __name__)


def _build_services(session) -> MessagingServices:
    return build_services(
        session,
        attachment_store=current_app.extensions["attachment_store"],
        clock=current_app.extensions["clock"],
    )


def _read_send_request() -> tuple[SendMessageRequest, AttachmentUpload | None]:
    """JSON body, or multipart form with an optional 'attachment' file part."""
    if request.mimetype == "multipart/form-data":
        payload = SendMessageRequest.model_validate(
            {k: v for k, v in request.form.items() if v != ""}
        )
        f = request.files.get("attachment")
        if f is None:
            return payload, None
        if not (f.filename or "").strip():
            raise ValidationError("Invalid attachment: missing filename.")
        return payload, AttachmentUpload(
            fileobj=f.stream,
            filename=f.filename,
            content_type=f.mimetype,
        )

    return SendMessageRequest.model_validate(request.get_json(force=True)), None


# -------------------------
# Messages
# -------------------------

@bp_msg.post("")
@require_auth
def send_message():
    user_id = current_user_id()
    payload, attachment = _read_send_request()

    with db_session() as session:
        svc = _build_services(session).messages
        view = svc.send_message(
            sender_id=user_id,
            conversation_id=payload.conversation_id,
            content=payload.content,
            message_type=payload.message_type,
            reply_to_message_id=payload.reply_to_message_id,
            attachment=attachment,
        )
        body = view.model_dump()

    return jsonify(body), 201


@bp_msg.put("/<int:message_id>")
@require_auth
def edit_message(message_id: int):
    user_id = current_user_id()
    payload = EditMessageRequest.model_validate(request.get_json(force=True))

    with db_session() as session:
        svc = _build_services(session).messages
        view = svc.edit_message(editor_id=user_id, message_id=message_id, content=payload.content)
        body = view.model_dump()

    return jsonify(body), 200


@bp_msg.delete("/<int:message_id>")
@require_auth
def delete_message(message_id: int):
    user_id = current_user_id()

    with db_session() as session:
        svc = _build_services(session).messages
        ok = svc.delete_message(deleter_id=user_id, message_id=message_id)

    if not ok:
        raise NotFoundError("Message not found.")
    return ("", 204)


@bp_msg.get("/search")
@require_auth
def search_messages():
    user_id = current_user_id()
    q = SearchMessagesQuery.model_validate({k: v for k, v in request.args.items() if v != ""})

    with db_session() as session:
        svc = _build_services(session).messages
        items = svc.search_messages(
            user_id=user_id,
            query=q.query,
            conversation_id=q.conversation_id,
            message_type=q.message_type,
            from_date=q.from_date,
            to_date=q.to_date,
            page=q.page,
            page_size=q.page_size,
        )
        payload = [x.model_dump() for x in items]

    return jsonify(payload), 200


@bp_msg.get("/stats")
@require_auth
def message_stats():
    user_id = current_user_id()

    with db_session() as session:
        svc = _build_services(session).conversations
        payload = svc.get_user_message_stats(user_id=user_id).model_dump()

    return jsonify(payload), 200


# -------------------------
# Reactions
# -------------------------

@bp_msg.post("/<int:message_id>/reactions")
@require_auth
def add_reaction(message_id: int):
    user_id = current_user_id()
    payload = AddReactionRequest.model_validate(request.get_json(force=True))

    with db_session() as session:
        svc = _build_services(session).reactions
        body = svc.add_reaction(user_id=user_id, message_id=message_id, emoji=payload.emoji).model_dump()

    return jsonify(body), 200


@bp_msg.delete("/<int:message_id>/reactions/<string:emoji>")
@require_auth
def remove_reaction(message_id: int, emoji: str):
    user_id = current_user_id()

    with db_session() as session:
        svc = _build_services(session).reactions
        body = svc.remove_reaction(user_id=user_id, message_id=message_id, emoji=emoji).model_dump()

    return jsonify(body), 200


@bp_msg.get("/<int:message_id>/reactions")
@require_auth
def list_reactions(message_id: int):
    user_id = current_user_id()

    with db_session() as session:
        svc = _build_services(session).reactions
        groups = svc.get_message_reactions(user_id=user_id, message_id=message_id)
        payload = [g.model_dump() for g in groups]

    return jsonify(payload), 200
