# messaging_api/api/routes/file_routes.py

from __future__ import annotations

from flask import Blueprint, current_app, send_file

from messaging_api.api.middlewares.auth_middleware import current_user_id, require_auth
from messaging_api.core.exceptions import NotFoundError
from messaging_api.infrastructure.database.session import db_session
from messaging_api.services.container import build_services

bp_files = Blueprint("files", __name__)


@bp_files.get("/<path:stored_name>")
@require_auth
def download_attachment(stored_name: str):
    user_id = current_user_id()
    storage = current_app.extensions["attachment_store"]

    with db_session() as session:
        svc = build_services(session, attachment_store=storage).files
        msg = svc.get_attachment_for_download(stored_name=stored_name, user_id=user_id)
        download_name = msg.attachment_name or "attachment"
        mimetype = msg.attachment_mime_type or "application/octet-stream"

    try:
        abs_path = storage.open(stored_name=stored_name)
    except (FileNotFoundError, ValueError):
        raise NotFoundError("File not found.")

    return send_file(
        abs_path,
        as_attachment=not mimetype.startswith("image/"),
        download_name=download_name,
        mimetype=mimetype,
        conditional=True,
        etag=True,
        last_modified=True,
    )
