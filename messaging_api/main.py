# messaging_api/main.py
from __future__ import annotations

import logging

from flask import Flask
from flask_cors import CORS

from messaging_api.api.middlewares.error_handler import register_error_handlers
from messaging_api.api.routes import register_routes
from messaging_api.config.flask_config import configure_app, configure_logging
from messaging_api.config.settings import settings
from messaging_api.core.clock import Clock, utcnow
from messaging_api.infrastructure.database.base_model import BaseModel
from messaging_api.infrastructure.database.session import get_engine
from messaging_api.infrastructure.storage.file_storage import AttachmentStore
from messaging_api.infrastructure.storage.local_file_storage import LocalFileStorage, LocalFileStorageConfig

import messaging_api.infrastructure.database.models  # noqa: F401

logger = logging.getLogger(__name__)


def create_app(
    *,
    attachment_store: AttachmentStore | None = None,
    clock: Clock = utcnow,
) -> Flask:
    configure_logging()

    app = Flask(__name__)

    api_prefix = settings.api_prefix.rstrip("/")
    files_prefix = settings.files_route_prefix

    CORS(
        app,
        resources={rf"{api_prefix}/*": {"origins": settings.cors_origins}},
        allow_headers=["Content-Type", "Authorization"],
        methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    )

    configure_app(app)

    if attachment_store is None:
        attachment_store = LocalFileStorage(
            config=LocalFileStorageConfig(
                base_path=settings.files_base_path,
                public_base_url=settings.files_url_base,
            )
        )
    app.extensions["attachment_store"] = attachment_store
    app.extensions["clock"] = clock

    register_routes(app, api_prefix=api_prefix, files_prefix=files_prefix)
    register_error_handlers(app)

    @app.cli.command("init-db")
    def init_db():
        """Create the messaging tables on the configured database."""
        BaseModel.metadata.create_all(get_engine())
        logger.info("Schema created on %s", get_engine().url.render_as_string(hide_password=True))

    logger.info("Messaging API ready under %s (environment=%s)", api_prefix, settings.environment)
    return app


if __name__ == "__main__":
    create_app().run(host="0.0.0.0", port=5000, debug=settings.debug)
