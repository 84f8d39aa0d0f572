# messaging_api/api/routes/__init__.py

from flask import Flask

from messaging_api.api.routes.conversation_routes import bp_conv
from messaging_api.api.routes.file_routes import bp_files
from messaging_api.api.routes.health_routes import bp_health
from messaging_api.api.routes.message_routes import bp_msg


def register_routes(app: Flask, *, api_prefix: str, files_prefix: str) -> None:
    app.register_blueprint(bp_health, url_prefix=f"{api_prefix}/health")
    app.register_blueprint(bp_conv, url_prefix=f"{api_prefix}/conversations")
    app.register_blueprint(bp_msg, url_prefix=f"{api_prefix}/messages")

    # attachment urls handed out by the storage point here
    app.register_blueprint(bp_files, url_prefix=files_prefix)
