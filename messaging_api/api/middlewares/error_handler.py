# messaging_api/api/middlewares/error_handler.py
import logging

from flask import Flask, jsonify
from pydantic import ValidationError as PydanticValidationError
from werkzeug.exceptions import HTTPException

from messaging_api.config.settings import settings
from messaging_api.core.exceptions import AppError

logger = logging.getLogger(__name__)


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(AppError)
    def handle_app_error(err: AppError):
        if err.status_code >= 500:
            logger.error("%s: %s", type(err).__name__, err)
        return jsonify({"error": str(err)}), err.status_code

    @app.errorhandler(PydanticValidationError)
    def handle_request_validation(err: PydanticValidationError):
        details = [
            {"field": ".".join(str(p) for p in e["loc"]), "message": e["msg"]}
            for e in err.errors()
        ]
        return jsonify({"error": "Invalid request.", "details": details}), 400

    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        return jsonify({"error": err.description}), err.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(err: Exception):
        logger.exception("Unhandled error")

        if settings.debug:
            return jsonify({"error": str(err)}), 500

        return jsonify({"error": "Internal server error"}), 500
