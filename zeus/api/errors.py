"""Application-wide error handlers.

Everything the users blueprint does not handle itself (unknown routes, wrong
methods, oversized or unsupported bodies, crashes) is answered in the same
``{"code", "msg"}`` envelope as business failures.
"""
import logging

from flask import jsonify
from werkzeug.exceptions import HTTPException

from zeus.core.errors import GENERIC_ERROR_CODE

logger = logging.getLogger(__name__)


def _failure(status: int, message: str):
    return jsonify({"code": status, "msg": message}), status


def register_error_handlers(app):
    """Register error handlers with the Flask app."""

    @app.errorhandler(400)
    def bad_request(error):
        """Handle 400 Bad Request errors."""
        return _failure(400, error.description or "bad request")

    @app.errorhandler(404)
    def not_found(error):
        """Handle 404 Not Found errors."""
        return _failure(404, "resource not found")

    @app.errorhandler(405)
    def method_not_allowed(error):
        return _failure(405, "method not allowed")

    @app.errorhandler(413)
    def request_too_large(error):
        """Handle payload too large errors."""
        return _failure(413, "request payload exceeds maximum allowed size (64 KB)")

    @app.errorhandler(415)
    def unsupported_media_type(error):
        return _failure(415, "content type must be application/json or application/x-www-form-urlencoded")

    @app.errorhandler(500)
    def internal_error(error):
        """Handle 500 Internal Server Error."""
        logger.error("Internal error: %s", error, exc_info=True)
        return _failure(GENERIC_ERROR_CODE, "internal error")

    @app.errorhandler(Exception)
    def handle_exception(error):
        """Handle uncaught exceptions, including collaborator failures."""
        if isinstance(error, HTTPException):
            return _failure(error.code or 500, error.description or error.name)

        logger.error("Unhandled exception: %s", error, exc_info=True)
        return _failure(GENERIC_ERROR_CODE, "internal error")
