"""Error handlers for the application.

The API is JSON-only. Validation failures render the field map itself;
every other error renders {"error": <reason phrase>, "message": <detail>}.
"""
from flask import jsonify
from werkzeug.exceptions import HTTPException
from werkzeug.http import HTTP_STATUS_CODES

from backend_resources.core.errors import BackendResourcesError, ValidationError


def _error_body(status: int, message: str):
    reason = HTTP_STATUS_CODES.get(status, "Error")
    return jsonify({"error": reason, "message": message}), status


def register_error_handlers(app):
    """Register error handlers with the Flask app."""

    @app.errorhandler(ValidationError)
    def validation_failed(error: ValidationError):
        return jsonify(error.errors), error.status

    @app.errorhandler(BackendResourcesError)
    def domain_error(error: BackendResourcesError):
        if error.status >= 500:
            app.logger.error("Request failed: %s", error, exc_info=error.__cause__ or error)
            return _error_body(error.status, "An unexpected error occurred")
        return _error_body(error.status, error.message)

    @app.errorhandler(HTTPException)
    def http_error(error: HTTPException):
        status = error.code or 500
        if status >= 500:
            app.logger.error("Internal error: %s", error)
            return _error_body(status, "An unexpected error occurred")
        return _error_body(status, error.description or HTTP_STATUS_CODES.get(status, ""))

    @app.errorhandler(Exception)
    def handle_exception(error):
        """Handle uncaught exceptions."""
        # Pass through HTTP errors
        if isinstance(error, HTTPException):
            return http_error(error)

        app.logger.error("Unhandled exception: %s", error, exc_info=True)
        return _error_body(500, "An unexpected error occurred")
