from flask import Blueprint, current_app, jsonify

from .errors import AppError, StoreUnavailableError

error_handlers_bp = Blueprint("error_handlers", __name__)


def _error_response(kind, message, status_code):
    return (
        jsonify({"status": "error", "error": kind, "message": message}),
        status_code,
    )


@error_handlers_bp.app_errorhandler(StoreUnavailableError)
def handle_store_unavailable(error):
    """Handles failures reported by the document store."""
    current_app.logger.error(f"Store Error: {error.message}")
    return _error_response(error.kind, error.message, error.status_code)


@error_handlers_bp.app_errorhandler(AppError)
def handle_app_error(error):
    """Handles application errors with their stable kind."""
    current_app.logger.warning(f"{type(error).__name__}: {error.message}")
    return _error_response(error.kind, error.message, error.status_code)


@error_handlers_bp.app_errorhandler(404)
def handle_404(e):
    """Handles generic 404 errors for routes that don't exist."""
    return _error_response("not_found", "Resource not found.", 404)


@error_handlers_bp.app_errorhandler(405)
def handle_405(e):
    """Handles requests with an unsupported method."""
    return _error_response("invalid_input", "Method not allowed.", 405)


@error_handlers_bp.app_errorhandler(500)
def handle_500(e):
    """Handles unexpected server errors."""
    current_app.logger.error(f"Internal Server Error: {e}")
    return _error_response("error", "An unexpected error occurred.", 500)
