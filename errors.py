"""
Domain errors for the booking service.

Services raise these; the app turns them into JSON error banners
(`{"error": message}`) with the matching HTTP status.
"""

import logging
from typing import Optional

from flask import jsonify
from werkzeug.exceptions import HTTPException

logger = logging.getLogger(__name__)

DEFAULT_MESSAGE = "Une erreur est survenue"


class AppError(Exception):
    """Base class for every error the service reports to its callers."""

    status_code = 500

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or DEFAULT_MESSAGE
        super().__init__(self.message)


class ValidationError(AppError):
    """Missing or malformed input."""

    status_code = 400


class AuthenticationRequired(AppError):
    status_code = 401


class PermissionDenied(AppError):
    status_code = 403


class NotFoundError(AppError):
    """Course or booking absent."""

    status_code = 404


class DuplicateBookingError(AppError):
    """The user already holds a live booking for the course."""

    status_code = 409


class DependencyError(AppError):
    """The database or the notification channel failed."""

    status_code = 502


def register_error_handlers(app) -> None:
    @app.errorhandler(AppError)
    def _handle_app_error(err: AppError):
        if err.status_code >= 500:
            logger.error("%s: %s", type(err).__name__, err.message)
        return jsonify({"error": err.message}), err.status_code

    @app.errorhandler(HTTPException)
    def _handle_http_error(err: HTTPException):
        # abort(403) / abort(404) from routes, unknown URLs, wrong methods
        messages = {
            403: "Accès refusé",
            404: "Ressource introuvable",
        }
        message = messages.get(err.code) or err.description or err.name
        return jsonify({"error": message}), err.code
