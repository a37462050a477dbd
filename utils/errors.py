import logging

from flask import jsonify
from werkzeug.exceptions import HTTPException

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Base class for errors that map onto a JSON ``{error, code}`` response."""

    code = "SERVER_ERROR"
    status_code = 500
    default_message = "Something went wrong. Please try again later"

    def __init__(self, message=None, details=None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self):
        out = {"error": self.message, "code": self.code}
        if self.details:
            out["details"] = self.details
        return out


class AuthRequired(ApiError):
    code = "AUTH_REQUIRED"
    status_code = 401
    default_message = "Authentication required"


class Unauthorized(ApiError):
    code = "UNAUTHORIZED"
    status_code = 401
    default_message = "You do not have permission to perform this action"


class Forbidden(ApiError):
    code = "FORBIDDEN"
    status_code = 403
    default_message = "Forbidden"


class NotFound(ApiError):
    code = "NOT_FOUND"
    status_code = 404
    default_message = "The requested resource was not found"


class ValidationError(ApiError):
    code = "VALIDATION_ERROR"
    status_code = 400
    default_message = "Please check your input and try again"


class InvalidSignature(ApiError):
    code = "INVALID_SIGNATURE"
    status_code = 400
    default_message = "Invalid signature"


class AlreadyPaid(ApiError):
    code = "ALREADY_PAID"
    status_code = 400
    default_message = "Booking has already been paid"


class SlotUnavailable(ApiError):
    code = "SLOT_UNAVAILABLE"
    status_code = 400
    default_message = "Time slot not available"


class UpstreamError(ApiError):
    code = "UPSTREAM_ERROR"
    status_code = 502
    default_message = "Payment gateway error"


class UpstreamTimeout(UpstreamError):
    code = "UPSTREAM_TIMEOUT"
    status_code = 504
    default_message = "Payment gateway timed out"


class ServerError(ApiError):
    pass


def register_error_handlers(app, db):
    @app.errorhandler(ApiError)
    def _api_error(exc):
        db.session.rollback()
        if exc.status_code >= 500:
            logger.error("%s: %s", exc.code, exc.message)
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(HTTPException)
    def _http_error(exc):
        return jsonify(error=exc.description, code=exc.name.upper().replace(" ", "_")), exc.code

    @app.errorhandler(Exception)
    def _unexpected(exc):
        db.session.rollback()
        logger.exception("Unhandled error on request")
        return jsonify(error="Internal server error", code=ServerError.code), 500
