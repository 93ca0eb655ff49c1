from flask import jsonify


class ApiError(Exception):
    """Base error carrying the HTTP status it maps to."""

    status_code = 500
    default_message = "Server error"

    def __init__(self, message: str | None = None, details: str | None = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.details = details

    def to_response(self):
        """
        Build the JSON error response for this error.

        Returns:
            tuple: Flask response and status code.
        """
        body = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return jsonify(body), self.status_code


class ValidationError(ApiError):
    status_code = 400
    default_message = "Invalid data"


class AuthenticationError(ApiError):
    status_code = 401
    default_message = "Token is not valid"


class AuthorizationError(ApiError):
    status_code = 403
    default_message = "Forbidden"


class NotFoundError(ApiError):
    status_code = 404
    default_message = "Not found"


class ServerError(ApiError):
    status_code = 500
    default_message = "Server error"
