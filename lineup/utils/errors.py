"""
Error taxonomy shared by the domain functions and the HTTP layer.

Every error carries a machine readable ``error_type`` so clients can branch on
it (offer registration on ``EMAIL_NOT_FOUND``, show a waiting screen on
``VENDOR_PENDING_APPROVAL`` and so on).
"""


class LineupError(Exception):
    status_code = 500
    default_type = "INTERNAL_ERROR"

    def __init__(self, message, error_type=None, details=None):
        super().__init__(message)
        self.message = message
        self.error_type = error_type or self.default_type
        self.details = details

    def to_dict(self):
        body = {
            "success": False,
            "message": self.message,
            "errorType": self.error_type,
        }
        if self.details is not None:
            body["details"] = self.details
        return body


class ValidationError(LineupError):
    status_code = 400
    default_type = "VALIDATION_ERROR"


class AuthenticationError(LineupError):
    status_code = 401
    default_type = "INVALID_CREDENTIALS"


class ForbiddenError(LineupError):
    status_code = 403
    default_type = "FORBIDDEN"


class NotFoundError(LineupError):
    status_code = 404
    default_type = "NOT_FOUND"


class ConflictError(LineupError):
    status_code = 409
    default_type = "CONFLICT"


class CapacityError(LineupError):
    """Raised when an order cannot be served from current stock."""

    status_code = 400
    default_type = "INSUFFICIENT_STOCK"
