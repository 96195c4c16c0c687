"""
Error taxonomy shared by the services and mapped to HTTP by api/errors.py.

Input shape problems are reported with marshmallow's ValidationError.
"""


class ServiceError(Exception):
    status = 500
    code = "INTERNAL_ERROR"
    default_message = "An unexpected error occurred"

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthorized(ServiceError):
    status = 401
    code = "UNAUTHORIZED"
    default_message = "Unauthorized"


class InvalidSession(Unauthorized):
    """Refresh token unknown, expired, revoked or lost a rotation race."""
    code = "INVALID_SESSION"
    default_message = "Invalid or expired refresh token"


class Forbidden(ServiceError):
    status = 403
    code = "FORBIDDEN"
    default_message = "Insufficient role"


class NotFound(ServiceError):
    status = 404
    code = "NOT_FOUND"
    default_message = "Resource not found"


class Conflict(ServiceError):
    status = 409
    code = "CONFLICT"
    default_message = "Conflict"


class TransientStoreFailure(ServiceError):
    """Background-only: storage hiccup, retried after back-off."""
    code = "TRANSIENT_STORE_FAILURE"


class UnknownMetric(ServiceError):
    """Background-only: a queued metric name outside the allow-list."""
    status = 400
    code = "UNKNOWN_METRIC"
    default_message = "Unknown metric"
