"""
Service error taxonomy for Plastic Clever Schools Evidence Review

Every business-rule failure raised by the services is a ``ServiceError``.
The Flask error handler in ``app.py`` turns it into a JSON response using
``http_status``, ``code`` and ``context``.
"""


class ServiceError(Exception):
    http_status = 500
    code = "SERVICE_ERROR"

    def __init__(self, message: str, *, code: str = None, context: dict = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.context = context or {}

    def to_dict(self) -> dict:
        payload = {"message": self.message, "code": self.code}
        payload.update(self.context)
        return payload


class ValidationError(ServiceError):
    http_status = 400
    code = "VALIDATION_ERROR"


class PermissionDenied(ServiceError):
    http_status = 403
    code = "FORBIDDEN"


class NotFound(ServiceError):
    http_status = 404
    code = "NOT_FOUND"


class Conflict(ServiceError):
    http_status = 409
    code = "CONFLICT"


class InvalidState(ServiceError):
    http_status = 400
    code = "INVALID_STATE"
