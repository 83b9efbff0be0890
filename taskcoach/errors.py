"""Application error types.

Validation errors surface synchronously to the caller with a stable,
machine-readable ``code``. The sweep engines catch everything else per item.
"""


class AppError(Exception):
    """Base class for errors that carry a stable code."""

    status_code = 500
    default_code = "internal_error"

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code

    def to_dict(self) -> dict:
        return {"error": {"code": self.code, "message": self.message}}


class ValidationError(AppError):
    """Input rejected before any state was changed."""

    status_code = 422
    default_code = "validation_error"


class NotFoundError(AppError):
    """A referenced task or template no longer exists."""

    status_code = 404
    default_code = "not_found"


class TransientDispatchError(AppError):
    """A notification could not be delivered."""

    status_code = 503
    default_code = "dispatch_failed"
