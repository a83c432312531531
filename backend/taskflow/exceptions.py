"""Application exceptions.

Services raise these; the API layer renders them as JSON error bodies with
a stable ``code`` so clients can show fixed user-facing messages.
"""

from typing import Optional


class TaskflowError(Exception):
    """Base exception for application errors."""

    status_code: int = 500

    def __init__(self, message: str, code: str = "TASKFLOW_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class NotFoundError(TaskflowError):
    """A requested row does not exist or is not visible to the caller."""

    status_code = 404

    def __init__(self, resource: str, message: Optional[str] = None):
        self.resource = resource
        super().__init__(
            message=message or f"{resource} not found",
            code="NOT_FOUND",
        )


class PermissionDeniedError(TaskflowError):
    """The caller lacks membership or the permission for an action."""

    status_code = 403

    def __init__(self, message: str = "Access denied"):
        super().__init__(message=message, code="PERMISSION_DENIED")


class ConflictError(TaskflowError):
    """The write collides with an existing row."""

    status_code = 409

    def __init__(self, message: str):
        super().__init__(message=message, code="CONFLICT")


class InvalidRequestError(TaskflowError):
    """The request is well-formed JSON but semantically invalid."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message=message, code="INVALID_REQUEST")


class FeatureUnavailableError(TaskflowError):
    """A table or column backing a feature has not been migrated yet.

    This is an informational state, not a failure: the API answers 200
    with ``feature_available: false``.
    """

    status_code = 200

    def __init__(self, feature: str, message: Optional[str] = None):
        self.feature = feature
        super().__init__(
            message=message
            or f"{feature.capitalize()} feature not available. Database migration needed.",
            code="FEATURE_UNAVAILABLE",
        )
