"""Error taxonomy shared by the store, the query engine and the auth gate.

Each error carries the HTTP status it maps to; translation into a response
happens in the exception handlers registered by ``main.create_app``.
"""
from typing import Optional


class JobBoardError(Exception):
    status_code = 500
    default_message = "Something went wrong!"

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(JobBoardError):
    status_code = 400
    default_message = "Invalid request"


class NotFoundError(JobBoardError):
    status_code = 404
    default_message = "Not found"


class ConflictError(JobBoardError):
    status_code = 409
    default_message = "Conflict"


class UnauthenticatedError(JobBoardError):
    status_code = 401
    default_message = "Access token required"


class InvalidTokenError(UnauthenticatedError):
    # A token was supplied but could not be verified
    status_code = 403
    default_message = "Invalid or expired token"


class ForbiddenError(JobBoardError):
    status_code = 403
    default_message = "Admin access required"


class InternalError(JobBoardError):
    pass
