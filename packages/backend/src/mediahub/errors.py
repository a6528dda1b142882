"""Error taxonomy — one closed set of failure kinds for the whole app.

Learn: Every failure a client can see is one of the ErrorKind values below.
Services raise the matching ApiError subclass; the exception handlers in
main.py render it as the failure envelope:

    {"statusCode": 409, "message": "...", "errorKind": "Conflict"}

Callers branch on the class (or .kind), never on the message text.
TokenInvalid and TokenExpired are both Unauthorized, so a handler that
only cares about "not logged in" can catch Unauthorized, while the
refresh UX can tell "log in again" apart from "refresh silently".
"""

import enum
from typing import Optional


class ErrorKind(str, enum.Enum):
    VALIDATION = "ValidationError"
    UNAUTHORIZED = "Unauthorized"
    TOKEN_INVALID = "TokenInvalid"
    TOKEN_EXPIRED = "TokenExpired"
    FORBIDDEN = "Forbidden"
    NOT_FOUND = "NotFound"
    CONFLICT = "Conflict"
    UPLOAD_FAILED = "UploadFailed"
    ASSET_DELETION_FAILED = "AssetDeletionFailed"
    PERSISTENCE = "PersistenceError"
    RATE_LIMITED = "RateLimited"
    INTERNAL = "InternalError"


class ApiError(Exception):
    """Base for every error that maps onto a response envelope."""

    status_code: int = 500
    kind: ErrorKind = ErrorKind.INTERNAL
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_envelope(self) -> dict:
        return {
            "statusCode": self.status_code,
            "message": self.message,
            "errorKind": self.kind.value,
        }


class ValidationError(ApiError):
    status_code = 400
    kind = ErrorKind.VALIDATION
    default_message = "Invalid request"


class Unauthorized(ApiError):
    status_code = 401
    kind = ErrorKind.UNAUTHORIZED
    default_message = "Authentication required"


class TokenInvalid(Unauthorized):
    kind = ErrorKind.TOKEN_INVALID
    default_message = "Invalid token"


class TokenExpired(Unauthorized):
    kind = ErrorKind.TOKEN_EXPIRED
    default_message = "Token has expired"


class Forbidden(ApiError):
    status_code = 403
    kind = ErrorKind.FORBIDDEN
    default_message = "Not allowed"


class NotFound(ApiError):
    status_code = 404
    kind = ErrorKind.NOT_FOUND
    default_message = "Not found"


class Conflict(ApiError):
    status_code = 409
    kind = ErrorKind.CONFLICT
    default_message = "Already exists"


class UploadFailed(ApiError):
    kind = ErrorKind.UPLOAD_FAILED
    default_message = "Asset upload failed"


class AssetDeletionFailed(ApiError):
    kind = ErrorKind.ASSET_DELETION_FAILED
    default_message = "Asset deletion failed"


class PersistenceError(ApiError):
    kind = ErrorKind.PERSISTENCE
    default_message = "Database write failed"
