from __future__ import annotations

from enum import Enum

from google.api_core import exceptions as gexc


class WriteFailureKind(str, Enum):
    PERMISSION = "permission"
    NETWORK = "network"
    OTHER = "other"


_PERMISSION_ERRORS = (gexc.PermissionDenied, gexc.Unauthenticated, gexc.Forbidden, gexc.Unauthorized)
_NETWORK_ERRORS = (
    gexc.ServiceUnavailable,
    gexc.DeadlineExceeded,
    gexc.GatewayTimeout,
    gexc.Aborted,
    gexc.RetryError,
    ConnectionError,
    TimeoutError,
)


def classify_write_error(exc: BaseException) -> WriteFailureKind:
    """Map a store client error to the operator-facing failure kind by type, not message text."""
    if isinstance(exc, _PERMISSION_ERRORS):
        return WriteFailureKind.PERMISSION
    if isinstance(exc, _NETWORK_ERRORS):
        return WriteFailureKind.NETWORK
    return WriteFailureKind.OTHER


class ReviewError(Exception):
    code = "review_error"
    message = "The operation could not be completed."

    def __init__(self, submission_id: str = "", message: str | None = None):
        super().__init__(message or self.message)
        self.submission_id = submission_id
        if message:
            self.message = message


class SubmissionNotFound(ReviewError):
    code = "submission_not_found"
    message = "This application no longer exists. It may already have been processed."


class AlreadyProcessed(ReviewError):
    code = "already_processed"
    message = "This application has already been processed."

    def __init__(self, submission_id: str = "", status: str = ""):
        super().__init__(submission_id)
        self.status = status


class RejectionReasonRequired(ReviewError):
    code = "rejection_reason_required"
    message = "A rejection reason is required for this application."


_WRITE_MESSAGES = {
    WriteFailureKind.PERMISSION: "You do not have permission to perform this action.",
    WriteFailureKind.NETWORK: "Network error while saving. Check the connection and try again.",
    WriteFailureKind.OTHER: "Saving failed. Please try again.",
}


class WriteFailed(ReviewError):
    code = "write_failed"

    def __init__(self, submission_id: str, cause: BaseException):
        self.kind = classify_write_error(cause)
        super().__init__(submission_id, _WRITE_MESSAGES[self.kind])
        self.cause = cause

    @property
    def detail(self) -> str:
        return f"{self.code}:{self.kind.value}"
