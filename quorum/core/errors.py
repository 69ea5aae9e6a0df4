"""Error taxonomy for the meeting update pipeline.

Every error carries the HTTP status the API layer answers with.
"""


class MeetingSyncError(Exception):
    """Base class for meeting pipeline errors."""

    status_code: int = 500
    default_message: str = "Failed to update meeting."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class AuthenticationMissing(MeetingSyncError):
    """No caller identity was presented."""

    status_code = 401
    default_message = "Authentication required."


class AccessDenied(MeetingSyncError):
    """Caller is not a member, or lacks the role for the operation."""

    status_code = 403
    default_message = "Access denied."


class NotFound(MeetingSyncError):
    """Meeting, revision or entity does not exist."""

    status_code = 404
    default_message = "Not found."


class ValidationFailure(MeetingSyncError):
    """Request body is unusable."""

    status_code = 400
    default_message = "Meeting payload is required."


class InternalSyncFailure(MeetingSyncError):
    """A downstream write failed after validation passed."""

    status_code = 500
    default_message = "Failed to update meeting."
