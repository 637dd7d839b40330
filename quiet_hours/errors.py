"""
Exception taxonomy for the booking and reminder services.

Services raise these; the FastAPI layer maps each class to an HTTP status
in ``quiet_hours.main``. Upstream client errors (pymongo, httpx, resend)
are wrapped at the boundary that talks to them.
"""


class QuietHoursError(Exception):
    """Base class for every error this service raises on purpose."""

    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class InvalidSessionError(QuietHoursError):
    """Raised when a booking has an inverted interval or starts in the past."""

    status_code = 400


class SessionConflictError(QuietHoursError):
    """
    Raised when a proposed interval overlaps another session of the same owner.

    ``conflicting_ids`` lists the sessions that overlap.
    """

    status_code = 409

    def __init__(self, conflicting_ids):
        self.conflicting_ids = list(conflicting_ids)
        super().__init__("Time conflict with existing study session")


class SessionNotFoundError(QuietHoursError):
    """Raised for an unknown session id, or one owned by somebody else."""

    status_code = 404

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__("Study session not found")


class AuthenticationError(QuietHoursError):
    status_code = 401

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class UpstreamServiceError(QuietHoursError):
    """An external collaborator (store, identity provider, email API) failed."""

    status_code = 502


class StoreError(UpstreamServiceError):
    pass


class IdentityLookupError(UpstreamServiceError):
    """
    Raised when the identity provider cannot resolve a user.

    The reminder scanner treats this as a per-session skip.
    """

    def __init__(self, user_id: str, reason: str):
        self.user_id = user_id
        self.reason = reason
        super().__init__(f"Failed to get user {user_id}: {reason}")


class NotificationError(UpstreamServiceError):
    pass
