"""
Expected, user-facing failures of the access-control layer.

Each class carries the HTTP status and a default message; the app-level
error handler turns them into `{"error": ..., "code": ...}` responses.
None of these are server errors and none are retried.
"""


class AccessError(Exception):
    status_code = 400
    message = "Request rejected"

    def __init__(self, message: str = None):
        super().__init__(message or self.message)
        self.message = message or self.message

    @property
    def code(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code}


class InvalidRequest(AccessError):
    status_code = 400
    message = "Request body must be a JSON object"


class InvalidCredentials(AccessError):
    # same text for unknown email and wrong password
    status_code = 401
    message = "Invalid email or password"


class AccountDisabled(AccessError):
    status_code = 403
    message = "This account has been disabled. Please contact the administrator."


class IpBlocked(AccessError):
    status_code = 429
    message = "Too many failed login attempts from this address. Contact the administrator to regain access."


class IpNotAuthorized(AccessError):
    status_code = 403
    message = "Access from this address is not authorized"


class Unauthenticated(AccessError):
    status_code = 401
    message = "Authentication required"


class SessionExpired(AccessError):
    status_code = 401
    message = "Session expired. Please log in again."


class Forbidden(AccessError):
    status_code = 403
    message = "Admin access required"


class RateLimited(AccessError):
    status_code = 429
    message = "Hourly analysis limit reached. Please try again later."


class AnalysisUnavailable(AccessError):
    status_code = 502
    message = "Failed to generate analysis. Please try again."
