"""Error taxonomy for the portal API.

Each error kind carries the HTTP status it maps to at the API boundary.
main.py registers a single handler that renders any PortalError as
``{"error": <message>}`` with that status.

    Unauthenticated          401  no identity on the request
    NotAMember               403  identity present, no membership row
    InsufficientPermissions  403  membership present, role too low
    NotFound                 404  org / deliverable / report absent
    ValidationFailed         400  bad input, illegal transition, unmet precondition
    UpstreamFailure          500  database, storage or identity provider failure
"""

from fastapi import status


class PortalError(Exception):
    """Base class for errors that are reported to API clients."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal server error"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthenticated(PortalError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Not authenticated"


class NotAMember(PortalError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Not a member of this workspace"


class InsufficientPermissions(PortalError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Insufficient permissions"


class NotFound(PortalError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class ValidationFailed(PortalError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Validation failed"


class UpstreamFailure(PortalError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Upstream service failure"


class AccessRedirect(Exception):
    """Raised by page-style access checks to send the caller elsewhere."""

    def __init__(self, location: str):
        self.location = location
        super().__init__(location)
