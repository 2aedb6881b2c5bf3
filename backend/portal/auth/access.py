"""Workspace access verification.

Every workspace-scoped operation goes through ``verify_access`` before it
touches workspace data. The role it returns comes from the membership row,
never from the request.

Check order:
    1. identity present            else UNAUTHENTICATED
    2. workspace id resolves       else NOT_FOUND (no provisioning here)
    3. membership row exists       else NOT_A_MEMBER
    4. role meets required floor   else INSUFFICIENT_PERMISSIONS
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import get_settings
from ..errors import (
    AccessRedirect,
    InsufficientPermissions,
    NotAMember,
    NotFound,
    PortalError,
    Unauthenticated,
    UpstreamFailure,
)
from ..models.org import OrgMember
from ..observability import access_decisions_total, get_logger
from ..tenancy.resolver import resolve_org_id
from .identity import Identity
from .roles import OrgRole, has_permission

logger = get_logger(__name__)


class AccessError(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    NOT_FOUND = "not_found"
    NOT_A_MEMBER = "not_a_member"
    INSUFFICIENT_PERMISSIONS = "insufficient_permissions"
    UPSTREAM_FAILURE = "upstream_failure"


_ERROR_TYPES = {
    AccessError.UNAUTHENTICATED: Unauthenticated,
    AccessError.NOT_FOUND: NotFound,
    AccessError.NOT_A_MEMBER: NotAMember,
    AccessError.INSUFFICIENT_PERMISSIONS: InsufficientPermissions,
    AccessError.UPSTREAM_FAILURE: UpstreamFailure,
}


@dataclass(frozen=True)
class AccessResult:
    """Outcome of an access check.

    ``role`` is the caller's actual membership role whenever a membership
    row was found, including on INSUFFICIENT_PERMISSIONS.
    """
    allowed: bool
    role: Optional[OrgRole] = None
    org_id: Optional[object] = None
    error: Optional[AccessError] = None
    message: Optional[str] = None

    def to_exception(self) -> PortalError:
        """The PortalError matching this denial, for raising at the HTTP boundary."""
        return _ERROR_TYPES[self.error](self.message)


def _deny(error: AccessError, message: str, required_role: Optional[OrgRole], **kwargs) -> AccessResult:
    access_decisions_total.labels(
        outcome=error.value,
        required_role=required_role.value if required_role else "none",
    ).inc()
    return AccessResult(allowed=False, error=error, message=message, **kwargs)


def verify_access(
    db: Session,
    identity: Optional[Identity],
    workspace_id: str,
    required_role: Optional[OrgRole] = None,
) -> AccessResult:
    """Verify the caller may act in a workspace.

    Args:
        db: Database session
        identity: Authenticated caller, or None
        workspace_id: Internal org UUID or identity-provider reference (``org_...``)
        required_role: Minimum role; None and MEMBER accept any membership

    Returns:
        AccessResult: never raises for access denials

    Example:
        result = verify_access(db, identity, "org_9xyz", OrgRole.ADMIN)
        if not result.allowed:
            raise result.to_exception()
    """
    if identity is None:
        return _deny(AccessError.UNAUTHENTICATED, "Not authenticated", required_role)

    try:
        org_id = resolve_org_id(db, str(workspace_id))
        if org_id is None:
            logger.warning(
                f"Workspace {workspace_id} did not resolve",
                extra={"user_id": identity.user_id},
            )
            return _deny(AccessError.NOT_FOUND, "Workspace not found", required_role)

        membership = db.query(OrgMember).filter(
            OrgMember.org_id == org_id,
            OrgMember.user_id == identity.user_id,
        ).first()
    except SQLAlchemyError:
        logger.error(
            f"Membership lookup failed for workspace {workspace_id}",
            extra={"user_id": identity.user_id},
            exc_info=True,
        )
        return _deny(AccessError.UPSTREAM_FAILURE, "Failed to verify workspace access", required_role)

    if membership is None:
        logger.warning(
            "Access denied: not a member",
            extra={"org_id": org_id, "user_id": identity.user_id},
        )
        return _deny(AccessError.NOT_A_MEMBER, "Not a member of this workspace", required_role,
                     org_id=org_id)

    role = OrgRole(membership.role)

    if not has_permission(role, required_role):
        logger.warning(
            f"Access denied: role {role.value} below {required_role.value}",
            extra={"org_id": org_id, "user_id": identity.user_id},
        )
        return _deny(AccessError.INSUFFICIENT_PERMISSIONS, "Insufficient permissions", required_role,
                     role=role, org_id=org_id)

    access_decisions_total.labels(
        outcome="allowed",
        required_role=required_role.value if required_role else "none",
    ).inc()
    return AccessResult(allowed=True, role=role, org_id=org_id)


def require_access_or_redirect(
    db: Session,
    identity: Optional[Identity],
    workspace_id: str,
    required_role: Optional[OrgRole] = None,
    fallback: Optional[str] = None,
) -> OrgRole:
    """Page-style variant of ``verify_access`` returning the verified role.

    Raises:
        AccessRedirect: On any denial, pointing at ``fallback`` or
            ``ACCESS_FALLBACK_PATH``
    """
    result = verify_access(db, identity, workspace_id, required_role)
    if not result.allowed:
        raise AccessRedirect(fallback or get_settings().ACCESS_FALLBACK_PATH)
    return result.role
