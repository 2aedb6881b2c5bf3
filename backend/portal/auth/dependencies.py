"""FastAPI dependencies for authentication and workspace authorization.

Routes never read an org id or a role from the request body. They take a
``WorkspaceContext`` from ``WorkspaceAccess``, which resolves the ``org_id``
path parameter and runs the access verifier.

Usage:
    @router.get("/orgs/{org_id}/deliverables")
    def list_deliverables(ctx: WorkspaceContext = Depends(require_member)):
        ...

    @router.post("/orgs/{org_id}/updates")
    def create_update(ctx: WorkspaceContext = Depends(require_admin)):
        ...
"""

from dataclasses import dataclass
from typing import Optional
from uuid import UUID

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from ..config import get_settings
from ..database import get_db
from ..errors import Unauthenticated
from ..observability import bind_workspace
from .access import verify_access
from .identity import Identity, IdentityProvider, JWTIdentityProvider
from .roles import OrgRole, is_admin_role

# auto_error=False so a missing header reaches the verifier as "no identity"
bearer_scheme = HTTPBearer(auto_error=False)


def get_identity_provider() -> IdentityProvider:
    settings = get_settings()
    return JWTIdentityProvider(secret=settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def get_optional_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    provider: IdentityProvider = Depends(get_identity_provider),
) -> Optional[Identity]:
    """Identity proven by the bearer token, or None when no token was sent.

    Raises:
        Unauthenticated: If a token was sent but is expired or invalid
    """
    if credentials is None:
        return None

    try:
        return provider.authenticate(credentials.credentials)
    except jwt.ExpiredSignatureError:
        raise Unauthenticated("Token has expired")
    except jwt.InvalidTokenError:
        raise Unauthenticated("Invalid token")


def get_current_identity(identity: Optional[Identity] = Depends(get_optional_identity)) -> Identity:
    if identity is None:
        raise Unauthenticated()
    return identity


@dataclass(frozen=True)
class WorkspaceContext:
    """A verified (org, caller, role) triple for one request."""
    org_id: UUID
    identity: Identity
    role: OrgRole

    @property
    def user_id(self) -> str:
        return self.identity.user_id

    @property
    def is_admin(self) -> bool:
        return is_admin_role(self.role)


class WorkspaceAccess:
    """Dependency that verifies access to the ``org_id`` path parameter.

    Raises the PortalError matching the denial (401, 403 or 404).
    """

    def __init__(self, required_role: Optional[OrgRole] = None):
        self.required_role = required_role

    def __call__(
        self,
        org_id: str,
        identity: Optional[Identity] = Depends(get_optional_identity),
        db: Session = Depends(get_db),
    ) -> WorkspaceContext:
        result = verify_access(db, identity, org_id, self.required_role)
        if not result.allowed:
            raise result.to_exception()
        bind_workspace(result.org_id, identity.user_id)
        return WorkspaceContext(org_id=result.org_id, identity=identity, role=result.role)


require_member = WorkspaceAccess()
require_admin = WorkspaceAccess(OrgRole.ADMIN)
