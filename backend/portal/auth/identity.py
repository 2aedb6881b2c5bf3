"""Caller identity and the identity-provider port.

The identity provider authenticates requests with signed bearer tokens and
answers questions about the caller's active organization. It is read-only:
nothing here writes identity state.

Token Claims:
=============

- sub:      identity-provider user id (opaque string), required
- email:    caller's email, optional
- name:     caller's display name, optional
- org_id:   external reference of the caller's active org (``org_...``), optional
- org_role: caller's role in that org (``org:admin`` | ``org:member`` | ...), optional
- org_name: display name of that org, optional
- iat, exp: standard timestamps

Example payload:
{
  "sub": "user_2abc",
  "email": "jane@agency.io",
  "org_id": "org_9xyz",
  "org_role": "org:admin",
  "org_name": "Acme Client",
  "iat": 1704368400,
  "exp": 1704372000
}
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt

from ..config import get_settings


@dataclass(frozen=True)
class Identity:
    """The authenticated caller, threaded explicitly into every check."""
    user_id: str
    email: Optional[str] = None
    name: Optional[str] = None
    org_ref: Optional[str] = None
    org_role: Optional[str] = None
    org_name: Optional[str] = None


@dataclass(frozen=True)
class OrgMetadata:
    """What the identity provider knows about an org and the caller's place in it."""
    external_ref: str
    name: str
    role: Optional[str] = None


class IdentityProvider(ABC):
    """Port for the external identity provider."""

    @abstractmethod
    def authenticate(self, token: str) -> Identity:
        """Return the identity a bearer token proves.

        Raises:
            jwt.InvalidTokenError: If the token is invalid or expired
        """

    @abstractmethod
    def get_org_metadata(self, identity: Identity, external_ref: str) -> Optional[OrgMetadata]:
        """Return metadata for an external org as seen by the caller, or None."""


class JWTIdentityProvider(IdentityProvider):
    """Identity provider backed by HS256 tokens signed with a shared secret."""

    def __init__(self, secret: str, algorithm: str = "HS256"):
        self.secret = secret
        self.algorithm = algorithm

    def authenticate(self, token: str) -> Identity:
        payload = decode_token(token, secret=self.secret, algorithm=self.algorithm)

        user_id = payload.get("sub")
        if not user_id:
            raise jwt.InvalidTokenError("missing subject claim")

        return Identity(
            user_id=str(user_id),
            email=payload.get("email"),
            name=payload.get("name"),
            org_ref=payload.get("org_id"),
            org_role=payload.get("org_role"),
            org_name=payload.get("org_name"),
        )

    def get_org_metadata(self, identity: Identity, external_ref: str) -> Optional[OrgMetadata]:
        # Tokens only describe the caller's active org
        if identity.org_ref != external_ref:
            return None
        return OrgMetadata(
            external_ref=external_ref,
            name=identity.org_name or "Organization",
            role=identity.org_role,
        )


def create_access_token(
    user_id: str,
    org_ref: Optional[str] = None,
    org_role: Optional[str] = None,
    org_name: Optional[str] = None,
    email: Optional[str] = None,
    name: Optional[str] = None,
    expires_minutes: Optional[int] = None,
) -> str:
    """Create a signed token carrying the claims listed in the module docstring.

    Used by tests and local tooling; production tokens are minted by the
    identity provider itself.
    """
    settings = get_settings()
    now = datetime.now(timezone.utc)
    if expires_minutes is None:
        expires_minutes = settings.JWT_EXPIRY_MINUTES
    expiration = now + timedelta(minutes=expires_minutes)

    payload = {
        'sub': user_id,
        'iat': int(now.timestamp()),
        'exp': int(expiration.timestamp()),
    }
    optional_claims = {
        'org_id': org_ref,
        'org_role': org_role,
        'org_name': org_name,
        'email': email,
        'name': name,
    }
    payload.update({k: v for k, v in optional_claims.items() if v is not None})

    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str, secret: Optional[str] = None, algorithm: Optional[str] = None) -> Dict[str, Any]:
    """Decode and validate a token.

    Raises:
        jwt.ExpiredSignatureError: If token has expired
        jwt.InvalidTokenError: If token is invalid or tampered
    """
    settings = get_settings()
    return jwt.decode(
        token,
        secret or settings.JWT_SECRET,
        algorithms=[algorithm or settings.JWT_ALGORITHM],
    )
