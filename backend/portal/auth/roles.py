"""Membership roles and the role floor used by access checks.

Roles are tiers, not exact matches: a required role is a floor.

┌──────────────────────────┬───────┬───────┬────────┐
│ Action                   │ OWNER │ ADMIN │ MEMBER │
├──────────────────────────┼───────┼───────┼────────┤
│ View workspace data      │   ✓   │   ✓   │   ✓    │
│ Complete own onboarding  │   ✓   │   ✓   │   ✓    │
│ Manage deliverables      │   ✓   │   ✓   │        │
│ Upload proof             │   ✓   │   ✓   │        │
│ Post updates / roadmap   │   ✓   │   ✓   │        │
│ Generate reports         │   ✓   │   ✓   │        │
│ Provision client orgs    │   ✓   │   ✓   │        │
└──────────────────────────┴───────┴───────┴────────┘

Owner and admin are equivalent for every check in the API. Requiring
``OWNER`` is accepted but grants the same set as ``ADMIN``.
"""

from enum import Enum
from typing import Optional, Set


class OrgRole(str, Enum):
    """Membership role. Values are stored as TEXT in org_members.role."""
    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"


# Required role -> roles that satisfy it
ROLE_TIERS = {
    OrgRole.MEMBER: {OrgRole.OWNER, OrgRole.ADMIN, OrgRole.MEMBER},
    OrgRole.ADMIN: {OrgRole.OWNER, OrgRole.ADMIN},
    OrgRole.OWNER: {OrgRole.OWNER, OrgRole.ADMIN},
}


def has_permission(user_role: OrgRole, required_role: Optional[OrgRole]) -> bool:
    """Check whether a membership role meets a required role floor.

    Examples:
        >>> has_permission(OrgRole.MEMBER, None)
        True
        >>> has_permission(OrgRole.ADMIN, OrgRole.OWNER)
        True
        >>> has_permission(OrgRole.MEMBER, OrgRole.ADMIN)
        False
    """
    if required_role is None:
        return True
    return user_role in get_allowed_roles(required_role)


def get_allowed_roles(required_role: OrgRole) -> Set[OrgRole]:
    return set(ROLE_TIERS.get(required_role, set()))


def is_admin_role(role: Optional[OrgRole]) -> bool:
    return role in (OrgRole.OWNER, OrgRole.ADMIN)


def map_external_role(external_role: Optional[str]) -> OrgRole:
    """Map an identity-provider org role to a membership role.

    ``org:admin`` becomes admin; ``org:member``, ``org:basic_member`` and
    anything unknown become member. Ownership is never granted from a token.
    """
    if external_role == "org:admin":
        return OrgRole.ADMIN
    return OrgRole.MEMBER
