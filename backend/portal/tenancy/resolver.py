"""Workspace id resolution and org provisioning.

Two deliberately separate paths:

- ``resolve_org_id`` maps a workspace identifier to an internal org id and
  never creates anything. Unknown external references resolve to None and
  callers fail closed.
- ``OrgProvisioner`` is the only place that creates orgs from an identity:
  ``resolve_or_provision`` for a client org named by the token, and
  ``setup_agency`` for tenant signup. Both are idempotent and retry
  unique-constraint races with a bounded, fixed-backoff policy.
"""

from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_fixed

from ..auth.identity import Identity, IdentityProvider
from ..auth.roles import OrgRole, map_external_role
from ..config import get_settings
from ..errors import NotFound, UpstreamFailure, ValidationFailed
from ..models.org import Org, OrgMember
from ..observability import get_logger, org_provisioning_total

logger = get_logger(__name__)

EXTERNAL_REF_PREFIX = "org_"


def is_external_ref(workspace_id: str) -> bool:
    return workspace_id.startswith(EXTERNAL_REF_PREFIX)


def resolve_org_id(db: Session, workspace_id: str) -> Optional[UUID]:
    """Resolve a workspace identifier to an internal org id.

    Accepts either an internal UUID or an identity-provider reference
    (``org_...``). Returns None when the identifier is malformed or the
    reference has no mapping. Pure read.
    """
    if not workspace_id:
        return None

    if is_external_ref(workspace_id):
        row = db.query(Org.id).filter(Org.external_ref == workspace_id).first()
        return row.id if row else None

    try:
        return UUID(workspace_id)
    except ValueError:
        return None


@dataclass
class ProvisionResult:
    org: Org
    role: OrgRole
    created: bool


class OrgProvisioner:
    """Resolve-or-provision collaborator for identity-provider orgs.

    Example:
        provisioner = OrgProvisioner(db, identity_provider)
        result = provisioner.resolve_or_provision("org_9xyz", identity)
    """

    def __init__(
        self,
        db: Session,
        identity_provider: IdentityProvider,
        max_attempts: Optional[int] = None,
        backoff_seconds: Optional[float] = None,
    ):
        settings = get_settings()
        self.db = db
        self.identity_provider = identity_provider
        self.max_attempts = max_attempts or settings.PROVISION_MAX_ATTEMPTS
        self.backoff_seconds = (
            backoff_seconds if backoff_seconds is not None else settings.PROVISION_BACKOFF_SECONDS
        )

    def build_retrying(self) -> Retrying:
        return Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_fixed(self.backoff_seconds),
            retry=retry_if_exception_type(IntegrityError),
            reraise=True,
        )

    def _run_with_retry(self, label: str, user_id: str, fn, *args) -> ProvisionResult:
        retrying = self.build_retrying()
        try:
            result = retrying(fn, *args)
        except IntegrityError as e:
            org_provisioning_total.labels(result="failed").inc()
            logger.error(
                f"Provisioning {label} failed after {self.max_attempts} attempts",
                extra={"user_id": user_id},
                exc_info=True,
            )
            raise UpstreamFailure("Failed to provision organization") from e

        org_provisioning_total.labels(result="created" if result.created else "existing").inc()
        return result

    def resolve_or_provision(self, external_ref: str, identity: Identity) -> ProvisionResult:
        """Return the org for ``external_ref``, creating it and the caller's membership if needed.

        Raises:
            NotFound: If the identity provider does not know the org for this caller
            UpstreamFailure: If the insert still conflicts after all attempts
        """
        metadata = self.identity_provider.get_org_metadata(identity, external_ref)
        if metadata is None:
            org_provisioning_total.labels(result="failed").inc()
            raise NotFound("Organization not found in identity provider")

        return self._run_with_retry(
            external_ref, identity.user_id, self._provision_once,
            metadata.external_ref, metadata.name, map_external_role(metadata.role), identity.user_id,
        )

    def setup_agency(self, identity: Identity, name: Optional[str] = None) -> ProvisionResult:
        """Sign a new tenant up: an agency org with the caller as owner.

        Idempotent. A caller who already belongs to an agency gets that
        agency back. When the token names an active org, the agency is bound
        to it so concurrent signups for the same org converge on one row.

        Raises:
            ValidationFailed: If the token's org is already registered as a client
            UpstreamFailure: If the insert still conflicts after all attempts
        """
        agency_name = name or default_agency_name(identity)
        return self._run_with_retry(
            f"agency for {identity.user_id}", identity.user_id, self._setup_agency_once,
            identity.user_id, agency_name, identity.org_ref,
        )

    def _provision_once(self, external_ref: str, name: str, role: OrgRole, user_id: str) -> ProvisionResult:
        try:
            org = self.db.query(Org).filter(Org.external_ref == external_ref).first()
            created = org is None
            if created:
                org = Org(external_ref=external_ref, name=name, kind="client")
                self.db.add(org)
                self.db.flush()
                logger.info(
                    f"Provisioned org for {external_ref}",
                    extra={"org_id": org.id, "user_id": user_id},
                )

            membership = self._ensure_membership(org, user_id, role)
            self.db.commit()
        except IntegrityError:
            # Another request inserted the same org or membership first
            self.db.rollback()
            logger.warning(f"Unique conflict provisioning {external_ref}, retrying")
            raise

        return ProvisionResult(org=org, role=OrgRole(membership.role), created=created)

    def _setup_agency_once(self, user_id: str, name: str, external_ref: Optional[str]) -> ProvisionResult:
        try:
            existing = self.db.query(OrgMember, Org).join(Org, Org.id == OrgMember.org_id).filter(
                OrgMember.user_id == user_id,
                Org.kind == "agency",
            ).order_by(OrgMember.created_at).first()
            if existing is not None:
                membership, org = existing
                return ProvisionResult(org=org, role=OrgRole(membership.role), created=False)

            org = None
            if external_ref:
                org = self.db.query(Org).filter(Org.external_ref == external_ref).first()
                if org is not None and org.kind != "agency":
                    raise ValidationFailed("Organization is already registered as a client")

            created = org is None
            if created:
                org = Org(external_ref=external_ref, name=name, kind="agency")
                self.db.add(org)
                self.db.flush()
                logger.info(
                    f"Agency '{name}' created at signup",
                    extra={"org_id": org.id, "user_id": user_id},
                )

            membership = self._ensure_membership(org, user_id, OrgRole.OWNER)
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            logger.warning(f"Unique conflict setting up agency for {user_id}, retrying")
            raise

        return ProvisionResult(org=org, role=OrgRole(membership.role), created=created)

    def _ensure_membership(self, org: Org, user_id: str, role: OrgRole) -> OrgMember:
        membership = self.db.query(OrgMember).filter(
            OrgMember.org_id == org.id,
            OrgMember.user_id == user_id,
        ).first()
        if membership is None:
            membership = OrgMember(org_id=org.id, user_id=user_id, role=role.value)
            self.db.add(membership)
        return membership


def default_agency_name(identity: Identity) -> str:
    """"<display name>'s Agency", falling back to the email local part, then "User"."""
    display = identity.name or (identity.email.split("@")[0] if identity.email else None) or "User"
    return f"{display}'s Agency"
