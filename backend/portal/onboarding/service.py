"""Onboarding service: flows, per-user node progress and contract signing.

Progress rows are unique per (org, user, node) and written as upserts, so
completing a node twice leaves one row.
"""

import base64
import binascii
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..auth.identity import Identity
from ..database import TenantQuery
from ..errors import NotFound, UpstreamFailure, ValidationFailed
from ..models.onboarding import ContractSignature, OnboardingFlow, OnboardingNode, OnboardingProgress
from ..models.org import OrgMember
from ..observability import get_logger, upload_size_bytes, uploads_total
from ..storage import ObjectStoragePort, StorageError, build_signature_key

logger = get_logger(__name__)

PNG_DATA_URL_PREFIX = "data:image/png;base64,"
DEFAULT_FLOW_NAME = "Client onboarding"


# ============================================================================
# Flows & nodes
# ============================================================================

def get_published_flow(db: Session, org_id: UUID) -> Optional[OnboardingFlow]:
    return TenantQuery.scoped_query(db, OnboardingFlow, org_id).filter(
        OnboardingFlow.status == "published"
    ).order_by(OnboardingFlow.published_at.desc()).first()


def get_latest_flow(db: Session, org_id: UUID) -> Optional[OnboardingFlow]:
    return TenantQuery.scoped_query(db, OnboardingFlow, org_id).order_by(
        OnboardingFlow.created_at.desc()
    ).first()


def add_node(
    db: Session,
    org_id: UUID,
    type: str,
    title: str,
    required: bool = True,
    config: Optional[Dict[str, Any]] = None,
) -> OnboardingNode:
    """Append a node to the org's current flow, creating a draft flow if none exists."""
    flow = get_latest_flow(db, org_id)
    if flow is None:
        flow = OnboardingFlow(org_id=org_id, name=DEFAULT_FLOW_NAME, status="draft")
        db.add(flow)
        db.flush()

    max_index = db.query(func.max(OnboardingNode.order_index)).filter(
        OnboardingNode.flow_id == flow.id,
        OnboardingNode.org_id == org_id,
    ).scalar()

    node = OnboardingNode(
        flow_id=flow.id,
        org_id=org_id,
        type=type,
        title=title,
        required=required,
        order_index=(max_index + 1) if max_index is not None else 0,
        config=config or {},
    )
    db.add(node)
    db.commit()
    db.refresh(node)
    return node


def publish_flow(db: Session, org_id: UUID, name: Optional[str] = None) -> OnboardingFlow:
    """Publish the org's current flow. Publishing gates client access on completion.

    Raises:
        NotFound: If the org has no flow
        ValidationFailed: If the flow has no nodes
    """
    flow = get_latest_flow(db, org_id)
    if flow is None:
        raise NotFound("Onboarding flow not found")
    if not flow.nodes:
        raise ValidationFailed("Cannot publish an onboarding flow without nodes")

    if name:
        flow.name = name
    flow.status = "published"
    flow.published_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(flow)

    logger.info(f"Published onboarding flow '{flow.name}'", extra={"org_id": org_id})
    return flow


def _required_node_ids(flow: Optional[OnboardingFlow]) -> List[UUID]:
    if flow is None:
        return []
    return [node.id for node in flow.nodes if node.required]


# ============================================================================
# Progress
# ============================================================================

def get_progress(db: Session, org_id: UUID, user_id: str) -> List[OnboardingProgress]:
    return TenantQuery.scoped_query(db, OnboardingProgress, org_id).filter(
        OnboardingProgress.user_id == user_id
    ).all()


def is_onboarding_complete(db: Session, org_id: UUID, user_id: str) -> bool:
    """True when the org has no published flow with nodes, else when every required node is done."""
    flow = get_published_flow(db, org_id)
    if flow is None or not flow.nodes:
        return True

    completed = {
        row.node_id for row in get_progress(db, org_id, user_id) if row.status == "completed"
    }
    return all(node_id in completed for node_id in _required_node_ids(flow))


def _get_published_node(db: Session, org_id: UUID, node_id: UUID) -> OnboardingNode:
    node = TenantQuery.get_or_404(db, OnboardingNode, node_id, org_id, label="Onboarding node")
    if node.flow.status != "published":
        raise ValidationFailed("Onboarding flow is not published")
    return node


def complete_node(
    db: Session,
    org_id: UUID,
    user_id: str,
    node_id: UUID,
    metadata: Optional[Dict[str, Any]] = None,
) -> OnboardingProgress:
    """Mark a node completed for a user (upsert on org, user, node).

    Raises:
        NotFound: If the node does not belong to this org
        ValidationFailed: If the node's flow is still a draft
    """
    _get_published_node(db, org_id, node_id)

    now = datetime.now(timezone.utc)
    row = _find_progress(db, org_id, user_id, node_id)
    if row is None:
        row = OnboardingProgress(org_id=org_id, user_id=user_id, node_id=node_id)
        db.add(row)
    row.status = "completed"
    row.completed_at = now
    row.metadata_json = metadata or {}

    try:
        db.commit()
    except IntegrityError:
        # Concurrent completion of the same node inserted the row first
        db.rollback()
        row = _find_progress(db, org_id, user_id, node_id)
        row.status = "completed"
        row.completed_at = now
        row.metadata_json = metadata or {}
        db.commit()

    db.refresh(row)
    logger.info(
        f"Completed onboarding node {node_id}",
        extra={"org_id": org_id, "user_id": user_id},
    )
    return row


def _find_progress(db: Session, org_id: UUID, user_id: str, node_id: UUID) -> Optional[OnboardingProgress]:
    return TenantQuery.scoped_query(db, OnboardingProgress, org_id).filter(
        OnboardingProgress.user_id == user_id,
        OnboardingProgress.node_id == node_id,
    ).first()


@dataclass
class MemberStatus:
    user_id: str
    role: str
    completed_nodes: int
    required_nodes: int
    is_complete: bool


def get_all_status(db: Session, org_id: UUID) -> List[MemberStatus]:
    """Onboarding completion of every member of the org against the published flow."""
    flow = get_published_flow(db, org_id)
    required = set(_required_node_ids(flow))

    completed_by_user: Dict[str, set] = {}
    rows = TenantQuery.scoped_query(db, OnboardingProgress, org_id).filter(
        OnboardingProgress.status == "completed"
    ).all()
    for row in rows:
        completed_by_user.setdefault(row.user_id, set()).add(row.node_id)

    members = TenantQuery.scoped_query(db, OrgMember, org_id).order_by(OrgMember.created_at).all()
    statuses = []
    for member in members:
        done = completed_by_user.get(member.user_id, set())
        statuses.append(MemberStatus(
            user_id=member.user_id,
            role=member.role,
            completed_nodes=len(done & required),
            required_nodes=len(required),
            is_complete=required <= done,
        ))
    return statuses


# ============================================================================
# Contract signing
# ============================================================================

def decode_signature_image(data_url: str) -> bytes:
    """Decode a ``data:image/png;base64,...`` URL.

    Raises:
        ValidationFailed: If it is not a base64 PNG data URL
    """
    if not data_url or not data_url.startswith(PNG_DATA_URL_PREFIX):
        raise ValidationFailed("Signature must be a PNG data URL")
    try:
        image = base64.b64decode(data_url[len(PNG_DATA_URL_PREFIX):], validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValidationFailed("Signature image is not valid base64") from e
    if not image:
        raise ValidationFailed("Signature image is empty")
    return image


async def sign_contract(
    db: Session,
    storage: ObjectStoragePort,
    org_id: UUID,
    identity: Identity,
    node_id: UUID,
    signed_name: str,
    signature_data_url: str,
    contract_sha256: Optional[str] = None,
    terms_version: Optional[str] = None,
    privacy_version: Optional[str] = None,
    ip: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> ContractSignature:
    """Store the signature image, record the signature and complete the contract node.

    Raises:
        NotFound: If the node does not belong to this org
        ValidationFailed: If the node is not a published contract node or the image is malformed
        UpstreamFailure: If the image cannot be stored
    """
    node = _get_published_node(db, org_id, node_id)
    if node.type != "contract":
        raise ValidationFailed("Node is not a contract step")

    image = decode_signature_image(signature_data_url)
    key = build_signature_key(org_id, identity.user_id, int(time.time() * 1000))
    try:
        stored = await storage.store_object(key=key, data=image, content_type="image/png")
    except StorageError as e:
        uploads_total.labels(kind="signature", status="error").inc()
        logger.error(
            f"Signature upload failed: {e}",
            extra={"org_id": org_id, "user_id": identity.user_id},
            exc_info=True,
        )
        raise UpstreamFailure("Failed to store signature") from e

    signature = ContractSignature(
        org_id=org_id,
        user_id=identity.user_id,
        node_id=node.id,
        signed_name=signed_name,
        signature_image_url=stored.url,
        contract_sha256=contract_sha256,
        terms_version=terms_version,
        privacy_version=privacy_version,
        ip=ip,
        user_agent=user_agent,
    )
    try:
        db.add(signature)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        uploads_total.labels(kind="signature", status="error").inc()
        await storage.discard_object(stored.key)
        raise
    db.refresh(signature)
    uploads_total.labels(kind="signature", status="success").inc()
    upload_size_bytes.observe(len(image))

    complete_node(db, org_id, identity.user_id, node.id, {"signature_id": str(signature.id)})
    logger.info(
        "Contract signed",
        extra={"org_id": org_id, "user_id": identity.user_id},
    )
    return signature
