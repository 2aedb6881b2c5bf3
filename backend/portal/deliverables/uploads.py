"""Deliverable proof upload endpoint

POST /orgs/{org_id}/deliverables/upload (multipart/form-data, admin only)

Form fields:
- file:            the file (max MAX_UPLOAD_SIZE_BYTES, 10 MB by default)
- deliverableId:   deliverable the asset belongs to (must be in this org)
- proofType:       optional proof label; images default to "screenshot"
- isRequiredProof: "true" to count the asset as required proof
"""

import time
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..auth.dependencies import WorkspaceContext, require_admin
from ..config import Settings, get_settings
from ..database import get_db
from ..errors import UpstreamFailure, ValidationFailed
from ..observability import get_logger, upload_size_bytes, uploads_total
from ..schemas import DataEnvelope
from ..storage import ObjectStoragePort, StorageError, build_asset_key, get_storage
from . import service
from .schemas import UploadResponse

logger = get_logger(__name__)

router = APIRouter(prefix="/orgs/{org_id}/deliverables", tags=["Uploads"])


def _format_limit(max_bytes: int) -> str:
    return f"{max_bytes // (1024 * 1024)}MB"


@router.post("/upload", response_model=DataEnvelope[UploadResponse], status_code=status.HTTP_201_CREATED)
async def upload_deliverable_asset(
    file: UploadFile = File(...),
    deliverable_id: UUID = Form(..., alias="deliverableId"),
    proof_type: Optional[str] = Form(None, alias="proofType"),
    is_required_proof: bool = Form(False, alias="isRequiredProof"),
    ctx: WorkspaceContext = Depends(require_admin),
    db: Session = Depends(get_db),
    storage: ObjectStoragePort = Depends(get_storage),
    settings: Settings = Depends(get_settings),
):
    """Store a file for a deliverable and attach it as an asset.

    The deliverable is looked up inside the caller's org before anything is
    written, so an id from another org is a 404.
    """
    deliverable = service.get_deliverable(db, ctx.org_id, deliverable_id)

    content = await file.read()
    if not content:
        raise ValidationFailed("No file provided")
    if len(content) > settings.MAX_UPLOAD_SIZE_BYTES:
        raise ValidationFailed(
            f"File too large. Maximum size is {_format_limit(settings.MAX_UPLOAD_SIZE_BYTES)}"
        )

    content_type = file.content_type or "application/octet-stream"
    is_image = content_type.startswith("image/")
    filename = file.filename or "upload"

    key = build_asset_key(ctx.org_id, deliverable.id, filename, int(time.time() * 1000))
    try:
        stored = await storage.store_object(
            key=key,
            data=content,
            content_type=content_type,
            metadata={"org-id": str(ctx.org_id), "deliverable-id": str(deliverable.id)},
        )
    except StorageError as e:
        uploads_total.labels(kind="deliverable_asset", status="error").inc()
        logger.error(
            f"Upload failed for {filename}: {e}",
            extra={"org_id": ctx.org_id, "user_id": ctx.user_id, "deliverable_id": deliverable.id},
            exc_info=True,
        )
        raise UpstreamFailure("Failed to upload file") from e

    try:
        asset = service.add_asset(
            db,
            deliverable,
            url=stored.url,
            actor_id=ctx.user_id,
            name=filename,
            kind="image" if is_image else "file",
            is_required_proof=is_required_proof,
            proof_type=proof_type or ("screenshot" if is_image else None),
        )
    except SQLAlchemyError:
        # No asset row points at the object, so it must not outlive the request
        db.rollback()
        uploads_total.labels(kind="deliverable_asset", status="error").inc()
        await storage.discard_object(stored.key)
        raise

    uploads_total.labels(kind="deliverable_asset", status="success").inc()
    upload_size_bytes.observe(len(content))
    logger.info(
        f"Uploaded asset {stored.key}",
        extra={"org_id": ctx.org_id, "user_id": ctx.user_id, "deliverable_id": deliverable.id},
    )
    return {"data": {"url": stored.url, "key": stored.key, "asset": asset}}
