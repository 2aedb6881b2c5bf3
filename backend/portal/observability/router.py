"""Observability endpoints: Prometheus scrape target and health check."""

from fastapi import APIRouter, Depends, Response
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy.orm import Session

from ..database import get_db
from ..storage import ObjectStoragePort, get_storage
from .health import HealthStatus, check_database_health, check_object_storage_health, get_overall_health

router = APIRouter(tags=["Observability"])


@router.get("/metrics", include_in_schema=False)
def metrics():
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


@router.get("/health", summary="Health check endpoint")
async def health_check(
    db: Session = Depends(get_db),
    storage: ObjectStoragePort = Depends(get_storage),
):
    """Report database and asset bucket health. 503 when any component is unhealthy."""
    components = {
        "database": check_database_health(db),
        "object_storage": await check_object_storage_health(storage),
    }
    overall = get_overall_health(components)

    return JSONResponse(
        content={
            "status": overall.value,
            "components": {name: comp.to_dict() for name, comp in components.items()},
        },
        status_code=503 if overall == HealthStatus.UNHEALTHY else 200,
    )
