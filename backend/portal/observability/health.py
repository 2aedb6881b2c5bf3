"""Component health checks behind GET /health."""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..storage.ports import ObjectStoragePort, StorageError
from .logging_config import get_logger

logger = get_logger(__name__)


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


@dataclass
class ComponentHealth:
    status: HealthStatus
    message: Optional[str] = None
    latency_ms: Optional[float] = None

    def to_dict(self) -> dict:
        return {"status": self.status.value, "message": self.message, "latency_ms": self.latency_ms}


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


def check_database_health(db: Session) -> ComponentHealth:
    started = time.perf_counter()
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.error("Database health check failed", exc_info=True)
        return ComponentHealth(HealthStatus.UNHEALTHY, "Database unreachable")
    return ComponentHealth(HealthStatus.HEALTHY, "Database connection OK", _elapsed_ms(started))


async def check_object_storage_health(storage: ObjectStoragePort) -> ComponentHealth:
    """Healthy when the asset bucket answers a HEAD request."""
    started = time.perf_counter()
    try:
        await storage.verify_bucket_exists()
    except StorageError as e:
        logger.error(f"Object storage health check failed: {e}")
        return ComponentHealth(HealthStatus.UNHEALTHY, "Asset bucket unavailable")
    return ComponentHealth(HealthStatus.HEALTHY, "Asset bucket reachable", _elapsed_ms(started))


def get_overall_health(components: Dict[str, ComponentHealth]) -> HealthStatus:
    if any(c.status == HealthStatus.UNHEALTHY for c in components.values()):
        return HealthStatus.UNHEALTHY
    return HealthStatus.HEALTHY
