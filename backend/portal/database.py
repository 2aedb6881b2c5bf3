"""Database session factory and configuration.

Provides database connectivity and session management for the portal backend.
Every tenant table carries an org_id column; TenantQuery builds queries that
are always filtered by it.
"""

from typing import Generator
from uuid import UUID

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session

from .config import get_settings
from .errors import NotFound

DATABASE_URL = get_settings().DATABASE_URL

# Pool settings only apply to PostgreSQL (not SQLite)
_engine_kwargs = {
    "pool_pre_ping": True,
    "echo": False,
}

if DATABASE_URL.startswith("sqlite"):
    _engine_kwargs["connect_args"] = {"check_same_thread": False}
else:
    _engine_kwargs["pool_size"] = 5
    _engine_kwargs["max_overflow"] = 10

engine = create_engine(DATABASE_URL, **_engine_kwargs)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)


def get_db() -> Generator[Session, None, None]:
    """Dependency for FastAPI endpoints.

    Usage:
        @app.get("/orgs")
        def list_orgs(db: Session = Depends(get_db)):
            return db.query(Org).all()
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


class TenantQuery:
    """Helpers for building org-scoped queries.

    Example:
        deliverables = TenantQuery.scoped_query(db, Deliverable, org_id).all()
    """

    @staticmethod
    def scoped_query(session: Session, model, org_id: UUID):
        """Create a query filtered by org_id.

        Raises:
            AttributeError: If model doesn't have org_id attribute
        """
        if not hasattr(model, 'org_id'):
            raise AttributeError(f"Model {model.__name__} does not have org_id column")

        return session.query(model).filter(model.org_id == org_id)

    @staticmethod
    def get_or_404(session: Session, model, record_id: UUID, org_id: UUID, label: str = None):
        """Get a record by ID with org_id scoping, or raise NotFound.

        The same error is raised whether the record doesn't exist or belongs
        to another org, so other tenants' ids cannot be discovered.
        """
        if not hasattr(model, 'org_id'):
            raise AttributeError(f"Model {model.__name__} does not have org_id column")

        record = session.query(model).filter(
            model.id == record_id,
            model.org_id == org_id
        ).first()

        if not record:
            raise NotFound(f"{label or model.__name__} not found")

        return record
