"""Pytest fixtures for the portal backend.

Provides reusable test fixtures for:
- SQLite database session (tables created and dropped per test)
- Agency, client and unrelated orgs with memberships
- Bearer tokens for users with different roles
- A test client with database and storage dependencies overridden
- moto-backed S3 storage

Usage:
    def test_admin_endpoint(client, client_org, admin_headers):
        response = client.get(f"/api/v1/orgs/{client_org.id}/members", headers=admin_headers)
        assert response.status_code == 200
"""

import os

# Environment must be set before portal modules read settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("JWT_SECRET", "test-jwt-secret-key-256-bits-minimum-length-required")
os.environ.setdefault("LOG_JSON", "false")
os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")
os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")

from typing import Dict, Generator

import boto3
import pytest
from fastapi.testclient import TestClient
from moto import mock_aws
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from portal.auth.identity import create_access_token
from portal.database import get_db
from portal.models import Base, Org, OrgMember
from portal.storage import S3StorageAdapter, get_storage

TEST_BUCKET = "test-portal-bucket"
TEST_REGION = "us-east-1"
PUBLIC_BASE_URL = "https://files.portal.test"

ADMIN_USER = "user_admin"
MEMBER_USER = "user_member"
OUTSIDER_USER = "user_outsider"

test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


def auth_headers(user_id: str, **claims) -> Dict[str, str]:
    """Authorization header for a token carrying ``user_id`` and optional org claims."""
    token = create_access_token(user_id=user_id, **claims)
    return {"Authorization": f"Bearer {token}"}


def add_member(db: Session, org: Org, user_id: str, role: str = "member") -> OrgMember:
    member = OrgMember(org_id=org.id, user_id=user_id, role=role)
    db.add(member)
    db.commit()
    db.refresh(member)
    return member


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """Create a fresh database session for each test.

    Creates all tables before the test and drops them after.
    """
    Base.metadata.create_all(bind=test_engine)
    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=test_engine)


@pytest.fixture(scope="function")
def agency_org(db_session: Session) -> Org:
    org = Org(external_ref="org_agency", name="Northwind Agency", kind="agency")
    db_session.add(org)
    db_session.commit()
    db_session.refresh(org)
    return org


@pytest.fixture(scope="function")
def client_org(db_session: Session, agency_org: Org) -> Org:
    org = Org(external_ref="org_client", name="Acme Bakery", kind="client", parent_org_id=agency_org.id)
    db_session.add(org)
    db_session.commit()
    db_session.refresh(org)
    return org


@pytest.fixture(scope="function")
def other_org(db_session: Session) -> Org:
    """An org unrelated to the agency and its client."""
    org = Org(external_ref="org_other", name="Globex Plumbing", kind="client")
    db_session.add(org)
    db_session.commit()
    db_session.refresh(org)
    return org


@pytest.fixture(scope="function")
def admin_member(db_session: Session, client_org: Org) -> OrgMember:
    return add_member(db_session, client_org, ADMIN_USER, "admin")


@pytest.fixture(scope="function")
def member(db_session: Session, client_org: Org) -> OrgMember:
    return add_member(db_session, client_org, MEMBER_USER, "member")


@pytest.fixture(scope="function")
def outsider(db_session: Session, other_org: Org) -> OrgMember:
    return add_member(db_session, other_org, OUTSIDER_USER, "admin")


@pytest.fixture(scope="function")
def admin_headers(admin_member: OrgMember) -> Dict[str, str]:
    return auth_headers(ADMIN_USER, org_ref="org_client", org_role="org:admin")


@pytest.fixture(scope="function")
def member_headers(member: OrgMember) -> Dict[str, str]:
    return auth_headers(MEMBER_USER, org_ref="org_client", org_role="org:member")


@pytest.fixture(scope="function")
def outsider_headers(outsider: OrgMember) -> Dict[str, str]:
    return auth_headers(OUTSIDER_USER, org_ref="org_other", org_role="org:admin")


@pytest.fixture(scope="function")
def s3_storage() -> Generator[S3StorageAdapter, None, None]:
    """S3StorageAdapter backed by a moto bucket."""
    with mock_aws():
        boto3.client("s3", region_name=TEST_REGION).create_bucket(Bucket=TEST_BUCKET)
        yield S3StorageAdapter(
            endpoint_url=None,
            access_key="testing",
            secret_key="testing",
            bucket_name=TEST_BUCKET,
            region=TEST_REGION,
            public_base_url=PUBLIC_BASE_URL,
        )


@pytest.fixture(scope="function")
def client(db_session: Session, s3_storage: S3StorageAdapter) -> Generator[TestClient, None, None]:
    """Create a test client using the test session and moto storage."""
    from portal.main import app

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: s3_storage

    yield TestClient(app)

    app.dependency_overrides.clear()
