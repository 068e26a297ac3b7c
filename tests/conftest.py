"""Pytest configuration and fixtures."""

import os

# Settings are read once at import time; point them at an in-memory
# database and keep Redis out of the picture before meatmath is imported.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["MEMBERSHIP_CACHE_TTL_SECONDS"] = "0"
os.environ["SEED_DEFAULT_SPECIES"] = "false"
os.environ["SECRET_KEY"] = "test-secret-key"

import pytest
from fastapi.testclient import TestClient

import meatmath.models  # noqa: F401  registers every table
from meatmath.database import Base, engine, SessionLocal, get_db
from meatmath.main import app
from meatmath.models.user import User
from meatmath.models.organization import Organization
from meatmath.models.membership import OrganizationMember
from meatmath.core.security import create_access_token


@pytest.fixture(scope='function')
def db():
    """Fresh schema per test."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope='function')
def client(db):
    """Test client whose requests use the test database."""

    def override_get_db():
        session = SessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture(scope='function')
def org1(db):
    """Create test organization 1."""
    org = Organization(name='Organization 1')
    db.add(org)
    db.commit()
    return org


@pytest.fixture(scope='function')
def org2(db):
    """Create test organization 2."""
    org = Organization(name='Organization 2')
    db.add(org)
    db.commit()
    return org


@pytest.fixture(scope='function')
def add_member(db):
    """Factory: give a user a role in an organization."""

    def _add_member(org, user_id, role, is_active=True):
        if db.get(User, user_id) is None:
            db.add(User(id=user_id, email=f'{user_id}@example.com'))
        member = OrganizationMember(
            organization_id=org.id,
            user_id=user_id,
            role=role,
            is_active=is_active,
        )
        db.add(member)
        db.commit()
        return member

    return _add_member


@pytest.fixture(scope='function')
def auth_headers():
    """Factory: bearer headers for a principal."""

    def _auth_headers(user_id, **claims):
        token = create_access_token({'sub': user_id, **claims})
        return {'Authorization': f'Bearer {token}'}

    return _auth_headers
