"""Shared fixtures: a throwaway SQLite database, an API client and record factories."""

from __future__ import annotations

import os
import tempfile
from datetime import date

import pytest

# Settings are read at import time, so point them at a scratch area before
# anything from facilityops is imported.
_TMP_ROOT = tempfile.mkdtemp(prefix="facilityops-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP_ROOT, 'test.db')}"
os.environ["AUTO_CREATE_DB"] = "false"
os.environ["RATE_LIMIT"] = "100000/minute"
os.environ["STORAGE_PROVIDER"] = "local"
os.environ["LOCAL_STORAGE_DIR"] = os.path.join(_TMP_ROOT, "storage")
os.environ["TZ_DEFAULT"] = "UTC"
os.environ["JWT_SECRET"] = "test-secret"

from fastapi.testclient import TestClient  # noqa: E402

from facilityops.auth.security import create_access_token  # noqa: E402
from facilityops.db import Base, SessionLocal, engine  # noqa: E402
from facilityops.main import app  # noqa: E402
from facilityops.models.models import Facility, Role, User  # noqa: E402
from facilityops.services.permissions import ROLE_ADMIN, ROLE_CLEANER, ROLE_MANAGER  # noqa: E402


@pytest.fixture(autouse=True)
def _fresh_schema():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def roles(db):
    rows = {name: Role(name=name, description=name) for name in (ROLE_ADMIN, ROLE_MANAGER, ROLE_CLEANER)}
    db.add_all(rows.values())
    db.commit()
    return rows


@pytest.fixture
def make_user(db, roles):
    def _make(username: str, *role_names: str, active: bool = True) -> User:
        user = User(
            username=username,
            email=f"{username}@example.com",
            password_hash="x",
            is_active=active,
        )
        user.roles = [roles[name] for name in (role_names or (ROLE_CLEANER,))]
        db.add(user)
        db.commit()
        return user

    return _make


@pytest.fixture
def make_facility(db):
    def _make(name: str = "North Wing", *staff: User) -> Facility:
        facility = Facility(name=name, location="Block A", description="")
        facility.staff = list(staff)
        db.add(facility)
        db.commit()
        return facility

    return _make


@pytest.fixture
def admin(make_user):
    return make_user("admin", ROLE_ADMIN)


@pytest.fixture
def manager(make_user):
    return make_user("manager", ROLE_MANAGER)


@pytest.fixture
def cleaners(make_user):
    """Three cleaners created in order, so their IDs ascend A < B < C."""
    return [make_user(name) for name in ("alice", "bob", "carol")]


@pytest.fixture
def facility(make_facility, cleaners):
    return make_facility("North Wing", *cleaners)


@pytest.fixture
def today() -> date:
    return date(2026, 3, 2)


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id, [r.name for r in user.roles])}"}


@pytest.fixture
def headers_for():
    return auth_headers
