import os
from datetime import datetime
from types import SimpleNamespace

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DB_LOG_SLOW_QUERIES", "false")

import pytest  # noqa: E402
from fastapi import Depends  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from carecrm.auth import create_access_token  # noqa: E402
from carecrm.database import Base, get_db  # noqa: E402
from carecrm.domain.shifts.router import get_shift_service  # noqa: E402
from carecrm.domain.shifts.service import ShiftService  # noqa: E402
from carecrm.main import app  # noqa: E402
from carecrm.models import Organization, Participant, User, UserRole  # noqa: E402

# Fixed "now" for every time-dependent rule: an hour before the 09:00 shifts used in tests
NOW = datetime(2024, 5, 1, 8, 0, 0)


@pytest.fixture()
def engine():
    """In-memory SQLite shared by every session in a test"""
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(test_engine)
    yield test_engine
    Base.metadata.drop_all(test_engine)
    test_engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autoflush=False, bind=engine)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def clock():
    """Mutable clock; tests move it with clock.now = ..."""
    return SimpleNamespace(now=NOW)


@pytest.fixture()
def service(db, clock):
    return ShiftService(db, clock=lambda: clock.now)


def _user(org, email, role, first_name, last_name="Tester", is_active=True):
    return User(
        email=email,
        first_name=first_name,
        last_name=last_name,
        role=role,
        organization_id=org.id,
        is_active=is_active,
    )


@pytest.fixture()
def seed(db):
    """Two organizations with staff of every role and a few participants"""
    org = Organization(name="Sunrise Care")
    other_org = Organization(name="Harbour Support")
    db.add_all([org, other_org])
    db.flush()

    people = SimpleNamespace(org=org, other_org=other_org)
    people.admin = _user(org, "admin@sunrise.test", UserRole.ADMIN.value, "Ada")
    people.manager = _user(org, "manager@sunrise.test", UserRole.MANAGER.value, "Mia")
    people.worker = _user(org, "worker@sunrise.test", UserRole.CARE_WORKER.value, "Wes")
    people.other_worker = _user(org, "worker2@sunrise.test", UserRole.CARE_WORKER.value, "Olive")
    people.coordinator = _user(
        org, "coord@sunrise.test", UserRole.SUPPORT_COORDINATOR.value, "Cora"
    )
    people.inactive_staff = _user(
        org, "former@sunrise.test", UserRole.CARE_WORKER.value, "Ivan", is_active=False
    )
    people.unknown_role = _user(org, "intern@sunrise.test", "intern", "Uma")
    people.super_admin = _user(
        other_org, "platform@harbour.test", UserRole.SUPER_ADMIN.value, "Sam"
    )
    people.other_manager = _user(
        other_org, "manager@harbour.test", UserRole.MANAGER.value, "Hal"
    )
    people.other_staff = _user(
        other_org, "worker@harbour.test", UserRole.CARE_WORKER.value, "Hugo"
    )

    people.participant = Participant(
        first_name="Pat", last_name="Lee", ndis_number="430000001", organization_id=org.id
    )
    people.second_participant = Participant(
        first_name="Quinn", last_name="Ng", ndis_number="430000002", organization_id=org.id
    )
    people.inactive_participant = Participant(
        first_name="Rae", last_name="Old", organization_id=org.id, is_active=False
    )
    people.other_participant = Participant(
        first_name="Tom", last_name="Far", ndis_number="430000009", organization_id=other_org.id
    )

    db.add_all(
        [
            people.admin,
            people.manager,
            people.worker,
            people.other_worker,
            people.coordinator,
            people.inactive_staff,
            people.unknown_role,
            people.super_admin,
            people.other_manager,
            people.other_staff,
            people.participant,
            people.second_participant,
            people.inactive_participant,
            people.other_participant,
        ]
    )
    db.commit()
    return people


@pytest.fixture()
def client(session_factory, clock):
    """TestClient bound to the in-memory database and the fixed clock"""

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    def override_get_shift_service(db: Session = Depends(get_db)):
        return ShiftService(db, clock=lambda: clock.now)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_shift_service] = override_get_shift_service
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def auth_headers():
    def _headers(user):
        return {"Authorization": f"Bearer {create_access_token(user)}"}

    return _headers
