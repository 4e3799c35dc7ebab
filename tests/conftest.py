"""
Shared fixtures: an in-memory SQLite database, a session, seeded hospitals
and a TestClient wired to the same database.
"""

import os
from datetime import timedelta

os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from medshare.core.database import build_engine, get_db
from medshare.main import app
from medshare.models import (
    Base,
    LabResult,
    Organization,
    Patient,
    PatientVisit,
    User,
)
from medshare.utils.datetime_utils import utc_now

engine = build_engine("sqlite://")
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)


class Hospitals:
    """Handles on the seeded rows, so tests read like the scenario they describe."""

    def __init__(self, **rows):
        self.__dict__.update(rows)


@pytest.fixture
def db():
    """Fresh schema per test."""
    Base.metadata.create_all(bind=engine)
    # Seeded objects stay readable after services commit.
    session = TestingSessionLocal(expire_on_commit=False)
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def hospitals(db):
    """
    Hospital A (requester side) and Hospital B (holds patient P123's records).

    B owns two visits and three lab results for P123; A owns one visit of its own.
    """
    now = utc_now()

    org_a = Organization(name="City General Hospital", code="HOSP-A")
    org_b = Organization(name="Riverside Medical Centre", code="HOSP-B")
    db.add_all([org_a, org_b])
    db.flush()

    requester = User(organization_id=org_a.id, email="doctor@a.test", full_name="Dr. Asha Rao")
    admin_a = User(organization_id=org_a.id, email="admin@a.test", full_name="A Admin", is_admin=True)
    admin_b = User(organization_id=org_b.id, email="admin@b.test", full_name="B Admin", is_admin=True)
    doctor_b = User(organization_id=org_b.id, email="doctor@b.test", full_name="Dr. Vikram Shah")
    patient = Patient(name="Meera Iyer", patient_code="P123", registered_organization_id=org_b.id)
    db.add_all([requester, admin_a, admin_b, doctor_b, patient])
    db.flush()

    visits = [
        PatientVisit(
            patient_id=patient.id,
            organization_id=org_b.id,
            visit_date=now - timedelta(days=days),
            visit_type="OPD",
            doctor_name="Dr. Vikram Shah",
        )
        for days in (30, 5)
    ]
    lab_results = [
        LabResult(
            patient_id=patient.id,
            organization_id=org_b.id,
            test_name=name,
            created_at=now - timedelta(days=days),
        )
        for name, days in (("Complete Blood Count", 20), ("Lipid Profile", 10), ("HbA1c", 2))
    ]
    own_visit = PatientVisit(
        patient_id=patient.id,
        organization_id=org_a.id,
        visit_date=now - timedelta(days=1),
        visit_type="Emergency",
    )
    db.add_all([*visits, *lab_results, own_visit])
    db.commit()

    return Hospitals(
        org_a=org_a,
        org_b=org_b,
        requester=requester,
        admin_a=admin_a,
        admin_b=admin_b,
        doctor_b=doctor_b,
        patient=patient,
        visits=visits,
        lab_results=lab_results,
        own_visit=own_visit,
    )


@pytest.fixture
def client(db):
    """TestClient whose requests use their own sessions on the test database."""

    def override_get_db():
        session = TestingSessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def auth():
    """Headers the gateway forwards for an authenticated user."""

    def headers(user) -> dict:
        return {"X-User-Id": str(user.id)}

    return headers
