#!/usr/bin/env python3
# scripts/seed_demo_data.py
"""
Demo data for the record sharing workflow: two hospitals that request and
share records for the same patients.

- Two hospitals (DEMO-A, DEMO-B), each with one admin (reviewer) and one doctor.
- A handful of patients registered at DEMO-B with visits and lab results there.
- Reset removes everything tied to the DEMO-* hospitals and DEMO-P* patients
  except audit entries, which are append-only.

Run:
  python -m scripts.seed_demo_data --seed
  python -m scripts.seed_demo_data --reset
"""

from __future__ import annotations

import argparse
import logging
import random
from datetime import timedelta

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from medshare.core.database import session_scope
from medshare.models import (
    LabResult,
    Notification,
    Organization,
    Patient,
    PatientVisit,
    RecordRequest,
    ShareGrant,
    User,
)
from medshare.utils.datetime_utils import utc_now

logger = logging.getLogger(__name__)

HOSPITALS = [
    ("DEMO-A", "City General Hospital", "Pune, Maharashtra"),
    ("DEMO-B", "Riverside Medical Centre", "Mumbai, Maharashtra"),
]
PATIENT_NAMES = ["Asha Kulkarni", "Rohan Mehta", "Meera Iyer", "Vikram Desai", "Sara Khan"]
VISIT_TYPES = ["OPD", "Follow-up", "Emergency"]
LAB_TESTS = ["Complete Blood Count", "Lipid Profile", "HbA1c", "Liver Function Test", "Serum Creatinine"]


def seed(db: Session) -> None:
    if db.query(Organization).filter(Organization.code == "DEMO-A").first():
        print("Demo data already present (use --reset first)")
        return

    rng = random.Random(42)
    orgs = {}
    for code, name, address in HOSPITALS:
        org = Organization(code=code, name=name, address=address, contact_email=f"{code.lower()}@demo.local")
        db.add(org)
        db.flush()
        orgs[code] = org

        slug = code.lower().replace("-", "")
        db.add(User(organization_id=org.id, email=f"admin@{slug}.demo", full_name=f"{name} Admin", is_admin=True))
        db.add(User(organization_id=org.id, email=f"doctor@{slug}.demo", full_name=f"Dr. {name.split()[0]}"))

    holder = orgs["DEMO-B"]
    now = utc_now()
    for index, patient_name in enumerate(PATIENT_NAMES, start=1):
        patient = Patient(
            name=patient_name,
            patient_code=f"DEMO-P{index:03d}",
            registered_organization_id=holder.id,
        )
        db.add(patient)
        db.flush()

        for _ in range(rng.randint(1, 4)):
            db.add(
                PatientVisit(
                    patient_id=patient.id,
                    organization_id=holder.id,
                    visit_date=now - timedelta(days=rng.randint(1, 365)),
                    visit_type=rng.choice(VISIT_TYPES),
                    doctor_name="Dr. Riverside",
                    notes=rng.choice([None, "Stable, review in 4 weeks", "Advised imaging"]),
                )
            )
        for test_name in rng.sample(LAB_TESTS, rng.randint(1, 3)):
            db.add(
                LabResult(
                    patient_id=patient.id,
                    organization_id=holder.id,
                    test_name=test_name,
                    status=rng.choice(["completed", "completed", "pending"]),
                    created_at=now - timedelta(days=rng.randint(1, 180)),
                )
            )

    print(f"Seeded {len(HOSPITALS)} hospitals and {len(PATIENT_NAMES)} patients")


def reset(db: Session) -> None:
    org_ids = [o.id for o in db.query(Organization).filter(Organization.code.like("DEMO-%")).all()]
    patient_ids = [p.id for p in db.query(Patient).filter(Patient.patient_code.like("DEMO-P%")).all()]
    user_ids = [u.id for u in db.query(User).filter(User.organization_id.in_(org_ids)).all()]

    db.query(Notification).filter(Notification.user_id.in_(user_ids)).delete(synchronize_session=False)
    db.query(PatientVisit).filter(PatientVisit.patient_id.in_(patient_ids)).delete(synchronize_session=False)
    db.query(LabResult).filter(LabResult.patient_id.in_(patient_ids)).delete(synchronize_session=False)
    db.query(ShareGrant).filter(ShareGrant.patient_id.in_(patient_ids)).delete(synchronize_session=False)
    db.query(RecordRequest).filter(RecordRequest.patient_id.in_(patient_ids)).delete(synchronize_session=False)
    db.query(Patient).filter(Patient.id.in_(patient_ids)).delete(synchronize_session=False)
    db.query(User).filter(User.id.in_(user_ids)).delete(synchronize_session=False)
    db.query(Organization).filter(Organization.id.in_(org_ids)).delete(synchronize_session=False)

    print(f"Removed {len(org_ids)} demo hospitals and {len(patient_ids)} demo patients")


def parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Record sharing demo data")
    p.add_argument("--seed", action="store_true", help="Create demo hospitals, users, patients and records")
    p.add_argument("--reset", action="store_true", help="Delete all demo rows")
    return p.parse_args()


def main() -> None:
    args = parse_args()
    if not args.seed and not args.reset:
        raise SystemExit("Nothing to do. Use --seed and/or --reset.")

    logging.basicConfig(level=logging.INFO)
    try:
        with session_scope() as db:
            if args.reset:
                reset(db)
            if args.seed:
                seed(db)
    except SQLAlchemyError as e:
        logger.error("Seed failed: %s", e, exc_info=True)
        if getattr(e, "orig", None) is not None:
            logger.error("DBAPI orig: %r", e.orig)
        raise SystemExit(1)


if __name__ == "__main__":
    main()
