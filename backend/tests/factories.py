"""Builders for detached ORM rows used with the in-memory stores."""

from datetime import date, datetime, timezone

from jose import jwt

from medtrack.config import settings
from medtrack.models import Medication, Patient, PushDevice, Regimen


def make_patient(repository, patient_id=1, display_name="Hanako", time_zone="Asia/Tokyo"):
    return repository.add_patient(
        Patient(id=patient_id, display_name=display_name, timezone=time_zone)
    )


def make_medication(repository, patient_id=1, **overrides):
    values = dict(
        patient_id=patient_id,
        name="Amlodipine",
        dosage_text="5mg",
        dose_count_per_intake=1,
        dosage_strength_value=5.0,
        dosage_strength_unit="mg",
        notes=None,
        start_date=date(2026, 1, 1),
        end_date=None,
        is_active=True,
        is_archived=False,
        is_prn=False,
        inventory_enabled=False,
        inventory_quantity=0,
        inventory_low_threshold=0,
        inventory_updated_at=None,
        inventory_last_alert_state=None,
    )
    values.update(overrides)
    return repository.add_medication(Medication(**values))


def make_regimen(repository, medication, **overrides):
    values = dict(
        patient_id=medication.patient_id,
        medication_id=medication.id,
        timezone="Asia/Tokyo",
        start_date=date(2026, 1, 1),
        end_date=None,
        times=["08:00"],
        days_of_week=[],
        enabled=True,
    )
    values.update(overrides)
    return repository.add_regimen(Regimen(**values))


def make_device(push_store, caregiver_id="cg-1", token="device-token-1"):
    return push_store.add_device(
        PushDevice(caregiver_id=caregiver_id, token=token, platform="ios", is_enabled=True)
    )


def auth_header(role="patient", subject="patient-1", patient_id=1):
    claims = {"sub": subject, "role": role, "exp": datetime(2030, 1, 1, tzinfo=timezone.utc)}
    if role == "patient":
        claims["patient_id"] = patient_id
    token = jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)
    return {"Authorization": f"Bearer {token}"}


def seed_morning_patient(repository):
    """Patient 1 linked to caregiver cg-1, with two 08:00 medications and one PRN."""
    make_patient(repository)
    repository.link_caregiver("cg-1", 1)
    amlodipine = make_medication(
        repository,
        name="Amlodipine",
        inventory_enabled=True,
        inventory_quantity=10,
        inventory_low_threshold=3,
    )
    metformin = make_medication(repository, name="Metformin", dose_count_per_intake=2)
    loxonin = make_medication(repository, name="Loxonin", is_prn=True)
    make_regimen(repository, amlodipine, times=["08:00"])
    make_regimen(repository, metformin, times=["08:00", "12:00"])
    return amlodipine, metformin, loxonin
