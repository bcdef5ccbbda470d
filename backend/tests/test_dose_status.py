from datetime import datetime, timedelta, timezone

from medtrack.models import DoseRecord, RecordedByType
from medtrack.services.schedule.status import apply_status, resolve_status
from medtrack.services.schedule.types import DoseInstance, DoseStatus, MedicationSnapshot

SCHEDULED = datetime(2026, 2, 1, 23, 0, tzinfo=timezone.utc)
SNAPSHOT = MedicationSnapshot(
    name="Amlodipine",
    dosage_text="5mg",
    dose_count_per_intake=1,
    dosage_strength_value=5.0,
    dosage_strength_unit="mg",
)


def _instance(medication_id=1, scheduled_at=SCHEDULED):
    return DoseInstance(
        patient_id=1,
        medication_id=medication_id,
        scheduled_at=scheduled_at,
        medication_snapshot=SNAPSHOT,
    )


def test_pending_until_exactly_sixty_minutes():
    assert resolve_status(SCHEDULED, False, SCHEDULED - timedelta(minutes=30)) == DoseStatus.pending
    assert resolve_status(SCHEDULED, False, SCHEDULED + timedelta(minutes=60)) == DoseStatus.pending


def test_missed_strictly_after_sixty_minutes():
    now = SCHEDULED + timedelta(minutes=60, seconds=1)

    assert resolve_status(SCHEDULED, False, now) == DoseStatus.missed


def test_record_wins_over_time():
    now = SCHEDULED + timedelta(days=2)

    assert resolve_status(SCHEDULED, True, now) == DoseStatus.taken


def test_apply_status_matches_records_by_key():
    record = DoseRecord(
        patient_id=1,
        medication_id=1,
        scheduled_at=SCHEDULED,
        taken_at=SCHEDULED,
        recorded_by_type=RecordedByType.caregiver.value,
    )
    instances = [_instance(1), _instance(2)]

    statused = apply_status(instances, [record], SCHEDULED + timedelta(hours=3))

    assert [dose.effective_status for dose in statused] == [DoseStatus.taken, DoseStatus.missed]
    assert statused[0].recorded_by_type == RecordedByType.caregiver
    assert statused[1].recorded_by_type is None


def test_apply_status_ignores_records_for_other_instants():
    record = DoseRecord(
        patient_id=1,
        medication_id=1,
        scheduled_at=SCHEDULED + timedelta(hours=12),
        taken_at=SCHEDULED,
        recorded_by_type=RecordedByType.patient.value,
    )

    statused = apply_status([_instance(1)], [record], SCHEDULED)

    assert statused[0].effective_status == DoseStatus.pending


def test_apply_status_keeps_input_order():
    later = _instance(1, SCHEDULED + timedelta(hours=4))
    earlier = _instance(1, SCHEDULED)

    statused = apply_status([later, earlier], [], SCHEDULED)

    assert [dose.scheduled_at for dose in statused] == [later.scheduled_at, earlier.scheduled_at]
