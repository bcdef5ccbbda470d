"""Derivation of pending/taken/missed from dose records and the current instant."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime

from medtrack.constants import DOSE_MISSED_WINDOW
from medtrack.models.dose_record import RecordedByType
from medtrack.services.schedule.types import (
    DoseInstance,
    DoseKey,
    DoseRecordLike,
    DoseStatus,
    StatusedDose,
)
from medtrack.services.schedule.zoned_time import ensure_utc


def resolve_status(scheduled_at: datetime, has_record: bool, now: datetime) -> DoseStatus:
    """A dose is missed only strictly after scheduled_at + 60 minutes."""
    if has_record:
        return DoseStatus.taken
    if ensure_utc(now) > ensure_utc(scheduled_at) + DOSE_MISSED_WINDOW:
        return DoseStatus.missed
    return DoseStatus.pending


def apply_status(
    instances: Sequence[DoseInstance],
    dose_records: Iterable[DoseRecordLike],
    now: datetime,
) -> list[StatusedDose]:
    records_by_key = {
        DoseKey(record.patient_id, record.medication_id, ensure_utc(record.scheduled_at)): record
        for record in dose_records
    }

    statused: list[StatusedDose] = []
    for instance in instances:
        record = records_by_key.get(instance.key)
        statused.append(
            StatusedDose(
                patient_id=instance.patient_id,
                medication_id=instance.medication_id,
                scheduled_at=instance.scheduled_at,
                medication_snapshot=instance.medication_snapshot,
                effective_status=resolve_status(
                    instance.scheduled_at, record is not None, now
                ),
                recorded_by_type=(
                    RecordedByType(record.recorded_by_type) if record is not None else None
                ),
            )
        )
    return statused
