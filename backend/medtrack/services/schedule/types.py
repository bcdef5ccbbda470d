"""Value types shared by schedule generation, status resolution and slots."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import StrEnum
from typing import Protocol, Sequence

from medtrack.models.dose_record import RecordedByType
from medtrack.services.schedule.zoned_time import format_instant


class DoseStatus(StrEnum):
    pending = "pending"
    taken = "taken"
    missed = "missed"


class Slot(StrEnum):
    morning = "morning"
    noon = "noon"
    evening = "evening"
    bedtime = "bedtime"


class SlotStatus(StrEnum):
    none = "none"
    pending = "pending"
    taken = "taken"
    missed = "missed"


class MedicationLike(Protocol):
    id: int
    patient_id: int
    name: str
    dosage_text: str
    dose_count_per_intake: int
    dosage_strength_value: float
    dosage_strength_unit: str
    notes: str | None
    is_active: bool
    is_archived: bool


class RegimenLike(Protocol):
    patient_id: int
    medication_id: int
    timezone: str
    start_date: date
    end_date: date | None
    times: Sequence[str]
    days_of_week: Sequence[str] | None
    enabled: bool


class DoseRecordLike(Protocol):
    patient_id: int
    medication_id: int
    scheduled_at: datetime
    recorded_by_type: str


@dataclass(frozen=True)
class MedicationSnapshot:
    """Display attributes of a medication frozen at generation time."""

    name: str
    dosage_text: str
    dose_count_per_intake: int
    dosage_strength_value: float
    dosage_strength_unit: str
    notes: str | None = None

    @classmethod
    def from_medication(cls, medication: MedicationLike) -> "MedicationSnapshot":
        return cls(
            name=medication.name,
            dosage_text=medication.dosage_text,
            dose_count_per_intake=medication.dose_count_per_intake,
            dosage_strength_value=medication.dosage_strength_value,
            dosage_strength_unit=medication.dosage_strength_unit,
            notes=medication.notes,
        )


@dataclass(frozen=True)
class DoseKey:
    """Natural key of a dose instance and of its persisted record."""

    patient_id: int
    medication_id: int
    scheduled_at: datetime

    def __str__(self) -> str:
        return f"{self.patient_id}:{self.medication_id}:{format_instant(self.scheduled_at)}"


@dataclass(frozen=True)
class DoseInstance:
    patient_id: int
    medication_id: int
    scheduled_at: datetime
    medication_snapshot: MedicationSnapshot

    @property
    def key(self) -> DoseKey:
        return DoseKey(self.patient_id, self.medication_id, self.scheduled_at)


@dataclass(frozen=True)
class StatusedDose(DoseInstance):
    effective_status: DoseStatus
    recorded_by_type: RecordedByType | None = None
