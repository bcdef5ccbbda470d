from datetime import datetime

from pydantic import Field, field_serializer

from medtrack.models import RecordedByType
from medtrack.schemas.base import CamelModel
from medtrack.services.schedule.types import DoseStatus, Slot, SlotStatus, StatusedDose
from medtrack.services.schedule.zoned_time import format_instant


class MedicationSnapshotResponse(CamelModel):
    name: str
    dosage_text: str
    dose_count_per_intake: int
    dosage_strength_value: float
    dosage_strength_unit: str
    notes: str | None = None


class ScheduleDoseResponse(CamelModel):
    """A dose instance with its derived status."""

    key: str
    patient_id: int
    medication_id: int
    scheduled_at: datetime
    effective_status: DoseStatus
    recorded_by_type: RecordedByType | None = None
    medication_snapshot: MedicationSnapshotResponse

    @field_serializer("scheduled_at")
    def serialize_scheduled_at(self, value: datetime) -> str:
        return format_instant(value)

    @classmethod
    def from_dose(cls, dose: StatusedDose) -> "ScheduleDoseResponse":
        return cls(
            key=str(dose.key),
            patient_id=dose.patient_id,
            medication_id=dose.medication_id,
            scheduled_at=dose.scheduled_at,
            effective_status=dose.effective_status,
            recorded_by_type=dose.recorded_by_type,
            medication_snapshot=MedicationSnapshotResponse.model_validate(
                dose.medication_snapshot
            ),
        )


class ScheduleResponse(CamelModel):
    patient_id: int
    timezone: str
    doses: list[ScheduleDoseResponse]


class TodayScheduleResponse(ScheduleResponse):
    date: str
    slot_summary: dict[Slot, SlotStatus] = Field(default_factory=dict)
