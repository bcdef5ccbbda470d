"""As-needed (PRN) intakes recorded outside any regimen."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Optional

from medtrack.logging import log_dose_record_operation
from medtrack.models import InventoryAdjustmentReason, PrnDoseRecord, RecordedByType
from medtrack.services.dose_records.repository import PrnDoseRecordCreate
from medtrack.services.dose_records.side_effects import DoseRecordSideEffects
from medtrack.services.notifications import dose_taken_event_key
from medtrack.services.schedule.zoned_time import local_date_key


class PrnCreateError(StrEnum):
    not_found = "not_found"
    not_prn = "not_prn"


@dataclass(frozen=True)
class PrnCreateResult:
    record: PrnDoseRecord | None = None
    error: PrnCreateError | None = None


@dataclass(frozen=True)
class PrnHistoryItem:
    id: int
    medication_id: int
    medication_name: str | None
    taken_at: datetime
    quantity_taken: int
    actor_type: str


@dataclass(frozen=True)
class PrnHistory:
    items: list[PrnHistoryItem]
    count_by_day: dict[str, int]


class PrnDoseRecordService:
    def __init__(self, repository, side_effects: DoseRecordSideEffects):
        self.repository = repository
        self.side_effects = side_effects

    async def create_prn_record(
        self,
        patient_id: int,
        medication_id: int,
        actor_type: RecordedByType,
        now: datetime,
        taken_at: datetime | None = None,
        quantity_taken: int | None = None,
    ) -> PrnCreateResult:
        medication = await self.repository.get_medication(patient_id, medication_id)
        if medication is None:
            return PrnCreateResult(error=PrnCreateError.not_found)
        if not medication.is_prn:
            return PrnCreateResult(error=PrnCreateError.not_prn)

        quantity = quantity_taken if quantity_taken is not None else medication.dose_count_per_intake
        async with self.repository.transaction():
            record = await self.repository.create_prn_dose_record(
                PrnDoseRecordCreate(
                    patient_id=patient_id,
                    medication_id=medication_id,
                    taken_at=taken_at or now,
                    quantity_taken=quantity,
                    actor_type=actor_type,
                )
            )
        log_dose_record_operation("prn_create", actor_type.value)

        patient = await self.repository.get_patient(patient_id)
        if patient is not None:
            await self.side_effects.record_event(
                patient, record.taken_at, record.taken_at, medication, is_prn=True
            )
            await self.side_effects.notify_caregivers(
                patient,
                dose_taken_event_key(prn_record_id=record.id),
                medication_name=medication.name,
                is_prn=True,
            )
        await self.side_effects.adjust_inventory(
            patient_id, medication_id, -quantity, InventoryAdjustmentReason.TAKEN_CREATE
        )
        return PrnCreateResult(record=record)

    async def delete_prn_record(
        self, patient_id: int, prn_record_id: int
    ) -> Optional[PrnDoseRecord]:
        existing = await self.repository.get_prn_dose_record(patient_id, prn_record_id)
        if existing is None:
            return None
        async with self.repository.transaction():
            deleted = await self.repository.delete_prn_dose_record(prn_record_id)
        if deleted is None:
            return None

        log_dose_record_operation("prn_delete", existing.actor_type)
        await self.side_effects.adjust_inventory(
            patient_id,
            existing.medication_id,
            existing.quantity_taken,
            InventoryAdjustmentReason.TAKEN_DELETE,
        )
        return deleted

    async def list_prn_history(
        self, patient_id: int, from_: datetime, to: datetime, time_zone: str
    ) -> PrnHistory:
        records = await self.repository.list_prn_dose_records_in_range(patient_id, from_, to)
        medications = {
            medication.id: medication
            for medication in await self.repository.list_medications(patient_id)
        }
        count_by_day: dict[str, int] = {}
        items = []
        for record in records:
            day_key = local_date_key(record.taken_at, time_zone)
            count_by_day[day_key] = count_by_day.get(day_key, 0) + 1
            medication = medications.get(record.medication_id)
            items.append(
                PrnHistoryItem(
                    id=record.id,
                    medication_id=record.medication_id,
                    medication_name=medication.name if medication else None,
                    taken_at=record.taken_at,
                    quantity_taken=record.quantity_taken,
                    actor_type=record.actor_type,
                )
            )
        return PrnHistory(items=items, count_by_day=count_by_day)
