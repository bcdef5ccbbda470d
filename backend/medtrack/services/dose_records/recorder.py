"""Idempotent creation and deletion of single scheduled dose records."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from medtrack.logging import log_dose_record_operation
from medtrack.models import DoseRecord, InventoryAdjustmentReason, RecordedByType
from medtrack.services.dose_records.repository import DoseRecordCreate
from medtrack.services.dose_records.side_effects import DoseRecordSideEffects
from medtrack.services.notifications import dose_taken_event_key
from medtrack.services.schedule.types import DoseKey

logger = logging.getLogger("medtrack.dose_records")


class DoseRecordService:
    """Marks scheduled doses as taken or not taken."""

    def __init__(self, repository, side_effects: DoseRecordSideEffects):
        self.repository = repository
        self.side_effects = side_effects

    async def create_dose_record(
        self,
        key: DoseKey,
        recorded_by_type: RecordedByType,
        recorded_by_id: str | None,
        now: datetime,
    ) -> DoseRecord:
        """Get-or-create the record for ``key``.

        Repeated or concurrent calls converge on one row; the event, push and
        inventory decrement happen only for the call that created it.
        """
        async with self.repository.transaction():
            record, created = await self.repository.upsert_dose_record(
                DoseRecordCreate(
                    key=key,
                    taken_at=now,
                    recorded_by_type=recorded_by_type,
                    recorded_by_id=recorded_by_id,
                )
            )

        if not created:
            logger.debug("Dose record %s already exists", key)
            return record

        log_dose_record_operation("create", recorded_by_type.value)
        await self._after_create(record)
        return record

    async def _after_create(self, record: DoseRecord) -> None:
        patient = await self.repository.get_patient(record.patient_id)
        if patient is None:
            return
        medication = await self.repository.get_medication(record.patient_id, record.medication_id)

        event = await self.side_effects.record_event(
            patient, record.scheduled_at, record.taken_at, medication
        )
        if event is not None:
            await self.side_effects.notify_caregivers(
                patient,
                dose_taken_event_key(dose_event_id=event.id),
                medication_name=medication.name if medication else None,
            )
        if medication is not None:
            await self.side_effects.adjust_inventory(
                record.patient_id,
                record.medication_id,
                -medication.dose_count_per_intake,
                InventoryAdjustmentReason.TAKEN_CREATE,
            )

    async def delete_dose_record(self, key: DoseKey) -> Optional[DoseRecord]:
        """Remove the record for ``key``; None when there was nothing to remove."""
        async with self.repository.transaction():
            record = await self.repository.delete_dose_record(key)
        if record is None:
            return None

        log_dose_record_operation("delete", record.recorded_by_type)
        medication = await self.repository.get_medication(key.patient_id, key.medication_id)
        if medication is not None:
            await self.side_effects.adjust_inventory(
                key.patient_id,
                key.medication_id,
                medication.dose_count_per_intake,
                InventoryAdjustmentReason.TAKEN_DELETE,
            )
        return record
