"""One-tap recording of every outstanding dose in a time-of-day slot."""

from __future__ import annotations

import dataclasses
import logging
import uuid
from dataclasses import dataclass
from datetime import date, datetime

from medtrack.constants import EMPTY_SLOT_TIME, RECORDING_WINDOW_AFTER, RECORDING_WINDOW_BEFORE
from medtrack.logging import log_dose_record_operation
from medtrack.models import InventoryAdjustmentReason, RecordedByType
from medtrack.services.dose_records.repository import DoseRecordCreate
from medtrack.services.dose_records.side_effects import DoseRecordSideEffects
from medtrack.services.notifications import dose_taken_event_key
from medtrack.services.schedule.service import ScheduleService
from medtrack.services.schedule.slots import SlotTimes, build_slot_summary, resolve_slot
from medtrack.services.schedule.types import DoseStatus, Slot, SlotStatus, StatusedDose
from medtrack.services.schedule.zoned_time import ensure_utc, get_day_range, local_time_string

logger = logging.getLogger("medtrack.dose_records")

RECORDABLE_STATUSES = frozenset({DoseStatus.pending, DoseStatus.missed})


@dataclass(frozen=True)
class SlotBulkRecordResult:
    updated_count: int
    remaining_count: int
    total_pills: int
    med_count: int
    slot_time: str
    slot_summary: dict[Slot, SlotStatus]
    recording_group_id: str | None = None


class BulkSlotRecorder:
    """Records all pending and missed doses of one slot in a single transaction."""

    def __init__(
        self,
        schedule: ScheduleService,
        repository,
        side_effects: DoseRecordSideEffects,
    ):
        self.schedule = schedule
        self.repository = repository
        self.side_effects = side_effects

    async def record_slot(
        self,
        patient_id: int,
        day: date,
        slot: Slot,
        now: datetime,
        custom_slot_times: SlotTimes | None = None,
    ) -> SlotBulkRecordResult:
        time_zone = await self.schedule.get_timezone(patient_id)
        from_, to = get_day_range(day, time_zone)
        doses = await self.schedule.get_schedule_with_status(patient_id, from_, to, now)

        slot_doses = [
            dose
            for dose in doses
            if resolve_slot(dose.scheduled_at, time_zone, custom_slot_times) == slot
        ]
        total_pills = sum(dose.medication_snapshot.dose_count_per_intake for dose in slot_doses)
        med_count = len(slot_doses)
        slot_time = (
            local_time_string(slot_doses[0].scheduled_at, time_zone)
            if slot_doses
            else EMPTY_SLOT_TIME
        )
        recordable = [dose for dose in slot_doses if dose.effective_status in RECORDABLE_STATUSES]

        def unchanged(remaining_count: int) -> SlotBulkRecordResult:
            return SlotBulkRecordResult(
                updated_count=0,
                remaining_count=remaining_count,
                total_pills=total_pills,
                med_count=med_count,
                slot_time=slot_time,
                slot_summary=build_slot_summary(doses, time_zone, custom_slot_times),
            )

        if slot_doses:
            first_scheduled_at = ensure_utc(slot_doses[0].scheduled_at)
            current = ensure_utc(now)
            if not (
                first_scheduled_at - RECORDING_WINDOW_BEFORE
                <= current
                <= first_scheduled_at + RECORDING_WINDOW_AFTER
            ):
                logger.info(
                    "Slot %s on %s for patient %s is outside the recording window",
                    slot.value,
                    day.isoformat(),
                    patient_id,
                )
                return unchanged(len(recordable))

        if not recordable:
            return unchanged(0)

        recording_group_id = str(uuid.uuid4())
        async with self.repository.transaction():
            upserts = [
                await self.repository.upsert_dose_record(
                    DoseRecordCreate(
                        key=dose.key,
                        taken_at=now,
                        recorded_by_type=RecordedByType.patient,
                        recording_group_id=recording_group_id,
                    )
                )
                for dose in recordable
            ]

        created = [record for record, was_created in upserts if was_created]
        log_dose_record_operation("bulk_create", RecordedByType.patient.value, len(created))
        await self._after_create(patient_id, created, recording_group_id, recordable)

        recorded_keys = {dose.key for dose in recordable}
        refreshed = [
            dataclasses.replace(dose, effective_status=DoseStatus.taken)
            if dose.key in recorded_keys
            else dose
            for dose in doses
        ]
        return SlotBulkRecordResult(
            updated_count=len(upserts),
            remaining_count=0,
            total_pills=total_pills,
            med_count=med_count,
            slot_time=slot_time,
            slot_summary=build_slot_summary(refreshed, time_zone, custom_slot_times),
            recording_group_id=recording_group_id,
        )

    async def _after_create(
        self,
        patient_id: int,
        created: list,
        recording_group_id: str,
        recordable: list[StatusedDose],
    ) -> None:
        if not created:
            return
        patient = await self.repository.get_patient(patient_id)
        if patient is None:
            return

        for record in created:
            medication = await self.repository.get_medication(patient_id, record.medication_id)
            await self.side_effects.record_event(
                patient, record.scheduled_at, record.taken_at, medication
            )
            if medication is not None:
                await self.side_effects.adjust_inventory(
                    patient_id,
                    record.medication_id,
                    -medication.dose_count_per_intake,
                    InventoryAdjustmentReason.TAKEN_CREATE,
                )

        names = {dose.medication_snapshot.name for dose in recordable}
        await self.side_effects.notify_caregivers(
            patient,
            dose_taken_event_key(recording_group_id=recording_group_id),
            medication_name=next(iter(names)) if len(names) == 1 else None,
            medication_count=len(created),
        )
