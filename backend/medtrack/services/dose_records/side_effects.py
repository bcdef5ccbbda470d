"""Post-commit effects of a dose being taken.

Every step here runs after the dose record is committed. A failing step is
logged and skipped; it never propagates to the caller and never undoes the
record.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from medtrack.constants import DOSE_MISSED_WINDOW
from medtrack.models import DoseRecordEvent, InventoryAdjustmentReason, Medication, Patient
from medtrack.services.dose_records.events import DoseEventSink, DoseRecordEventCreate
from medtrack.services.inventory import InventoryService
from medtrack.services.notifications import PushDispatcher, build_dose_taken_message
from medtrack.services.schedule.zoned_time import ensure_utc

logger = logging.getLogger("medtrack.dose_records")


def is_within_time(scheduled_at: datetime, taken_at: datetime) -> bool:
    return ensure_utc(taken_at) <= ensure_utc(scheduled_at) + DOSE_MISSED_WINDOW


class DoseRecordSideEffects:
    def __init__(
        self,
        repository,
        events: DoseEventSink,
        inventory: InventoryService,
        dispatcher: PushDispatcher,
    ):
        self.repository = repository
        self.events = events
        self.inventory = inventory
        self.dispatcher = dispatcher

    async def record_event(
        self,
        patient: Patient,
        scheduled_at: datetime,
        taken_at: datetime,
        medication: Medication | None,
        is_prn: bool = False,
    ) -> Optional[DoseRecordEvent]:
        try:
            return await self.events.create_dose_record_event(
                DoseRecordEventCreate(
                    patient_id=patient.id,
                    scheduled_at=scheduled_at,
                    taken_at=taken_at,
                    within_time=is_within_time(scheduled_at, taken_at),
                    display_name=patient.display_name,
                    medication_name=medication.name if medication else None,
                    is_prn=is_prn,
                )
            )
        except Exception:
            logger.exception("Failed to write dose record event for patient %s", patient.id)
            return None

    async def notify_caregivers(
        self,
        patient: Patient,
        event_key: str,
        medication_name: str | None = None,
        is_prn: bool = False,
        medication_count: int = 1,
    ) -> None:
        try:
            caregiver_ids = await self.repository.list_linked_caregiver_ids(patient.id)
            message = build_dose_taken_message(
                patient.id,
                patient.display_name,
                medication_name=medication_name,
                is_prn=is_prn,
                medication_count=medication_count,
            )
            await self.dispatcher.notify(caregiver_ids, event_key, message)
        except Exception:
            logger.exception("Failed to notify caregivers of %s", event_key)

    async def adjust_inventory(
        self,
        patient_id: int,
        medication_id: int,
        delta: int,
        reason: InventoryAdjustmentReason,
    ) -> None:
        try:
            await self.inventory.apply_delta(patient_id, medication_id, delta, reason)
        except Exception:
            logger.exception(
                "Failed to apply inventory %s for medication %s", reason.value, medication_id
            )
