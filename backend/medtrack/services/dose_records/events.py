"""Append-only dose record events consumed by caregiver feeds."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from medtrack.models import DoseRecordEvent


@dataclass(frozen=True)
class DoseRecordEventCreate:
    patient_id: int
    scheduled_at: datetime
    taken_at: datetime
    within_time: bool
    display_name: str
    medication_name: str | None = None
    is_prn: bool = False


class DoseEventSink(Protocol):
    async def create_dose_record_event(self, payload: DoseRecordEventCreate) -> DoseRecordEvent:
        ...


class SQLDoseEventSink:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_dose_record_event(self, payload: DoseRecordEventCreate) -> DoseRecordEvent:
        event = DoseRecordEvent(
            patient_id=payload.patient_id,
            scheduled_at=payload.scheduled_at,
            taken_at=payload.taken_at,
            within_time=payload.within_time,
            display_name=payload.display_name,
            medication_name=payload.medication_name,
            is_prn=payload.is_prn,
        )
        async with self.db.begin_nested():
            self.db.add(event)
        await self.db.refresh(event)
        return event


class InMemoryDoseEventSink:
    def __init__(self):
        self.events: list[DoseRecordEvent] = []

    async def create_dose_record_event(self, payload: DoseRecordEventCreate) -> DoseRecordEvent:
        now = datetime.now(timezone.utc)
        event = DoseRecordEvent(
            id=len(self.events) + 1,
            patient_id=payload.patient_id,
            scheduled_at=payload.scheduled_at,
            taken_at=payload.taken_at,
            within_time=payload.within_time,
            display_name=payload.display_name,
            medication_name=payload.medication_name,
            is_prn=payload.is_prn,
            created_at=now,
            updated_at=now,
        )
        self.events.append(event)
        return event
