"""Dose tracking repository implementations."""

from __future__ import annotations

import copy
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import AsyncContextManager, Optional, Protocol

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from medtrack.models import (
    CaregiverPatientLink,
    DoseRecord,
    LinkStatus,
    Medication,
    Patient,
    PrnDoseRecord,
    RecordedByType,
    Regimen,
)
from medtrack.services.schedule.types import DoseKey
from medtrack.services.schedule.zoned_time import ensure_utc


@dataclass(frozen=True)
class DoseRecordCreate:
    key: DoseKey
    taken_at: datetime
    recorded_by_type: RecordedByType
    recorded_by_id: str | None = None
    recording_group_id: str | None = None


@dataclass(frozen=True)
class PrnDoseRecordCreate:
    patient_id: int
    medication_id: int
    taken_at: datetime
    quantity_taken: int
    actor_type: RecordedByType


class DoseRepository(Protocol):
    async def get_patient(self, patient_id: int) -> Optional[Patient]:
        ...

    async def list_linked_caregiver_ids(self, patient_id: int) -> list[str]:
        ...

    async def list_medications(
        self, patient_id: int, include_archived: bool = True
    ) -> list[Medication]:
        ...

    async def get_medication(self, patient_id: int, medication_id: int) -> Optional[Medication]:
        ...

    async def list_regimens(self, patient_id: int) -> list[Regimen]:
        ...

    async def create_regimen(self, regimen: Regimen) -> Regimen:
        ...

    async def get_dose_record(self, key: DoseKey) -> Optional[DoseRecord]:
        ...

    async def upsert_dose_record(self, data: DoseRecordCreate) -> tuple[DoseRecord, bool]:
        """Get-or-create by key; the flag is True only for the creating call."""
        ...

    async def delete_dose_record(self, key: DoseKey) -> Optional[DoseRecord]:
        ...

    async def list_dose_records_in_range(
        self, patient_id: int, from_: datetime, to: datetime
    ) -> list[DoseRecord]:
        ...

    def transaction(self) -> AsyncContextManager[None]:
        """Atomic unit for a batch of writes; commits on clean exit."""
        ...

    async def create_prn_dose_record(self, data: PrnDoseRecordCreate) -> PrnDoseRecord:
        ...

    async def get_prn_dose_record(
        self, patient_id: int, prn_record_id: int
    ) -> Optional[PrnDoseRecord]:
        ...

    async def delete_prn_dose_record(self, prn_record_id: int) -> Optional[PrnDoseRecord]:
        ...

    async def list_prn_dose_records_in_range(
        self, patient_id: int, from_: datetime, to: datetime
    ) -> list[PrnDoseRecord]:
        ...


class SQLDoseRepository:
    """Dose repository backed by SQLAlchemy and PostgreSQL."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_patient(self, patient_id: int) -> Optional[Patient]:
        result = await self.db.execute(select(Patient).where(Patient.id == patient_id))
        return result.scalar_one_or_none()

    async def list_linked_caregiver_ids(self, patient_id: int) -> list[str]:
        result = await self.db.execute(
            select(CaregiverPatientLink.caregiver_id).where(
                CaregiverPatientLink.patient_id == patient_id,
                CaregiverPatientLink.status == LinkStatus.active,
            )
        )
        return list(result.scalars().all())

    async def list_medications(
        self, patient_id: int, include_archived: bool = True
    ) -> list[Medication]:
        query = select(Medication).where(Medication.patient_id == patient_id)
        if not include_archived:
            query = query.where(Medication.is_archived.is_(False))
        result = await self.db.execute(query.order_by(Medication.id))
        return list(result.scalars().all())

    async def get_medication(self, patient_id: int, medication_id: int) -> Optional[Medication]:
        result = await self.db.execute(
            select(Medication).where(
                Medication.id == medication_id,
                Medication.patient_id == patient_id,
            )
        )
        return result.scalar_one_or_none()

    async def list_regimens(self, patient_id: int) -> list[Regimen]:
        result = await self.db.execute(
            select(Regimen).where(Regimen.patient_id == patient_id).order_by(Regimen.id)
        )
        return list(result.scalars().all())

    async def create_regimen(self, regimen: Regimen) -> Regimen:
        self.db.add(regimen)
        await self.db.flush()
        await self.db.refresh(regimen)
        return regimen

    async def get_dose_record(self, key: DoseKey) -> Optional[DoseRecord]:
        result = await self.db.execute(
            select(DoseRecord).where(
                DoseRecord.patient_id == key.patient_id,
                DoseRecord.medication_id == key.medication_id,
                DoseRecord.scheduled_at == key.scheduled_at,
            )
        )
        return result.scalar_one_or_none()

    async def upsert_dose_record(self, data: DoseRecordCreate) -> tuple[DoseRecord, bool]:
        # ON CONFLICT DO NOTHING lets concurrent writers converge on one row.
        stmt = (
            pg_insert(DoseRecord)
            .values(
                patient_id=data.key.patient_id,
                medication_id=data.key.medication_id,
                scheduled_at=data.key.scheduled_at,
                taken_at=data.taken_at,
                recorded_by_type=data.recorded_by_type.value,
                recorded_by_id=data.recorded_by_id,
                recording_group_id=data.recording_group_id,
            )
            .on_conflict_do_nothing(
                constraint="uq_dose_records_patient_medication_scheduled"
            )
            .returning(DoseRecord.id)
        )
        inserted_id = (await self.db.execute(stmt)).scalar_one_or_none()
        record = await self.get_dose_record(data.key)
        if record is None:
            raise RuntimeError(f"Dose record {data.key} vanished after upsert")
        return record, inserted_id is not None

    async def delete_dose_record(self, key: DoseKey) -> Optional[DoseRecord]:
        record = await self.get_dose_record(key)
        if not record:
            return None
        await self.db.delete(record)
        await self.db.flush()
        return record

    async def list_dose_records_in_range(
        self, patient_id: int, from_: datetime, to: datetime
    ) -> list[DoseRecord]:
        result = await self.db.execute(
            select(DoseRecord)
            .where(
                DoseRecord.patient_id == patient_id,
                DoseRecord.scheduled_at >= from_,
                DoseRecord.scheduled_at < to,
            )
            .order_by(DoseRecord.scheduled_at)
        )
        return list(result.scalars().all())

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        async with self.db.begin_nested():
            yield
        # Commit so side effects that follow never share fate with the batch.
        await self.db.commit()

    async def create_prn_dose_record(self, data: PrnDoseRecordCreate) -> PrnDoseRecord:
        record = PrnDoseRecord(
            patient_id=data.patient_id,
            medication_id=data.medication_id,
            taken_at=data.taken_at,
            quantity_taken=data.quantity_taken,
            actor_type=data.actor_type.value,
        )
        self.db.add(record)
        await self.db.flush()
        await self.db.refresh(record)
        return record

    async def get_prn_dose_record(
        self, patient_id: int, prn_record_id: int
    ) -> Optional[PrnDoseRecord]:
        result = await self.db.execute(
            select(PrnDoseRecord).where(
                PrnDoseRecord.id == prn_record_id,
                PrnDoseRecord.patient_id == patient_id,
            )
        )
        return result.scalar_one_or_none()

    async def delete_prn_dose_record(self, prn_record_id: int) -> Optional[PrnDoseRecord]:
        result = await self.db.execute(
            select(PrnDoseRecord).where(PrnDoseRecord.id == prn_record_id)
        )
        record = result.scalar_one_or_none()
        if not record:
            return None
        await self.db.delete(record)
        await self.db.flush()
        return record

    async def list_prn_dose_records_in_range(
        self, patient_id: int, from_: datetime, to: datetime
    ) -> list[PrnDoseRecord]:
        result = await self.db.execute(
            select(PrnDoseRecord)
            .where(
                PrnDoseRecord.patient_id == patient_id,
                PrnDoseRecord.taken_at >= from_,
                PrnDoseRecord.taken_at < to,
            )
            .order_by(PrnDoseRecord.taken_at)
        )
        return list(result.scalars().all())


class InMemoryDoseRepository:
    """In-memory repository for tests and local demos."""

    def __init__(self):
        self.patients: dict[int, Patient] = {}
        self.caregiver_links: list[CaregiverPatientLink] = []
        self.medications: dict[int, Medication] = {}
        self.regimens: list[Regimen] = []
        self.dose_records: dict[DoseKey, DoseRecord] = {}
        self.prn_records: dict[int, PrnDoseRecord] = {}
        self._next_id = 1

    def _allocate_id(self) -> int:
        next_id = self._next_id
        self._next_id += 1
        return next_id

    def add_patient(self, patient: Patient) -> Patient:
        if patient.id is None:
            patient.id = self._allocate_id()
        self.patients[patient.id] = patient
        return patient

    def link_caregiver(self, caregiver_id: str, patient_id: int) -> CaregiverPatientLink:
        link = CaregiverPatientLink(
            id=self._allocate_id(),
            caregiver_id=caregiver_id,
            patient_id=patient_id,
            status=LinkStatus.active,
        )
        self.caregiver_links.append(link)
        return link

    def add_medication(self, medication: Medication) -> Medication:
        if medication.id is None:
            medication.id = self._allocate_id()
        self.medications[medication.id] = medication
        return medication

    def add_regimen(self, regimen: Regimen) -> Regimen:
        if regimen.id is None:
            regimen.id = self._allocate_id()
        self.regimens.append(regimen)
        return regimen

    async def get_patient(self, patient_id: int) -> Optional[Patient]:
        return self.patients.get(patient_id)

    async def list_linked_caregiver_ids(self, patient_id: int) -> list[str]:
        return [
            link.caregiver_id
            for link in self.caregiver_links
            if link.patient_id == patient_id and link.status == LinkStatus.active
        ]

    async def list_medications(
        self, patient_id: int, include_archived: bool = True
    ) -> list[Medication]:
        return [
            medication
            for medication in self.medications.values()
            if medication.patient_id == patient_id
            and (include_archived or not medication.is_archived)
        ]

    async def get_medication(self, patient_id: int, medication_id: int) -> Optional[Medication]:
        medication = self.medications.get(medication_id)
        if medication is None or medication.patient_id != patient_id:
            return None
        return medication

    async def list_regimens(self, patient_id: int) -> list[Regimen]:
        return [regimen for regimen in self.regimens if regimen.patient_id == patient_id]

    async def create_regimen(self, regimen: Regimen) -> Regimen:
        return self.add_regimen(regimen)

    @staticmethod
    def _normalize_key(key: DoseKey) -> DoseKey:
        return DoseKey(key.patient_id, key.medication_id, ensure_utc(key.scheduled_at))

    async def get_dose_record(self, key: DoseKey) -> Optional[DoseRecord]:
        return self.dose_records.get(self._normalize_key(key))

    async def upsert_dose_record(self, data: DoseRecordCreate) -> tuple[DoseRecord, bool]:
        key = self._normalize_key(data.key)
        existing = self.dose_records.get(key)
        if existing is not None:
            return existing, False
        now = datetime.now(timezone.utc)
        record = DoseRecord(
            id=self._allocate_id(),
            patient_id=key.patient_id,
            medication_id=key.medication_id,
            scheduled_at=key.scheduled_at,
            taken_at=data.taken_at,
            recorded_by_type=data.recorded_by_type.value,
            recorded_by_id=data.recorded_by_id,
            recording_group_id=data.recording_group_id,
            created_at=now,
            updated_at=now,
        )
        self.dose_records[key] = record
        return record, True

    async def delete_dose_record(self, key: DoseKey) -> Optional[DoseRecord]:
        return self.dose_records.pop(self._normalize_key(key), None)

    async def list_dose_records_in_range(
        self, patient_id: int, from_: datetime, to: datetime
    ) -> list[DoseRecord]:
        records = [
            record
            for record in self.dose_records.values()
            if record.patient_id == patient_id and from_ <= record.scheduled_at < to
        ]
        return sorted(records, key=lambda record: record.scheduled_at)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        dose_records = copy.copy(self.dose_records)
        prn_records = copy.copy(self.prn_records)
        try:
            yield
        except BaseException:
            self.dose_records = dose_records
            self.prn_records = prn_records
            raise

    async def create_prn_dose_record(self, data: PrnDoseRecordCreate) -> PrnDoseRecord:
        now = datetime.now(timezone.utc)
        record = PrnDoseRecord(
            id=self._allocate_id(),
            patient_id=data.patient_id,
            medication_id=data.medication_id,
            taken_at=data.taken_at,
            quantity_taken=data.quantity_taken,
            actor_type=data.actor_type.value,
            created_at=now,
            updated_at=now,
        )
        self.prn_records[record.id] = record
        return record

    async def get_prn_dose_record(
        self, patient_id: int, prn_record_id: int
    ) -> Optional[PrnDoseRecord]:
        record = self.prn_records.get(prn_record_id)
        if record is None or record.patient_id != patient_id:
            return None
        return record

    async def delete_prn_dose_record(self, prn_record_id: int) -> Optional[PrnDoseRecord]:
        return self.prn_records.pop(prn_record_id, None)

    async def list_prn_dose_records_in_range(
        self, patient_id: int, from_: datetime, to: datetime
    ) -> list[PrnDoseRecord]:
        records = [
            record
            for record in self.prn_records.values()
            if record.patient_id == patient_id and from_ <= record.taken_at < to
        ]
        return sorted(records, key=lambda record: record.taken_at)

    def clear(self) -> None:
        self.dose_records.clear()
        self.prn_records.clear()
